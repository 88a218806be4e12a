"""Tests for POST /schema-manager: every action, its errors, and authentication."""

import json

from fastapi.testclient import TestClient

from schema_manager.errors import CatalogError

ENDPOINT = "/schema-manager"


def _contracts_schema(priority_nullable: bool = True, with_priority: bool = True):
    """get_schema rows as the catalog returns them for the contracts table."""
    columns = [
        {
            "column_name": "id",
            "data_type": "uuid",
            "udt_name": "uuid",
            "is_nullable": "NO",
            "column_default": "gen_random_uuid()",
            "is_primary": True,
            "is_foreign_key": False,
            "fk_table": None,
            "fk_column": None,
        },
        {
            "column_name": "company_id",
            "data_type": "uuid",
            "udt_name": "uuid",
            "is_nullable": "YES",
            "column_default": None,
            "is_primary": False,
            "is_foreign_key": True,
            "fk_table": "companies",
            "fk_column": "id",
        },
    ]
    if with_priority:
        columns.append(
            {
                "column_name": "priority",
                "data_type": "integer",
                "udt_name": "int4",
                "is_nullable": "YES" if priority_nullable else "NO",
                "column_default": None,
                "is_primary": False,
                "is_foreign_key": False,
                "fk_table": None,
                "fk_column": None,
            }
        )
    return [{"table_name": "contracts", "columns": columns}]


class TestAuthentication:
    """Requests must carry a verified access token."""

    def test_missing_authorization_header(self, client: TestClient, fake_catalog):
        response = client.post(ENDPOINT, json={"action": "get_schema"})

        assert response.status_code == 401
        assert response.json() == {"error": "No authorization header"}
        assert fake_catalog.queries == []

    def test_invalid_token(self, client: TestClient, fake_catalog):
        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "contracts",
                "column_name": "priority",
                "column_type": "integer",
            },
            headers={"Authorization": "Bearer not-a-real-token"},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert fake_catalog.ddl == []

    def test_non_bearer_scheme(self, client: TestClient, fake_catalog):
        response = client.post(
            ENDPOINT,
            json={"action": "get_schema"},
            headers={"Authorization": "Basic dXNlcjpwYXNz"},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert fake_catalog.queries == []

    def test_bearer_without_token(self, client: TestClient, fake_catalog):
        response = client.post(
            ENDPOINT,
            json={"action": "get_schema"},
            headers={"Authorization": "Bearer"},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert fake_catalog.queries == []


class TestRequestParsing:
    """Malformed requests are rejected before any statement runs."""

    def test_unknown_action(self, client: TestClient, auth_headers, fake_catalog):
        response = client.post(ENDPOINT, json={"action": "drop_table"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Unknown action: drop_table"}
        assert fake_catalog.ddl == []

    def test_missing_action(self, client: TestClient, auth_headers):
        response = client.post(ENDPOINT, json={"table_name": "contracts"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Unknown action: None"}

    def test_body_not_an_object(self, client: TestClient, auth_headers):
        response = client.post(ENDPOINT, json=["get_schema"], headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Request body must be a JSON object"

    def test_invalid_json(self, client: TestClient, auth_headers):
        response = client.post(
            ENDPOINT,
            content=b"{not json",
            headers={**auth_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Request body must be valid JSON"

    def test_missing_field_is_named(self, client: TestClient, auth_headers, fake_catalog):
        response = client.post(
            ENDPOINT,
            json={"action": "add_column", "table_name": "contracts", "column_type": "text"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "column_name" in response.json()["error"]
        assert fake_catalog.ddl == []


class TestGetSchema:
    """Tests for the get_schema action."""

    def test_get_schema(self, client: TestClient, auth_headers, fake_catalog):
        fake_catalog.query_results.append(_contracts_schema())

        response = client.post(ENDPOINT, json={"action": "get_schema"}, headers=auth_headers)

        assert response.status_code == 200
        tables = response.json()["tables"]
        assert [t["table_name"] for t in tables] == ["contracts"]

        columns = {c["column_name"]: c for c in tables[0]["columns"]}
        assert [c["column_name"] for c in tables[0]["columns"]] == ["id", "company_id", "priority"]
        assert columns["id"]["is_primary"] is True
        assert columns["id"]["is_nullable"] is False
        assert columns["id"]["friendly_type"] == "UUID"
        assert columns["company_id"]["is_foreign_key"] is True
        assert columns["company_id"]["fk_table"] == "companies"
        assert columns["company_id"]["fk_column"] == "id"

    def test_get_schema_never_lists_protected_table(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        rows = _contracts_schema() + [
            {
                "table_name": "table_settings",
                "columns": [
                    {
                        "column_name": "visible",
                        "data_type": "boolean",
                        "udt_name": "bool",
                        "is_nullable": "YES",
                        "is_foreign_key": True,
                        "fk_table": "contracts",
                        "fk_column": "id",
                    }
                ],
            }
        ]
        fake_catalog.query_results.append(rows)

        response = client.post(ENDPOINT, json={"action": "get_schema"}, headers=auth_headers)

        assert response.status_code == 200
        names = [t["table_name"] for t in response.json()["tables"]]
        assert "table_settings" not in names
        assert "NOT IN ('table_settings')" in fake_catalog.queries[0]

    def test_get_schema_columns_as_json_text(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        rows = _contracts_schema()
        rows[0]["columns"] = json.dumps(rows[0]["columns"])
        fake_catalog.query_results.append(rows)

        response = client.post(ENDPOINT, json={"action": "get_schema"}, headers=auth_headers)

        assert response.status_code == 200
        assert len(response.json()["tables"][0]["columns"]) == 3

    def test_get_schema_catalog_error(
        self, client: TestClient, auth_headers, fake_catalog, monkeypatch
    ):
        def failing_query(sql):
            raise CatalogError("permission denied for schema public")

        monkeypatch.setattr(fake_catalog, "exec_query", failing_query)

        response = client.post(ENDPOINT, json={"action": "get_schema"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "permission denied for schema public"}


class TestAddColumn:
    """Tests for the add_column action."""

    def test_add_column_then_schema_lists_it(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "contracts",
                "column_name": "priority",
                "column_type": "integer",
                "is_nullable": True,
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Column 'priority' added to 'contracts'",
        }
        assert fake_catalog.ddl == [
            'ALTER TABLE "public"."contracts" ADD COLUMN "priority" INTEGER'
        ]

        fake_catalog.query_results.append(_contracts_schema())
        schema = client.post(ENDPOINT, json={"action": "get_schema"}, headers=auth_headers)
        priority = [
            c for c in schema.json()["tables"][0]["columns"] if c["column_name"] == "priority"
        ][0]
        assert priority["friendly_type"] == "Integer"
        assert priority["is_nullable"] is True

    def test_add_column_not_null_with_default(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "contracts",
                "column_name": "currency",
                "column_type": "select",
                "is_nullable": False,
                "default_value": "EUR",
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert fake_catalog.ddl == [
            'ALTER TABLE "public"."contracts" ADD COLUMN "currency" TEXT NOT NULL DEFAULT \'EUR\''
        ]

    def test_add_column_numeric_json_default(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "contracts",
                "column_name": "seats",
                "column_type": "integer",
                "default_value": 4,
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert fake_catalog.ddl[0].endswith('"seats" INTEGER DEFAULT 4')

    def test_add_column_null_nullable_means_nullable(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "contracts",
                "column_name": "remarks",
                "column_type": "text",
                "is_nullable": None,
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert "NOT NULL" not in fake_catalog.ddl[0]

    def test_add_column_invalid_type(self, client: TestClient, auth_headers, fake_catalog):
        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "contracts",
                "column_name": "payload",
                "column_type": "jsonb",
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid column type. Allowed: text, number")
        assert fake_catalog.ddl == []

    def test_add_column_invalid_name(self, client: TestClient, auth_headers, fake_catalog):
        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "contracts",
                "column_name": "Priority Level",
                "column_type": "text",
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == (
            "Invalid column name. Use lowercase letters, numbers, and underscores only."
        )
        assert fake_catalog.ddl == []

    def test_add_column_integer_fractional_default_rejected(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "contracts",
                "column_name": "priority",
                "column_type": "integer",
                "default_value": "12.5",
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid integer default value."}
        assert fake_catalog.ddl == []

    def test_add_column_huge_integer_default_rejected(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "contracts",
                "column_name": "seats",
                "column_type": "integer",
                "default_value": "1e5000",
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid integer default value."}
        assert fake_catalog.ddl == []

    def test_add_column_huge_number_default_rejected(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "contracts",
                "column_name": "budget",
                "column_type": "number",
                "default_value": "1e50000000",
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid numeric default value."}
        assert fake_catalog.ddl == []

    def test_add_column_to_protected_table(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "table_settings",
                "column_name": "width",
                "column_type": "integer",
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "Table 'table_settings' is protected and cannot be modified."
        }
        assert fake_catalog.ddl == []

    def test_add_column_catalog_error_passed_through(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        fake_catalog.ddl_failures["ADD COLUMN"] = (
            'column "priority" of relation "contracts" already exists'
        )

        response = client.post(
            ENDPOINT,
            json={
                "action": "add_column",
                "table_name": "contracts",
                "column_name": "priority",
                "column_type": "integer",
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": 'column "priority" of relation "contracts" already exists'
        }


class TestDeleteColumn:
    """Tests for the delete_column action."""

    def test_delete_empty_column(self, client: TestClient, auth_headers, fake_catalog):
        fake_catalog.query_results.append([{"has_data": False}])

        response = client.post(
            ENDPOINT,
            json={"action": "delete_column", "table_name": "contracts", "column_name": "priority"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Column 'priority' deleted from 'contracts'",
        }
        assert "IS NOT NULL" in fake_catalog.queries[0]
        assert fake_catalog.ddl == ['ALTER TABLE "public"."contracts" DROP COLUMN "priority"']

        fake_catalog.query_results.append(_contracts_schema(with_priority=False))
        schema = client.post(ENDPOINT, json={"action": "get_schema"}, headers=auth_headers)
        names = [c["column_name"] for c in schema.json()["tables"][0]["columns"]]
        assert "priority" not in names

    def test_delete_column_with_data_issues_no_drop(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        fake_catalog.query_results.append([{"has_data": True}])

        response = client.post(
            ENDPOINT,
            json={"action": "delete_column", "table_name": "contracts", "column_name": "priority"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "Column 'priority' contains data. Clear all data in this column before deleting."
        }
        assert fake_catalog.ddl == []

    def test_delete_system_column(self, client: TestClient, auth_headers, fake_catalog):
        response = client.post(
            ENDPOINT,
            json={"action": "delete_column", "table_name": "contracts", "column_name": "created_at"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Cannot delete protected column: created_at"}
        assert fake_catalog.queries == []
        assert fake_catalog.ddl == []

    def test_delete_column_on_protected_table(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={"action": "delete_column", "table_name": "table_settings", "column_name": "width"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert fake_catalog.queries == []


class TestRenameColumn:
    """Tests for the rename_column action."""

    def test_rename_column(self, client: TestClient, auth_headers, fake_catalog):
        response = client.post(
            ENDPOINT,
            json={
                "action": "rename_column",
                "table_name": "contracts",
                "old_name": "notes",
                "new_name": "remarks",
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Column renamed from 'notes' to 'remarks'",
        }
        assert fake_catalog.ddl == [
            'ALTER TABLE "public"."contracts" RENAME COLUMN "notes" TO "remarks"'
        ]

    def test_rename_system_column_rejected_regardless_of_new_name(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        for old_name in ("id", "created_at", "updated_at", "user_id"):
            for new_name in ("valid_name", "Not Valid"):
                response = client.post(
                    ENDPOINT,
                    json={
                        "action": "rename_column",
                        "table_name": "contracts",
                        "old_name": old_name,
                        "new_name": new_name,
                    },
                    headers=auth_headers,
                )
                assert response.status_code == 400
                assert response.json() == {"error": f"Cannot rename protected column: {old_name}"}

        assert fake_catalog.ddl == []

    def test_rename_on_protected_table(self, client: TestClient, auth_headers, fake_catalog):
        response = client.post(
            ENDPOINT,
            json={
                "action": "rename_column",
                "table_name": "table_settings",
                "old_name": "visible",
                "new_name": "is_visible",
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "Table 'table_settings' is protected and cannot be modified."
        }
        assert fake_catalog.ddl == []

    def test_rename_to_invalid_name(self, client: TestClient, auth_headers, fake_catalog):
        response = client.post(
            ENDPOINT,
            json={
                "action": "rename_column",
                "table_name": "contracts",
                "old_name": "notes",
                "new_name": "2notes",
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert fake_catalog.ddl == []


class TestCreateTable:
    """Tests for the create_table action."""

    def test_create_table_with_columns_and_foreign_key(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "create_table",
                "table_name": "invoices",
                "columns": [
                    {"name": "amount", "type": "number", "is_nullable": False, "default_value": "0"}
                ],
                "foreign_keys": [
                    {"column_name": "contract_id", "ref_table": "contracts", "on_delete": "set_null"}
                ],
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Table 'invoices' created successfully",
        }

        create_sql, rls_sql, policy_sql = fake_catalog.ddl
        assert create_sql.startswith('CREATE TABLE "public"."invoices" (')
        assert '"id" UUID NOT NULL DEFAULT gen_random_uuid() PRIMARY KEY' in create_sql
        assert '"created_at" TIMESTAMP WITH TIME ZONE DEFAULT now()' in create_sql
        assert '"amount" NUMERIC NOT NULL DEFAULT 0' in create_sql
        assert (
            '"contract_id" UUID REFERENCES "public"."contracts"(id) ON DELETE SET NULL'
            in create_sql
        )
        assert rls_sql == 'ALTER TABLE "public"."invoices" ENABLE ROW LEVEL SECURITY'
        assert policy_sql.startswith('CREATE POLICY "Authenticated access" ON "public"."invoices"')

    def test_create_table_without_columns(self, client: TestClient, auth_headers, fake_catalog):
        response = client.post(
            ENDPOINT,
            json={"action": "create_table", "table_name": "destinations", "columns": []},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert '"id" UUID' in fake_catalog.ddl[0]
        assert '"created_at" TIMESTAMP WITH TIME ZONE' in fake_catalog.ddl[0]
        assert len(fake_catalog.ddl) == 3

    def test_create_table_invalid_column_type(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "create_table",
                "table_name": "invoices",
                "columns": [{"name": "amount", "type": "money", "is_nullable": True}],
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid type for column amount"}
        assert fake_catalog.ddl == []

    def test_create_table_invalid_foreign_key(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "create_table",
                "table_name": "invoices",
                "columns": [],
                "foreign_keys": [{"column_name": "contract_id", "ref_table": "Contracts"}],
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid foreign key reference."}
        assert fake_catalog.ddl == []

    def test_create_table_unknown_on_delete(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        response = client.post(
            ENDPOINT,
            json={
                "action": "create_table",
                "table_name": "invoices",
                "foreign_keys": [
                    {"column_name": "contract_id", "ref_table": "contracts", "on_delete": "restrict"}
                ],
            },
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "on_delete" in response.json()["error"]
        assert fake_catalog.ddl == []

    def test_create_table_policy_failure_rolls_back(
        self, client: TestClient, auth_headers, fake_catalog
    ):
        fake_catalog.ddl_failures["CREATE POLICY"] = 'policy "Authenticated access" already exists'

        response = client.post(
            ENDPOINT,
            json={"action": "create_table", "table_name": "invoices", "columns": []},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "Table 'invoices' was rolled back: create access policy failed: "
            'policy "Authenticated access" already exists'
        }
        assert fake_catalog.ddl[-1] == 'DROP TABLE IF EXISTS "public"."invoices"'

    def test_create_table_catalog_error(self, client: TestClient, auth_headers, fake_catalog):
        fake_catalog.ddl_failures["CREATE TABLE"] = 'relation "invoices" already exists'

        response = client.post(
            ENDPOINT,
            json={"action": "create_table", "table_name": "invoices", "columns": []},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": 'relation "invoices" already exists'}
        assert len(fake_catalog.ddl) == 1


class TestMisc:
    """CORS, request IDs, and framework errors."""

    def test_cors_preflight(self, client: TestClient, fake_catalog):
        response = client.options(
            ENDPOINT,
            headers={
                "Origin": "https://dashboard.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type",
            },
        )

        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers
        assert fake_catalog.queries == []

    def test_request_id_is_echoed(self, client: TestClient, auth_headers):
        response = client.post(
            ENDPOINT,
            json={"action": "get_schema"},
            headers={**auth_headers, "X-Request-ID": "req-123"},
        )

        assert response.headers["X-Request-ID"] == "req-123"

    def test_unknown_path(self, client: TestClient):
        response = client.get("/nope")

        assert response.status_code == 404
        assert "error" in response.json()

    def test_root(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"

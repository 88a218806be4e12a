"""Schema operations: introspection, column changes, table creation.

``SchemaManager`` validates a request, builds the statements through
``schema_manager.ddl`` and executes them on a ``SchemaCatalog``. Every check
runs before the first statement is sent.
"""

import json
from typing import Any, Iterable

import structlog

from schema_manager import ddl
from schema_manager.catalog import SchemaCatalog
from schema_manager.config import settings
from schema_manager.errors import (
    CatalogError,
    ColumnHasDataError,
    PartialCreateError,
    SchemaValidationError,
)

logger = structlog.get_logger(__name__)

IDENTIFIER_HINT = "Use lowercase letters, numbers, and underscores only."


class SchemaManager:
    """Runs schema operations against one catalog."""

    def __init__(
        self,
        catalog: SchemaCatalog,
        schema: str | None = None,
        protected_tables: Iterable[str] | None = None,
        system_columns: Iterable[str] | None = None,
    ):
        self.catalog = catalog
        self.schema = schema or settings.db_schema
        self.protected_tables = frozenset(
            settings.protected_tables if protected_tables is None else protected_tables
        )
        self.system_columns = frozenset(
            settings.system_columns if system_columns is None else system_columns
        )

    # ============================================
    # Validation
    # ============================================

    def validate_table_name(self, table_name: str) -> None:
        """Reject malformed and protected table names."""
        if not ddl.is_valid_identifier(table_name):
            raise SchemaValidationError("Invalid table name.")
        if table_name in self.protected_tables:
            raise SchemaValidationError(
                f"Table '{table_name}' is protected and cannot be modified."
            )

    def _validate_column_type(self, column_type: str) -> None:
        if column_type not in ddl.ALLOWED_TYPES:
            raise SchemaValidationError(
                f"Invalid column type. Allowed: {', '.join(ddl.ALLOWED_TYPES)}"
            )

    # ============================================
    # Operations
    # ============================================

    def get_schema(self) -> list[dict[str, Any]]:
        """
        List every base table in the schema with its columns.

        The schema is read from the catalog on every call. Protected tables
        are never listed.

        Returns:
            List of dicts with table_name and columns, ordered by table name
        """
        sql = ddl.schema_query_sql(self.schema, sorted(self.protected_tables))
        rows = self.catalog.exec_query(sql)

        tables = []
        for row in rows:
            if row["table_name"] in self.protected_tables:
                continue
            columns = row.get("columns") or []
            if isinstance(columns, str):
                columns = json.loads(columns)
            for column in columns:
                column["friendly_type"] = ddl.friendly_type(
                    column.get("udt_name"), column.get("data_type")
                )
            tables.append({"table_name": row["table_name"], "columns": columns})

        logger.debug("schema_loaded", table_count=len(tables))
        return tables

    def add_column(
        self,
        table_name: str,
        column_name: str,
        column_type: str,
        is_nullable: bool = True,
        default_value: str | None = None,
    ) -> str:
        """
        Add a column to an existing table.

        Returns:
            Confirmation message
        """
        self.validate_table_name(table_name)
        if not ddl.is_valid_identifier(column_name):
            raise SchemaValidationError(f"Invalid column name. {IDENTIFIER_HINT}")
        self._validate_column_type(column_type)

        sql = ddl.add_column_sql(
            table_name,
            column_name,
            column_type,
            is_nullable=is_nullable,
            default_value=default_value,
            schema=self.schema,
        )
        self.catalog.exec_ddl(sql)

        logger.info(
            "column_added",
            table_name=table_name,
            column_name=column_name,
            column_type=column_type,
            is_nullable=is_nullable,
        )
        return f"Column '{column_name}' added to '{table_name}'"

    def column_has_data(self, table_name: str, column_name: str) -> bool:
        """Return True if at least one row holds a non-null value in the column."""
        rows = self.catalog.exec_query(
            ddl.has_data_sql(table_name, column_name, schema=self.schema)
        )
        return bool(rows) and rows[0].get("has_data") is True

    def delete_column(self, table_name: str, column_name: str) -> str:
        """
        Drop a column that holds no data.

        The data check and the drop are separate statements.

        Raises:
            ColumnHasDataError: If any row has a non-null value in the column
        """
        self.validate_table_name(table_name)
        if column_name in self.system_columns:
            raise SchemaValidationError(f"Cannot delete protected column: {column_name}")
        if not ddl.is_valid_identifier(column_name):
            raise SchemaValidationError("Invalid column name.")

        if self.column_has_data(table_name, column_name):
            raise ColumnHasDataError(
                f"Column '{column_name}' contains data. "
                "Clear all data in this column before deleting."
            )

        self.catalog.exec_ddl(ddl.drop_column_sql(table_name, column_name, schema=self.schema))

        logger.info("column_deleted", table_name=table_name, column_name=column_name)
        return f"Column '{column_name}' deleted from '{table_name}'"

    def rename_column(self, table_name: str, old_name: str, new_name: str) -> str:
        self.validate_table_name(table_name)
        if old_name in self.system_columns:
            raise SchemaValidationError(f"Cannot rename protected column: {old_name}")
        if not ddl.is_valid_identifier(old_name) or not ddl.is_valid_identifier(new_name):
            raise SchemaValidationError(f"Invalid column name. {IDENTIFIER_HINT}")

        self.catalog.exec_ddl(
            ddl.rename_column_sql(table_name, old_name, new_name, schema=self.schema)
        )

        logger.info(
            "column_renamed", table_name=table_name, old_name=old_name, new_name=new_name
        )
        return f"Column renamed from '{old_name}' to '{new_name}'"

    def create_table(
        self,
        table_name: str,
        columns: list[dict[str, Any]],
        foreign_keys: list[dict[str, Any]] | None = None,
    ) -> str:
        """
        Create a table with row level security and an authenticated-access policy.

        The table gets generated ``id`` and ``created_at`` columns ahead of the
        caller's columns and foreign keys. If enabling row level security or
        creating the policy fails, the new table is dropped again.

        Args:
            table_name: Name of the new table
            columns: Dicts with name, type, is_nullable, default_value
            foreign_keys: Dicts with column_name, ref_table, on_delete

        Returns:
            Confirmation message

        Raises:
            SchemaValidationError: On any invalid name, type, or reference
            PartialCreateError: If the table was created but could not be protected
        """
        foreign_keys = foreign_keys or []

        if not ddl.is_valid_identifier(table_name):
            raise SchemaValidationError(f"Invalid table name. {IDENTIFIER_HINT}")

        seen: set[str] = set()
        for col in columns:
            if not ddl.is_valid_identifier(col["name"]):
                raise SchemaValidationError(f"Invalid column name: {col['name']}")
            if col["type"] not in ddl.ALLOWED_TYPES:
                raise SchemaValidationError(f"Invalid type for column {col['name']}")
            self._check_unique(col["name"], seen)

        for fk in foreign_keys:
            if not ddl.is_valid_identifier(fk["column_name"]) or not ddl.is_valid_identifier(
                fk["ref_table"]
            ):
                raise SchemaValidationError("Invalid foreign key reference.")
            self._check_unique(fk["column_name"], seen)

        create_sql = ddl.create_table_sql(table_name, columns, foreign_keys, schema=self.schema)
        self.catalog.exec_ddl(create_sql)
        logger.info(
            "table_created",
            table_name=table_name,
            column_count=len(columns),
            foreign_key_count=len(foreign_keys),
        )

        protection = (
            ("enable row level security", ddl.enable_rls_sql(table_name, schema=self.schema)),
            ("create access policy", ddl.create_policy_sql(table_name, schema=self.schema)),
        )
        for step, sql in protection:
            try:
                self.catalog.exec_ddl(sql)
            except CatalogError as e:
                self._rollback_create(table_name, step, e)

        logger.info("table_protected", table_name=table_name)
        return f"Table '{table_name}' created successfully"

    # ============================================
    # Helpers
    # ============================================

    @staticmethod
    def _check_unique(name: str, seen: set[str]) -> None:
        if name in ddl.GENERATED_COLUMN_NAMES:
            raise SchemaValidationError(f"Column name '{name}' is reserved")
        if name in seen:
            raise SchemaValidationError(f"Duplicate column name: {name}")
        seen.add(name)

    def _rollback_create(self, table_name: str, step: str, error: CatalogError) -> None:
        """Drop a table whose protection failed and raise PartialCreateError.

        If the drop fails too, the message names what the table is missing:
        row level security, or only the access policy once RLS is enabled.
        """
        logger.error(
            "table_protection_failed", table_name=table_name, step=step, error=error.message
        )
        try:
            self.catalog.exec_ddl(ddl.drop_table_sql(table_name, schema=self.schema))
        except CatalogError as drop_error:
            logger.error(
                "table_rollback_failed", table_name=table_name, error=drop_error.message
            )
            missing = (
                "its access policy" if step == "create access policy" else "row level security"
            )
            raise PartialCreateError(
                f"Table '{table_name}' exists without {missing}: "
                f"{step} failed: {error.message}; rollback failed: {drop_error.message}"
            ) from error

        logger.warning("table_rolled_back", table_name=table_name, step=step)
        raise PartialCreateError(
            f"Table '{table_name}' was rolled back: {step} failed: {error.message}"
        ) from error

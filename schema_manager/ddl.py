"""SQL statement construction for schema operations.

Nothing supplied by a caller is interpolated into a statement as-is:
identifiers go through ``quote_ident`` (which enforces the identifier
grammar) and default values through ``sanitize_default``. Physical column
types only ever come from ``ALLOWED_TYPES``.
"""

import re
from decimal import Decimal, InvalidOperation

from schema_manager.errors import SchemaValidationError

# Lowercase letter first, then up to 62 lowercase letters, digits or underscores
IDENTIFIER_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,62}$")

# Logical column type -> physical column type
ALLOWED_TYPES: dict[str, str] = {
    "text": "TEXT",
    "number": "NUMERIC",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
    "date": "DATE",
    "timestamp": "TIMESTAMP WITH TIME ZONE",
    "select": "TEXT",  # options live in table_settings, values are plain text
}

# Physical udt_name -> label shown in the dashboard
FRIENDLY_TYPES: dict[str, str] = {
    "text": "Text",
    "varchar": "Text",
    "numeric": "Number",
    "int4": "Integer",
    "int8": "Integer",
    "bool": "Boolean",
    "date": "Date",
    "timestamptz": "Timestamp",
    "uuid": "UUID",
    "jsonb": "JSON",
}

ON_DELETE_ACTIONS: dict[str, str] = {
    "cascade": "CASCADE",
    "set_null": "SET NULL",
}

# Columns every created table starts with
GENERATED_COLUMNS: tuple[str, ...] = (
    '"id" UUID NOT NULL DEFAULT gen_random_uuid() PRIMARY KEY',
    '"created_at" TIMESTAMP WITH TIME ZONE DEFAULT now()',
)
GENERATED_COLUMN_NAMES = frozenset({"id", "created_at"})

RLS_POLICY_NAME = "Authenticated access"

# Bounds for rendered numeric defaults
INTEGER_MIN = -2147483648
INTEGER_MAX = 2147483647
NUMERIC_MAX_EXPONENT = 1000


def is_valid_identifier(name: object) -> bool:
    """Return True if ``name`` is an acceptable table or column name."""
    return isinstance(name, str) and IDENTIFIER_PATTERN.fullmatch(name) is not None


def quote_ident(name: str) -> str:
    """
    Quote a validated identifier for use in a statement.

    Raises:
        SchemaValidationError: If the name does not match the identifier grammar
    """
    if not is_valid_identifier(name):
        raise SchemaValidationError(f"Invalid identifier: {name}")
    return f'"{name}"'


def quote_literal(value: str) -> str:
    """Quote a string literal, doubling embedded single quotes."""
    return "'" + str(value).replace("'", "''") + "'"


def qualified(schema: str, table_name: str) -> str:
    return f"{quote_ident(schema)}.{quote_ident(table_name)}"


def physical_type(column_type: str) -> str:
    """Map a logical column type to its physical type."""
    try:
        return ALLOWED_TYPES[column_type]
    except KeyError:
        raise SchemaValidationError(
            f"Invalid column type. Allowed: {', '.join(ALLOWED_TYPES)}"
        ) from None


def friendly_type(udt_name: str | None, data_type: str | None) -> str | None:
    """Display label for a physical column type."""
    if udt_name and udt_name in FRIENDLY_TYPES:
        return FRIENDLY_TYPES[udt_name]
    return data_type


def sanitize_default(value: str, column_type: str) -> str | None:
    """
    Render a default value as a SQL literal for the given logical type.

    Text and select values are quoted, booleans become ``true``/``false``,
    numbers are parsed and re-rendered. Integer defaults must be integral and
    fit a 32-bit INTEGER; number defaults are limited to NUMERIC_MAX_EXPONENT
    digits on either side of the decimal point.
    Returns None for types whose defaults are not supported (date, timestamp),
    in which case no DEFAULT clause is emitted.

    Raises:
        SchemaValidationError: If a numeric default does not parse or is out of range
    """
    if column_type in ("text", "select"):
        return quote_literal(value)

    if column_type == "boolean":
        return "true" if str(value) == "true" else "false"

    if column_type in ("number", "integer"):
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            raise SchemaValidationError("Invalid numeric default value.") from None
        if not number.is_finite():
            raise SchemaValidationError("Invalid numeric default value.")
        if column_type == "integer":
            if not INTEGER_MIN <= number <= INTEGER_MAX:
                raise SchemaValidationError("Invalid integer default value.")
            if number != number.to_integral_value():
                raise SchemaValidationError("Invalid integer default value.")
            return str(int(number))
        if (
            number.adjusted() > NUMERIC_MAX_EXPONENT
            or number.as_tuple().exponent < -NUMERIC_MAX_EXPONENT
        ):
            raise SchemaValidationError("Invalid numeric default value.")
        return format(number, "f")

    return None


def column_definition(
    name: str,
    column_type: str,
    is_nullable: bool = True,
    default_value: str | None = None,
) -> str:
    """Build one column definition: name, type, NOT NULL and DEFAULT clauses."""
    col_def = f"{quote_ident(name)} {physical_type(column_type)}"
    if not is_nullable:
        col_def += " NOT NULL"
    if default_value is not None and default_value != "":
        literal = sanitize_default(default_value, column_type)
        if literal is not None:
            col_def += f" DEFAULT {literal}"
    return col_def


def foreign_key_definition(
    column_name: str, ref_table: str, on_delete: str, schema: str = "public"
) -> str:
    """Build a nullable UUID column referencing ``ref_table(id)``."""
    try:
        action = ON_DELETE_ACTIONS[on_delete]
    except KeyError:
        raise SchemaValidationError(
            f"Invalid on_delete action. Allowed: {', '.join(ON_DELETE_ACTIONS)}"
        ) from None
    return (
        f"{quote_ident(column_name)} UUID REFERENCES "
        f"{qualified(schema, ref_table)}(id) ON DELETE {action}"
    )


def add_column_sql(
    table_name: str,
    column_name: str,
    column_type: str,
    is_nullable: bool = True,
    default_value: str | None = None,
    schema: str = "public",
) -> str:
    col_def = column_definition(column_name, column_type, is_nullable, default_value)
    return f"ALTER TABLE {qualified(schema, table_name)} ADD COLUMN {col_def}"


def has_data_sql(table_name: str, column_name: str, schema: str = "public") -> str:
    """Query returning one row with ``has_data`` true if any value is non-null."""
    return (
        f"SELECT EXISTS (SELECT 1 FROM {qualified(schema, table_name)} "
        f"WHERE {quote_ident(column_name)} IS NOT NULL LIMIT 1) AS has_data"
    )


def drop_column_sql(table_name: str, column_name: str, schema: str = "public") -> str:
    return f"ALTER TABLE {qualified(schema, table_name)} DROP COLUMN {quote_ident(column_name)}"


def rename_column_sql(
    table_name: str, old_name: str, new_name: str, schema: str = "public"
) -> str:
    return (
        f"ALTER TABLE {qualified(schema, table_name)} "
        f"RENAME COLUMN {quote_ident(old_name)} TO {quote_ident(new_name)}"
    )


def create_table_sql(
    table_name: str,
    columns: list[dict],
    foreign_keys: list[dict] | None = None,
    schema: str = "public",
) -> str:
    """
    Build a CREATE TABLE statement.

    The generated ``id`` and ``created_at`` columns always come first, then the
    caller's columns in order, then one UUID column per foreign key.

    Args:
        table_name: Name of the new table
        columns: Dicts with name, type, is_nullable, default_value
        foreign_keys: Dicts with column_name, ref_table, on_delete
        schema: Target schema

    Returns:
        The statement text
    """
    col_defs = list(GENERATED_COLUMNS)

    for col in columns:
        col_defs.append(
            column_definition(
                col["name"],
                col["type"],
                col.get("is_nullable", True),
                col.get("default_value"),
            )
        )

    for fk in foreign_keys or []:
        col_defs.append(
            foreign_key_definition(
                fk["column_name"], fk["ref_table"], fk.get("on_delete", "set_null"), schema
            )
        )

    body = ",\n  ".join(col_defs)
    return f"CREATE TABLE {qualified(schema, table_name)} (\n  {body}\n)"


def enable_rls_sql(table_name: str, schema: str = "public") -> str:
    return f"ALTER TABLE {qualified(schema, table_name)} ENABLE ROW LEVEL SECURITY"


def create_policy_sql(table_name: str, schema: str = "public") -> str:
    return (
        f'CREATE POLICY "{RLS_POLICY_NAME}" ON {qualified(schema, table_name)} '
        "FOR ALL TO authenticated USING (true) WITH CHECK (true)"
    )


def drop_table_sql(table_name: str, schema: str = "public") -> str:
    return f"DROP TABLE IF EXISTS {qualified(schema, table_name)}"


def schema_query_sql(schema: str = "public", excluded_tables: list[str] | None = None) -> str:
    """
    Introspection query listing every base table with its ordered columns.

    Each row holds ``table_name`` and ``columns``, a JSON array of column
    objects ordered by ordinal position and annotated with primary key and
    foreign key information.
    """
    schema_literal = quote_literal(schema)
    exclusion = ""
    if excluded_tables:
        names = ", ".join(quote_literal(name) for name in excluded_tables)
        exclusion = f"\n      AND t.table_name NOT IN ({names})"

    return f"""
    SELECT
      t.table_name,
      json_agg(
        json_build_object(
          'column_name', c.column_name,
          'data_type', c.data_type,
          'udt_name', c.udt_name,
          'is_nullable', c.is_nullable,
          'column_default', c.column_default,
          'is_primary', COALESCE(pk_info.is_pk, false),
          'is_foreign_key', COALESCE(fk_info.is_fk, false),
          'fk_table', fk_info.ref_table,
          'fk_column', fk_info.ref_column
        ) ORDER BY c.ordinal_position
      ) AS columns
    FROM information_schema.tables t
    JOIN information_schema.columns c
      ON c.table_name = t.table_name AND c.table_schema = t.table_schema
    LEFT JOIN LATERAL (
      SELECT true AS is_pk
      FROM information_schema.table_constraints tc
      JOIN information_schema.key_column_usage kcu
        ON tc.constraint_name = kcu.constraint_name AND tc.table_schema = kcu.table_schema
      WHERE tc.constraint_type = 'PRIMARY KEY'
        AND tc.table_name = t.table_name
        AND tc.table_schema = {schema_literal}
        AND kcu.column_name = c.column_name
      LIMIT 1
    ) pk_info ON true
    LEFT JOIN LATERAL (
      SELECT true AS is_fk,
             ccu.table_name AS ref_table,
             ccu.column_name AS ref_column
      FROM information_schema.table_constraints tc
      JOIN information_schema.key_column_usage kcu
        ON tc.constraint_name = kcu.constraint_name AND tc.table_schema = kcu.table_schema
      JOIN information_schema.constraint_column_usage ccu
        ON ccu.constraint_name = tc.constraint_name AND ccu.table_schema = tc.table_schema
      WHERE tc.constraint_type = 'FOREIGN KEY'
        AND tc.table_name = t.table_name
        AND tc.table_schema = {schema_literal}
        AND kcu.column_name = c.column_name
      LIMIT 1
    ) fk_info ON true
    WHERE t.table_schema = {schema_literal}
      AND t.table_type = 'BASE TABLE'{exclusion}
    GROUP BY t.table_name
    ORDER BY t.table_name
    """

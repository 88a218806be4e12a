"""Request and response models for the schema manager endpoint."""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Error message")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status: 'healthy' or 'unhealthy'")
    version: str = Field(description="API version")
    catalog_configured: bool = Field(description="Whether the catalog connection is configured")
    details: dict[str, bool] | None = Field(
        default=None, description="Which catalog settings are present"
    )


def _stringify_default(value: Any) -> Any:
    """Accept JSON numbers and booleans as default values."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _nullable(value: Any) -> Any:
    """Only an explicit false makes a column NOT NULL."""
    return True if value is None else value


# ============================================
# Action requests
# ============================================


class ActionRequest(BaseModel):
    """Envelope every request shares: the action name."""

    action: str = Field(description="Operation to perform")


class AddColumnRequest(ActionRequest):
    """Request to add a column to an existing table."""

    action: Literal["add_column"] = "add_column"
    table_name: str = Field(description="Target table")
    column_name: str = Field(description="New column name")
    column_type: str = Field(
        description="Logical type: text, number, integer, boolean, date, timestamp, select"
    )
    is_nullable: bool = Field(default=True, description="Allow NULL values")
    default_value: str | None = Field(default=None, description="Raw default value")

    @field_validator("default_value", mode="before")
    @classmethod
    def stringify_default(cls, value: Any) -> Any:
        return _stringify_default(value)

    @field_validator("is_nullable", mode="before")
    @classmethod
    def nullable_by_default(cls, value: Any) -> Any:
        return _nullable(value)


class DeleteColumnRequest(ActionRequest):
    """Request to drop an empty column."""

    action: Literal["delete_column"] = "delete_column"
    table_name: str = Field(description="Target table")
    column_name: str = Field(description="Column to drop")


class RenameColumnRequest(ActionRequest):
    """Request to rename a column."""

    action: Literal["rename_column"] = "rename_column"
    table_name: str = Field(description="Target table")
    old_name: str = Field(description="Current column name")
    new_name: str = Field(description="New column name")


class ColumnSpec(BaseModel):
    """Column of a table to be created."""

    name: str = Field(description="Column name")
    type: str = Field(description="Logical column type")
    is_nullable: bool = Field(default=True, description="Allow NULL values")
    default_value: str | None = Field(default=None, description="Raw default value")

    @field_validator("default_value", mode="before")
    @classmethod
    def stringify_default(cls, value: Any) -> Any:
        return _stringify_default(value)

    @field_validator("is_nullable", mode="before")
    @classmethod
    def nullable_by_default(cls, value: Any) -> Any:
        return _nullable(value)


class ForeignKeySpec(BaseModel):
    """UUID column referencing another table's id."""

    column_name: str = Field(description="Referencing column name")
    ref_table: str = Field(description="Referenced table")
    on_delete: Literal["cascade", "set_null"] = Field(
        default="set_null", description="What happens to referencing rows"
    )


class CreateTableRequest(ActionRequest):
    """Request to create a new table."""

    action: Literal["create_table"] = "create_table"
    table_name: str = Field(description="New table name")
    columns: list[ColumnSpec] = Field(default_factory=list, description="User columns")
    foreign_keys: list[ForeignKeySpec] = Field(
        default_factory=list, description="Foreign key columns"
    )

    @field_validator("columns", "foreign_keys", mode="before")
    @classmethod
    def none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


# ============================================
# Responses
# ============================================


class ColumnInfo(BaseModel):
    """Column as reported by the catalog."""

    column_name: str = Field(description="Column name")
    data_type: str | None = Field(default=None, description="SQL data type")
    udt_name: str | None = Field(default=None, description="Underlying type name")
    is_nullable: bool = Field(default=True, description="Whether the column allows NULL")
    column_default: str | None = Field(default=None, description="Default expression")
    is_primary: bool = Field(default=False, description="Part of the primary key")
    is_foreign_key: bool = Field(default=False, description="References another table")
    fk_table: str | None = Field(default=None, description="Referenced table")
    fk_column: str | None = Field(default=None, description="Referenced column")
    friendly_type: str | None = Field(default=None, description="Display label for the type")

    @field_validator("is_nullable", mode="before")
    @classmethod
    def yes_no(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper() == "YES"
        return value


class TableInfo(BaseModel):
    """Table with its columns in physical order."""

    table_name: str = Field(description="Table name")
    columns: list[ColumnInfo] = Field(description="Columns ordered by position")


class SchemaResponse(BaseModel):
    """Response for get_schema."""

    tables: list[TableInfo] = Field(description="Tables ordered by name")


class OperationResponse(BaseModel):
    """Response for mutating actions."""

    success: bool = Field(default=True, description="Whether the operation succeeded")
    message: str = Field(description="Human-readable confirmation")

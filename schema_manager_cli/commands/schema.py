"""Schema inspection commands."""

from typing import Any, Optional

import typer

from ..main import call_service, state
from ..output import print_error, print_info, print_json, print_table


app = typer.Typer(
    name="schema",
    help="Inspect tables and columns",
    no_args_is_help=True,
)


def describe_key(column: dict[str, Any]) -> str:
    """Key/reference cell: PK, or FK -> table.column."""
    if column.get("is_primary"):
        return "PK"
    if column.get("is_foreign_key"):
        return f"FK -> {column.get('fk_table')}.{column.get('fk_column')}"
    return ""


@app.command("show")
def show_schema(
    table: Optional[str] = typer.Argument(None, help="Only show this table"),
) -> None:
    """Show tables with their columns.

    Examples:
        schema-manager schema show
        schema-manager schema show contracts
    """
    tables = call_service("get_schema").get("tables", [])

    if table is not None:
        tables = [t for t in tables if t.get("table_name") == table]
        if not tables:
            print_error(f"Table '{table}' not found")
            raise typer.Exit(1)

    if state.json_output:
        print_json({"tables": tables})
        return

    if not tables:
        print_info("No tables found")
        return

    for entry in tables:
        rows = [
            {
                "Column": column.get("column_name"),
                "Type": column.get("friendly_type") or column.get("data_type"),
                "Nullable": column.get("is_nullable"),
                "Default": column.get("column_default"),
                "Key": describe_key(column),
            }
            for column in entry.get("columns", [])
        ]
        print_table(
            rows,
            columns=["Column", "Type", "Nullable", "Default", "Key"],
            title=entry.get("table_name"),
        )

"""Column management commands."""

from typing import Optional

import typer

from ..main import call_service, state
from ..output import print_json, print_success


app = typer.Typer(
    name="columns",
    help="Add, rename and delete columns",
    no_args_is_help=True,
)


@app.command("add")
def add_column(
    table: str = typer.Argument(..., help="Table name"),
    name: str = typer.Argument(..., help="New column name"),
    column_type: str = typer.Option(
        ..., "--type", "-t",
        help="Column type: text, number, integer, boolean, date, timestamp, select"
    ),
    not_null: bool = typer.Option(False, "--not-null", help="Disallow NULL values"),
    default: Optional[str] = typer.Option(None, "--default", "-d", help="Default value"),
) -> None:
    """Add a column to an existing table.

    Examples:
        schema-manager columns add contracts priority --type integer
        schema-manager columns add contracts status --type select --not-null --default draft
    """
    response = call_service(
        "add_column",
        table_name=table,
        column_name=name,
        column_type=column_type,
        is_nullable=not not_null,
        default_value=default,
    )

    if state.json_output:
        print_json(response)
    else:
        print_success(response.get("message", f"Column '{name}' added to '{table}'"))


@app.command("delete")
def delete_column(
    table: str = typer.Argument(..., help="Table name"),
    name: str = typer.Argument(..., help="Column to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Delete an empty column.

    The service refuses to drop a column that still holds data.
    """
    if not yes and not state.json_output:
        if not typer.confirm(f"Are you sure you want to delete column '{table}.{name}'?"):
            print("Deletion cancelled")
            raise typer.Exit(0)

    response = call_service("delete_column", table_name=table, column_name=name)

    if state.json_output:
        print_json(response)
    else:
        print_success(response.get("message", f"Column '{name}' deleted from '{table}'"))


@app.command("rename")
def rename_column(
    table: str = typer.Argument(..., help="Table name"),
    old_name: str = typer.Argument(..., help="Current column name"),
    new_name: str = typer.Argument(..., help="New column name"),
) -> None:
    """Rename a column."""
    response = call_service(
        "rename_column", table_name=table, old_name=old_name, new_name=new_name
    )

    if state.json_output:
        print_json(response)
    else:
        print_success(
            response.get("message", f"Column renamed from '{old_name}' to '{new_name}'")
        )

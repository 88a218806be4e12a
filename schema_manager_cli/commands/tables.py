"""Table commands for the Schema Manager CLI."""

from typing import Any, Optional

import typer

from ..main import call_service, state
from ..output import print_dict, print_error, print_json, print_success

app = typer.Typer(help="Create tables")

ON_DELETE_CHOICES = ("cascade", "set_null")


def parse_column_spec(spec: str) -> dict[str, Any]:
    """Parse ``name:type[:notnull][=default]`` into a column dict.

    Examples:
        >>> parse_column_spec("amount:number:notnull=0")
        {'name': 'amount', 'type': 'number', 'is_nullable': False, 'default_value': '0'}
    """
    definition, has_default, default = spec.partition("=")
    parts = definition.split(":")
    if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid column spec '{spec}'. Use name:type[:notnull][=default]")
    if len(parts) == 3 and parts[2].lower() != "notnull":
        raise ValueError(f"Invalid column flag '{parts[2]}' in '{spec}'. Only 'notnull' is allowed")

    return {
        "name": parts[0],
        "type": parts[1],
        "is_nullable": len(parts) == 2,
        "default_value": default if has_default else None,
    }


def parse_fk_spec(spec: str) -> dict[str, str]:
    """Parse ``column:ref_table[:cascade|set_null]`` into a foreign key dict."""
    parts = spec.split(":")
    if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
        raise ValueError(
            f"Invalid foreign key spec '{spec}'. Use column:ref_table[:cascade|set_null]"
        )
    on_delete = parts[2].lower().replace("-", "_") if len(parts) == 3 else "set_null"
    if on_delete not in ON_DELETE_CHOICES:
        raise ValueError(f"Invalid on-delete action '{parts[2]}'. Use cascade or set_null")

    return {"column_name": parts[0], "ref_table": parts[1], "on_delete": on_delete}


@app.command("create")
def create_table(
    name: str = typer.Argument(..., help="Table name"),
    column: Optional[list[str]] = typer.Option(
        None, "--column", "-c",
        help="Column as name:type[:notnull][=default] (repeatable)"
    ),
    fk: Optional[list[str]] = typer.Option(
        None, "--fk",
        help="Foreign key as column:ref_table[:cascade|set_null] (repeatable)"
    ),
) -> None:
    """Create a new table.

    Every table gets id and created_at columns, row level security and an
    access policy for signed-in users.

    Column types: text, number, integer, boolean, date, timestamp, select

    Examples:
        schema-manager tables create invoices \\
            --column amount:number:notnull=0 \\
            --column note:text \\
            --fk contract_id:contracts:cascade
    """
    try:
        columns_list = [parse_column_spec(spec) for spec in column or []]
        fk_list = [parse_fk_spec(spec) for spec in fk or []]
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    response = call_service(
        "create_table", table_name=name, columns=columns_list, foreign_keys=fk_list
    )

    if state.json_output:
        print_json(response)
    else:
        print_success(response.get("message", f"Table '{name}' created successfully"))
        print_dict({
            "Name": name,
            "Columns": ", ".join(["id", "created_at"] + [c["name"] for c in columns_list]),
            "Foreign Keys": ", ".join(
                f"{f['column_name']} -> {f['ref_table']} ({f['on_delete']})" for f in fk_list
            ) or "-",
        })

"""Main CLI entry point for the Schema Manager CLI."""

from typing import Any, Optional

import typer

from . import __version__
from .client import APIError, get_client
from .output import print_error


# Create main app
app = typer.Typer(
    name="schema-manager",
    help="CLI tool for the Schema Manager API",
    no_args_is_help=True,
)

# Global state
class GlobalState:
    json_output: bool = False
    verbose: bool = False

state = GlobalState()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        print(f"schema-manager version {__version__}")
        raise typer.Exit()


def call_service(action: str, **fields: Any) -> dict[str, Any]:
    """Run one action against the configured service, exiting with 1 on failure."""
    try:
        client = get_client(verbose=state.verbose)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    try:
        return client.call(action, **fields)
    except APIError as e:
        print_error(e.message)
        raise typer.Exit(1)
    finally:
        client.close()


@app.callback()
def main(
    json_output: bool = typer.Option(
        False, "--json", "-j",
        help="Output as JSON instead of tables"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug information"
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    ),
) -> None:
    """Schema Manager CLI - inspect and change the dashboard's database schema."""
    state.json_output = json_output
    state.verbose = verbose


# Import and register command groups
from .commands import config_cmd, schema, columns, tables

app.add_typer(config_cmd.app, name="config")
app.add_typer(schema.app, name="schema")
app.add_typer(columns.app, name="columns")
app.add_typer(tables.app, name="tables")


if __name__ == "__main__":
    app()

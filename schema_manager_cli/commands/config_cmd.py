"""Configuration management commands."""

import typer

from ..config import get_config, CONFIG_FILE
from ..output import print_dict, print_success, print_error, print_json
from ..main import state


app = typer.Typer(help="Configuration management")


@app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key (url, token)"),
    value: str = typer.Argument(..., help="Configuration value"),
) -> None:
    """Set a configuration value.

    Supported keys:
    - url: Schema Manager API base URL
    - token: Access token of a signed-in dashboard user

    Configuration is saved to ~/.schema-manager/config.yaml
    """
    try:
        config = get_config()
        config.set_value(key, value)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if state.json_output:
        print_json({"success": True, "key": key, "file": str(CONFIG_FILE)})
        return

    display_value = value
    if key.lower().replace("-", "_") in ("token", "access_token"):
        display_value = config.mask_token(value)

    print_success(f"Configuration updated: {key} = {display_value}")
    print_success(f"Saved to: {CONFIG_FILE}")


@app.command("show")
def show_config() -> None:
    """Show current configuration.

    Environment variables (SCHEMA_MANAGER_URL, SCHEMA_MANAGER_TOKEN) take
    precedence over the config file. The token is masked.
    """
    config = get_config()

    if state.json_output:
        print_json(config.to_dict())
        return

    print_dict(config.to_dict(), title="Current Configuration")

    if CONFIG_FILE.exists():
        print_success(f"\nConfig file: {CONFIG_FILE}")
    else:
        print_error(f"\nConfig file not found: {CONFIG_FILE}")

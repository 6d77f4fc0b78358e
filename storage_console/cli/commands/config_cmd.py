"""Configuration management commands."""

import typer

from .. import config as cli_config
from ..config import get_config
from ..output import print_dict, print_success, print_error, print_json
from ..main import state


app = typer.Typer(help="Configuration management")

SECRET_KEYS = ("token", "refresh-token", "refresh_token")


@app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key (url, token, refresh-token, timeout)"),
    value: str = typer.Argument(..., help="Configuration value"),
) -> None:
    """Set a configuration value.

    Configuration is saved to ~/.storage-console/config.yaml
    """
    try:
        config = get_config()
        config.set_value(key, value)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if state.json_output:
        print_json({"success": True, "key": key, "file": str(cli_config.CONFIG_FILE)})
    else:
        display_value = value
        if key.lower() in SECRET_KEYS:
            display_value = config._mask_token(value) if value else ""

        print_success(f"Configuration updated: {key} = {display_value}")
        print_success(f"Saved to: {cli_config.CONFIG_FILE}")


@app.command("get")
def get_config_value(
    key: str = typer.Argument(..., help="Configuration key"),
) -> None:
    """Print a single configuration value."""
    try:
        value = get_config().get_value(key)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if state.json_output:
        print_json({key: value})
    else:
        print(value)


@app.command("show")
def show_config() -> None:
    """Show current configuration.

    Environment variables (STORAGE_CONSOLE_URL, STORAGE_CONSOLE_TOKEN) take
    precedence over the config file. Tokens are masked.
    """
    config = get_config()

    if state.json_output:
        print_json(config.to_dict())
    else:
        print_dict(config.to_dict(), title="Current Configuration")

        if cli_config.CONFIG_FILE.exists():
            print_success(f"\nConfig file: {cli_config.CONFIG_FILE}")
        else:
            print_error(f"\nConfig file not found: {cli_config.CONFIG_FILE}")

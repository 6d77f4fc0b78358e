"""``storage-console`` command: global flags and command registration."""

from dataclasses import dataclass
from typing import Optional

import typer

from . import __version__


app = typer.Typer(
    name="storage-console",
    help="Manage buckets and objects through a Storage Console server",
    no_args_is_help=True,
)


@dataclass
class GlobalState:
    """Flags given before the subcommand, read by every command module."""

    json_output: bool = False
    verbose: bool = False


state = GlobalState()


def _show_version(value: bool) -> None:
    if not value:
        return
    print(f"storage-console version {__version__}")
    raise typer.Exit()


@app.callback()
def main(
    json_output: bool = typer.Option(
        False, "--json", "-j", help="Print raw JSON instead of tables"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show each HTTP request and its timing"
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", "-V", callback=_show_version, is_eager=True,
        help="Print the CLI version and exit",
    ),
) -> None:
    """Operator CLI for the Storage Console API."""
    state.json_output = json_output
    state.verbose = verbose


# Command modules import ``state`` from here, so they load after it exists.
from .commands import auth, buckets, config_cmd, objects  # noqa: E402

app.add_typer(config_cmd.app, name="config")
app.add_typer(buckets.app, name="buckets")
app.add_typer(objects.app, name="objects")

for command in (auth.login, auth.logout, auth.refresh, auth.regions, auth.status):
    app.command(command.__name__)(command)


if __name__ == "__main__":
    app()

"""Session commands: login, logout, token refresh, regions, and server status."""

import typer

from ..client import get_client, handle_errors
from .. import config as cli_config
from ..config import get_config
from ..output import print_dict, print_json, print_success, print_table, print_warning
from ..main import state


def login(
    access_key: str = typer.Argument(..., help="Storage access key"),
    region: str = typer.Option("eu-west-2", "--region", "-r", help="Region identifier"),
    secret_key: str = typer.Option(
        ..., "--secret-key",
        prompt="Secret key",
        hide_input=True,
        envvar="STORAGE_CONSOLE_SECRET_KEY",
        help="Storage secret key (prompted if omitted)",
    ),
) -> None:
    """Log in with storage credentials and save the session token."""
    config = get_config()

    with handle_errors():
        client = get_client(verbose=state.verbose, require_token=False, config=config, token="")
        try:
            response = client.post(
                "/auth/login",
                {"accessKey": access_key, "secretKey": secret_key, "region": region},
            )
        finally:
            client.close()

    data = response.get("data", {})
    config.token = data.get("token", "")
    config.refresh_token = data.get("refreshToken", "")
    config.save()

    if state.json_output:
        print_json({"user": data.get("user", {}), "expiresIn": data.get("expiresIn")})
    else:
        user = data.get("user", {})
        print_success(f"Logged in as {user.get('accessKeyMasked', '')} ({user.get('region', region)})")
        print_success(f"Token saved to: {cli_config.CONFIG_FILE}")


def logout() -> None:
    """End the current session and forget the saved tokens."""
    config = get_config()

    with handle_errors():
        client = get_client(verbose=state.verbose, config=config)
        try:
            response = client.post("/auth/logout")
        finally:
            client.close()

    config.clear_tokens()

    if state.json_output:
        print_json(response)
    else:
        print_success(response.get("message") or "Logged out")


def refresh() -> None:
    """Exchange the saved refresh token for a new session token."""
    config = get_config()
    if not config.refresh_token:
        print_warning("No refresh token saved, using the session token")

    with handle_errors():
        client = get_client(
            verbose=state.verbose,
            config=config,
            token=config.refresh_token or None,
        )
        try:
            response = client.post("/auth/refresh")
        finally:
            client.close()

    data = response.get("data", {})
    config.token = data.get("token", "")
    config.save()

    if state.json_output:
        print_json({"expiresIn": data.get("expiresIn")})
    else:
        print_success(f"Session token refreshed (expires in {data.get('expiresIn')}s)")


def regions() -> None:
    """List regions the server can connect to."""
    with handle_errors():
        client = get_client(verbose=state.verbose, require_token=False)
        try:
            response = client.get("/auth/regions")
        finally:
            client.close()

    items = response.get("data", [])

    if state.json_output:
        print_json(items)
        return

    print_table(
        [
            {"ID": r.get("id"), "Name": r.get("displayName"), "Endpoint": r.get("endpoint")}
            for r in items
        ],
        columns=["ID", "Name", "Endpoint"],
        title="Regions",
    )


def status() -> None:
    """Show server health and in-flight operations."""
    with handle_errors():
        client = get_client(verbose=state.verbose, require_token=False)
        try:
            health = client.get("/health")
            operations = client.get("/status/operations")
        finally:
            client.close()

    if state.json_output:
        print_json({"health": health, "operations": operations})
        return

    print_dict(
        {
            "Status": health.get("status"),
            "Version": health.get("version"),
            "Uptime (s)": health.get("uptimeSeconds"),
            "Active operations": operations.get("activeOperations"),
            "Can shut down": operations.get("canShutdown"),
            "Shutting down": operations.get("shuttingDown"),
        },
        title="Server Status",
    )

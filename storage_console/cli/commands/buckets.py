"""Bucket management commands."""

from urllib.parse import quote

import typer

from ..client import get_client, handle_errors
from ..output import print_buckets, print_json, print_success, print_warning
from ..main import state


app = typer.Typer(
    name="buckets",
    help="Manage buckets",
    no_args_is_help=True,
)


@app.command("list")
def list_buckets() -> None:
    """List buckets with object counts and sizes."""
    with handle_errors():
        client = get_client(verbose=state.verbose)
        try:
            response = client.get("/s3/buckets")
        finally:
            client.close()

    buckets = response.get("data", [])

    if state.json_output:
        print_json({"buckets": buckets, "total": len(buckets)})
        return

    if not buckets:
        print("No buckets found")
        return

    print_buckets(buckets)


@app.command("create")
def create_bucket(
    name: str = typer.Argument(..., help="Bucket name (lowercase letters, digits, dots, hyphens)"),
    region: str = typer.Option("", "--region", "-r", help="Region (defaults to the session region)"),
) -> None:
    """Create a new bucket."""
    payload = {"name": name}
    if region:
        payload["region"] = region

    with handle_errors():
        client = get_client(verbose=state.verbose)
        try:
            response = client.post("/s3/buckets", payload)
        finally:
            client.close()

    if state.json_output:
        print_json(response)
    else:
        print_success(response.get("message") or f"Bucket '{name}' created successfully")


@app.command("delete")
def delete_bucket(
    name: str = typer.Argument(..., help="Bucket name"),
    force: bool = typer.Option(False, "--force", "-f", help="Delete all objects first"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a bucket. With --force, every object in it is deleted first."""
    if force and not yes:
        typer.confirm(f"Delete bucket '{name}' and ALL of its objects?", abort=True)

    with handle_errors():
        client = get_client(verbose=state.verbose)
        try:
            response = client.delete(
                f"/s3/buckets/{quote(name, safe='')}",
                params={"force": "true" if force else "false"},
            )
        finally:
            client.close()

    data = response.get("data") or {}

    if state.json_output:
        print_json(response)
        return

    print_success(response.get("message") or f"Bucket '{name}' deleted successfully")
    if force:
        print_success(f"Objects deleted: {data.get('deletedObjects', 0)}")
    if data.get("failedObjects"):
        print_warning(f"Objects that could not be deleted: {data['failedObjects']}")

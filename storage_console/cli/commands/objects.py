"""Object commands: list, upload, delete, download URLs, and folders."""

from pathlib import Path
from urllib.parse import quote

import typer

from ..client import get_client, handle_errors, object_path
from ..output import format_bytes, print_entries, print_json, print_success
from ..main import state


app = typer.Typer(
    name="objects",
    help="Manage objects and folders in a bucket",
    no_args_is_help=True,
)


def _bucket_path(bucket: str) -> str:
    return f"/s3/buckets/{quote(bucket, safe='')}"


@app.command("list")
def list_objects(
    bucket: str = typer.Argument(..., help="Bucket name"),
    path: str = typer.Option("", "--path", "-p", help="Folder path to list"),
) -> None:
    """List folders and files directly under a path."""
    with handle_errors():
        client = get_client(verbose=state.verbose)
        try:
            response = client.get(f"{_bucket_path(bucket)}/objects", params={"path": path})
        finally:
            client.close()

    entries = response.get("data", [])

    if state.json_output:
        print_json(entries)
        return

    if not entries:
        print(f"No objects found in '{bucket}/{path}'")
        return

    print_entries(f"{bucket}/{path}", entries)


@app.command("upload")
def upload_object(
    bucket: str = typer.Argument(..., help="Bucket name"),
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Local file"),
    path: str = typer.Option("", "--path", "-p", help="Folder path to upload into"),
) -> None:
    """Upload a local file (100 MB max)."""
    with handle_errors():
        client = get_client(verbose=state.verbose)
        try:
            with open(file_path, "rb") as f:
                response = client.upload_file(
                    f"{_bucket_path(bucket)}/upload",
                    f,
                    file_path.name,
                    data={"path": path} if path else None,
                    show_progress=not state.json_output,
                )
        finally:
            client.close()

    data = response.get("data", {})

    if state.json_output:
        print_json(data)
    else:
        print_success(f"Uploaded {data.get('key', file_path.name)} ({format_bytes(data.get('size', 0))})")


@app.command("delete")
def delete_object(
    bucket: str = typer.Argument(..., help="Bucket name"),
    key: str = typer.Argument(..., help="Object key"),
) -> None:
    """Delete an object."""
    with handle_errors():
        client = get_client(verbose=state.verbose)
        try:
            response = client.delete(object_path(bucket, key))
        finally:
            client.close()

    if state.json_output:
        print_json(response)
    else:
        print_success(response.get("message") or f"Deleted {key}")


@app.command("url")
def download_url(
    bucket: str = typer.Argument(..., help="Bucket name"),
    key: str = typer.Argument(..., help="Object key"),
) -> None:
    """Print a pre-signed download URL for an object."""
    with handle_errors():
        client = get_client(verbose=state.verbose)
        try:
            response = client.get(object_path(bucket, key, "/download"))
        finally:
            client.close()

    data = response.get("data", {})

    if state.json_output:
        print_json(data)
    else:
        print(data.get("url", ""))


@app.command("mkdir")
def create_folder(
    bucket: str = typer.Argument(..., help="Bucket name"),
    name: str = typer.Argument(..., help="Folder name"),
    path: str = typer.Option("", "--path", "-p", help="Parent folder path"),
) -> None:
    """Create a folder."""
    payload = {"folderName": name}
    if path:
        payload["path"] = path

    with handle_errors():
        client = get_client(verbose=state.verbose)
        try:
            response = client.post(f"{_bucket_path(bucket)}/folders", payload)
        finally:
            client.close()

    if state.json_output:
        print_json(response.get("data", {}))
    else:
        print_success(response.get("message") or f"Folder '{name}' created successfully")

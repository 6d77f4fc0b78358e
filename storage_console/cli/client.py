"""HTTP client for the Storage Console API."""

import os
from contextlib import contextmanager
from typing import Any, BinaryIO, Iterator
from urllib.parse import quote

import httpx
import typer
from rich.progress import BarColumn, DownloadColumn, Progress, SpinnerColumn, TextColumn

from .config import CLIConfig, ClientConfig, get_config
from .output import print_error

PROGRESS_THRESHOLD = 1024 * 1024


class APIError(Exception):
    """API error with status code and the server's error code."""

    def __init__(self, status_code: int, message: str, error: str | None = None):
        self.status_code = status_code
        self.message = message
        self.error = error
        super().__init__(f"[{status_code}] {message}")


class ConfigError(Exception):
    """CLI is not configured well enough to make the request."""


class ConsoleClient:
    """HTTP client for the Storage Console API.

    All connection settings come from the ``ClientConfig`` passed in; the
    client never reads global state.
    """

    def __init__(self, config: ClientConfig, verbose: bool = False):
        self.config = config
        self.verbose = verbose
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            headers = {}
            if self.config.token:
                headers["Authorization"] = f"Bearer {self.config.token}"
            self._client = httpx.Client(
                base_url=self.config.base_url,
                headers=headers,
                timeout=self.config.timeout,
            )
        return self._client

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ConsoleClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Unwrap the response envelope, raising APIError on failure."""
        if self.verbose:
            print(f"  -> {response.status_code} ({response.elapsed.total_seconds():.2f}s)")

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_success:
            return body if isinstance(body, dict) else {}

        if isinstance(body, dict):
            message = body.get("message") or body.get("error") or response.text
            raise APIError(response.status_code, message, body.get("error"))
        raise APIError(response.status_code, response.text or f"HTTP {response.status_code}")

    def _request(self, method: str, path: str, note: str = "", **kwargs: Any) -> dict[str, Any]:
        if self.verbose:
            print(f"{method} {path}{note}")
        return self._handle_response(self.client.request(method, path, **kwargs))

    def get(self, path: str, params: dict | None = None) -> dict[str, Any]:
        return self._request("GET", path, params=params)

    def post(
        self,
        path: str,
        json_data: dict | None = None,
        params: dict | None = None,
    ) -> dict[str, Any]:
        return self._request("POST", path, json=json_data, params=params)

    def delete(self, path: str, params: dict | None = None) -> dict[str, Any]:
        return self._request("DELETE", path, params=params)

    def upload_file(
        self,
        path: str,
        file: BinaryIO,
        filename: str,
        data: dict[str, str] | None = None,
        show_progress: bool = True,
    ) -> dict[str, Any]:
        """POST ``file`` as the multipart ``file`` field, with ``data`` as extra form fields.

        Files above ``PROGRESS_THRESHOLD`` get a rich progress bar.
        """
        file.seek(0, os.SEEK_END)
        size = file.tell()
        file.seek(0)
        kwargs = {"files": {"file": (filename, file)}, "data": data}

        if not show_progress or size <= PROGRESS_THRESHOLD:
            return self._request("POST", path, " (file upload)", **kwargs)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
        ) as progress:
            task = progress.add_task(f"Uploading {filename}", total=size)
            result = self._request("POST", path, " (file upload)", **kwargs)
            progress.update(task, completed=size)
        return result


def object_path(bucket: str, key: str, suffix: str = "") -> str:
    """Build the API path for an object key, keeping its slashes."""
    return f"/s3/buckets/{quote(bucket, safe='')}/objects/{quote(key, safe='/')}{suffix}"


def get_client(
    verbose: bool = False,
    require_token: bool = True,
    config: CLIConfig | None = None,
    token: str | None = None,
) -> ConsoleClient:
    """Get an API client built from the CLI configuration."""
    config = config or get_config()
    errors = config.validate(require_token=require_token and token is None)
    if errors:
        raise ConfigError("\n".join(errors))
    return ConsoleClient(config.client_config(token=token), verbose=verbose)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Report API and configuration errors and exit with status 1."""
    try:
        yield
    except APIError as e:
        print_error(e.message)
        raise typer.Exit(1)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        print_error(f"Request failed: {e}")
        raise typer.Exit(1)

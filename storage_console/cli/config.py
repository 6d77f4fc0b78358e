"""Configuration management for the Storage Console CLI."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any
import os

import yaml


CONFIG_DIR = Path.home() / ".storage-console"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings handed to ConsoleClient."""

    base_url: str
    token: str = ""
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class CLIConfig:
    """CLI configuration."""

    url: str = ""
    token: str = ""
    refresh_token: str = ""
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def load(cls) -> "CLIConfig":
        """Load configuration from file and environment.

        Priority (highest to lowest):
        1. Environment variables (STORAGE_CONSOLE_URL, STORAGE_CONSOLE_TOKEN)
        2. Config file (~/.storage-console/config.yaml)
        3. Defaults
        """
        config = cls()

        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = yaml.safe_load(f) or {}
                config.url = data.get("url", "")
                config.token = data.get("token", "")
                config.refresh_token = data.get("refresh_token", "")
                config.timeout = float(data.get("timeout", DEFAULT_TIMEOUT))
            except (OSError, yaml.YAMLError, ValueError, TypeError):
                pass  # Unreadable file, fall back to defaults

        if env_url := os.environ.get("STORAGE_CONSOLE_URL"):
            config.url = env_url
        if env_token := os.environ.get("STORAGE_CONSOLE_TOKEN"):
            config.token = env_token

        return config

    def save(self) -> None:
        """Save configuration to file."""
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "url": self.url,
            "token": self.token,
            "refresh_token": self.refresh_token,
            "timeout": self.timeout,
        }

        with open(CONFIG_FILE, "w") as f:
            yaml.dump(data, f, default_flow_style=False)

    def set_value(self, key: str, value: str) -> None:
        """Set a configuration value."""
        key_normalized = key.lower().replace("-", "_")

        if key_normalized == "url":
            self.url = value.rstrip("/")
        elif key_normalized == "token":
            self.token = value
        elif key_normalized == "refresh_token":
            self.refresh_token = value
        elif key_normalized == "timeout":
            try:
                self.timeout = float(value)
            except ValueError:
                raise ValueError(f"Timeout must be a number of seconds: {value}")
        else:
            raise ValueError(f"Unknown config key: {key}")

        self.save()

    def get_value(self, key: str) -> str:
        """Get a configuration value."""
        key_normalized = key.lower().replace("-", "_")

        if key_normalized == "url":
            return self.url
        elif key_normalized == "token":
            return self.token
        elif key_normalized == "refresh_token":
            return self.refresh_token
        elif key_normalized == "timeout":
            return str(self.timeout)
        else:
            raise ValueError(f"Unknown config key: {key}")

    def clear_tokens(self) -> None:
        self.token = ""
        self.refresh_token = ""
        self.save()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display."""
        return {
            "url": self.url,
            "token": self._mask_token(self.token) if self.token else "",
            "refresh_token": self._mask_token(self.refresh_token) if self.refresh_token else "",
            "timeout": self.timeout,
        }

    @staticmethod
    def _mask_token(token: str) -> str:
        """Mask a token for display."""
        if len(token) <= 8:
            return "*" * len(token)
        return token[:4] + "*" * 8 + token[-4:]

    def validate(self, require_token: bool = True) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []
        if not self.url:
            errors.append("URL not configured. Use: storage-console config set url <url>")
        if require_token and not self.token:
            errors.append("Not logged in. Use: storage-console login <access-key>")
        return errors

    def client_config(self, token: str | None = None) -> ClientConfig:
        """Build the HTTP client configuration, optionally with another bearer token."""
        return ClientConfig(
            base_url=self.url,
            token=self.token if token is None else token,
            timeout=self.timeout,
        )


def get_config() -> CLIConfig:
    """Get the current configuration."""
    return CLIConfig.load()

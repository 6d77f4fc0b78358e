"""Tests for CLI configuration management."""

from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from storage_console.cli.config import DEFAULT_TIMEOUT, CLIConfig
from storage_console.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at a temporary config file with no env overrides."""
    path = tmp_path / ".storage-console" / "config.yaml"
    monkeypatch.setattr("storage_console.cli.config.CONFIG_FILE", path)
    monkeypatch.delenv("STORAGE_CONSOLE_URL", raising=False)
    monkeypatch.delenv("STORAGE_CONSOLE_TOKEN", raising=False)
    return path


class TestCLIConfig:
    """Tests for CLIConfig class."""

    def test_default_values(self) -> None:
        config = CLIConfig()
        assert config.url == ""
        assert config.token == ""
        assert config.timeout == DEFAULT_TIMEOUT

    def test_load_without_file(self) -> None:
        config = CLIConfig.load()
        assert config.url == ""
        assert config.token == ""

    def test_load_from_file(self, config_file: Path) -> None:
        config_file.parent.mkdir()
        config_file.write_text(
            yaml.dump({"url": "http://test-file", "token": "file-token", "timeout": 5})
        )

        config = CLIConfig.load()
        assert config.url == "http://test-file"
        assert config.token == "file-token"
        assert config.timeout == 5.0

    def test_env_overrides_file(self, config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file.parent.mkdir()
        config_file.write_text(yaml.dump({"url": "http://test-file", "token": "file-token"}))
        monkeypatch.setenv("STORAGE_CONSOLE_URL", "http://test-env")
        monkeypatch.setenv("STORAGE_CONSOLE_TOKEN", "env-token")

        config = CLIConfig.load()
        assert config.url == "http://test-env"
        assert config.token == "env-token"

    def test_corrupt_file_falls_back_to_defaults(self, config_file: Path) -> None:
        config_file.parent.mkdir()
        config_file.write_text("url: [unclosed")

        assert CLIConfig.load().url == ""

    def test_save_creates_directory(self, config_file: Path) -> None:
        CLIConfig(url="http://saved", token="t", refresh_token="r").save()

        data = yaml.safe_load(config_file.read_text())
        assert data == {
            "url": "http://saved",
            "token": "t",
            "refresh_token": "r",
            "timeout": DEFAULT_TIMEOUT,
        }

    def test_set_value_normalizes_url(self) -> None:
        config = CLIConfig()
        config.set_value("url", "http://api.example.com/")
        assert config.url == "http://api.example.com"

    def test_set_value_accepts_dashed_keys(self) -> None:
        config = CLIConfig()
        config.set_value("refresh-token", "abc")
        assert config.get_value("refresh_token") == "abc"

    def test_set_value_invalid_timeout(self) -> None:
        with pytest.raises(ValueError, match="Timeout"):
            CLIConfig().set_value("timeout", "soon")

    def test_unknown_key(self) -> None:
        with pytest.raises(ValueError, match="Unknown config key"):
            CLIConfig().get_value("password")

    def test_clear_tokens(self, config_file: Path) -> None:
        config = CLIConfig(url="http://x", token="t", refresh_token="r")
        config.clear_tokens()

        data = yaml.safe_load(config_file.read_text())
        assert data["token"] == ""
        assert data["refresh_token"] == ""
        assert data["url"] == "http://x"

    def test_mask_token(self) -> None:
        assert CLIConfig._mask_token("short") == "*****"
        assert CLIConfig._mask_token("abcdefghijklmnop") == "abcd********mnop"

    def test_validate(self) -> None:
        assert len(CLIConfig().validate()) == 2
        assert CLIConfig(url="http://x").validate(require_token=False) == []
        assert CLIConfig(url="http://x", token="t").validate() == []

    def test_client_config_token_override(self) -> None:
        config = CLIConfig(url="http://x", token="session", timeout=3)

        assert config.client_config().token == "session"
        assert config.client_config(token="refresh").token == "refresh"
        assert config.client_config(token="").token == ""
        assert config.client_config().timeout == 3


class TestConfigCommands:
    """Tests for the config command group."""

    def test_set_and_get(self, config_file: Path) -> None:
        result = runner.invoke(app, ["config", "set", "url", "http://api.example.com/"])
        assert result.exit_code == 0
        assert "Configuration updated" in result.stdout

        result = runner.invoke(app, ["config", "get", "url"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "http://api.example.com"

    def test_set_token_is_masked(self) -> None:
        result = runner.invoke(app, ["config", "set", "token", "abcdefghijklmnop"])

        assert result.exit_code == 0
        assert "abcdefghijklmnop" not in result.stdout
        assert "abcd********mnop" in result.stdout

    def test_set_unknown_key(self) -> None:
        result = runner.invoke(app, ["config", "set", "password", "x"])
        assert result.exit_code == 1

    def test_show_json(self) -> None:
        CLIConfig(url="http://x", token="abcdefghijklmnop").save()

        result = runner.invoke(app, ["--json", "config", "show"])

        assert result.exit_code == 0
        assert '"url": "http://x"' in result.stdout
        assert '"token": "abcd********mnop"' in result.stdout

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "storage-console version" in result.stdout

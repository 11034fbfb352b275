"""Tests for Config loading from settings.yaml and .env."""

from pathlib import Path

import discord
import pytest
import yaml

from glimmer.config import Config
from glimmer.rest import DISCORD_API_BASE

_ENV_VARS = ("DISCORD_TOKEN", "DISCORD_APPLICATION_ID")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start without credentials and drop anything a .env file loads."""
    for name in _ENV_VARS:
        # setenv first so teardown restores the variable's absence
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)


def _config(tmp_path: Path, settings=None, env: str = "") -> Config:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    if settings is not None:
        (config_dir / "settings.yaml").write_text(yaml.safe_dump(settings))
    if env:
        (config_dir / ".env").write_text(env)
    return Config(config_dir=config_dir)


def test_defaults_without_files(tmp_path):
    config = _config(tmp_path)
    assert config.token == ""
    assert config.application_id == ""
    assert config.module_dirs == []
    assert config.refresh_commands_on_start is True
    assert config.api_base_url == DISCORD_API_BASE
    assert config.log_dir == tmp_path / "logs"
    assert config.logging_level == "INFO"
    assert config.logging_subsystem_levels == {}
    assert config.logging_max_file_size_mb == 10
    assert config.logging_backup_count == 5


def test_settings_values(tmp_path):
    config = _config(tmp_path, {
        "token": "yaml-token",
        "application_id": 1234,
        "modules": ["modules/basic", "/srv/bot/extra"],
        "refresh_commands_on_start": False,
        "logging": {"level": "DEBUG", "subsystem_levels": {"dispatch": "WARNING"}},
    })
    assert config.token == "yaml-token"
    assert config.application_id == "1234"
    assert config.module_dirs == [
        tmp_path / "config" / "modules" / "basic",
        Path("/srv/bot/extra"),
    ]
    assert config.refresh_commands_on_start is False
    assert config.logging_level == "DEBUG"
    assert config.logging_subsystem_levels == {"dispatch": "WARNING"}


def test_environment_takes_precedence(tmp_path, monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "env-token")
    config = _config(tmp_path, {"token": "yaml-token"})
    assert config.token == "env-token"


def test_dotenv_file_loaded(tmp_path):
    config = _config(tmp_path, env="DISCORD_TOKEN=dotenv-token\nDISCORD_APPLICATION_ID=99\n")
    assert config.token == "dotenv-token"
    assert config.application_id == "99"


def test_intents_extend_defaults(tmp_path):
    config = _config(tmp_path, {"intents": ["message_content", "members", "not_a_flag"]})
    intents = config.intents
    assert isinstance(intents, discord.Intents)
    assert intents.message_content is True
    assert intents.members is True
    assert intents.guilds is True


def test_invalid_module_list_ignored(tmp_path):
    config = _config(tmp_path, {"modules": "modules/basic"})
    assert config.module_dirs == []


def test_validate_does_not_raise(tmp_path):
    config = _config(tmp_path, {"application_id": "not-a-number", "modules": ["missing"]})
    config.validate()

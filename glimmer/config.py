"""Configuration management for glimmer bots.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a Config object. Property getters provide safe access with
defaults for the Discord credentials, module directories, client
intents, command publishing and logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

import discord
import structlog
import yaml
from dotenv import load_dotenv

from .rest import DISCORD_API_BASE

logger = structlog.get_logger("glimmer.bot")


class Config:
    """Central configuration manager for a glimmer bot.

    Loads settings.yaml and .env from the config directory. Secrets
    (token, application ID) come from the environment first and fall
    back to settings.yaml.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``$GLIMMER_CONFIG_DIR`` or ``./config``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(os.environ.get("GLIMMER_CONFIG_DIR", "config"))
        self.config_dir = Path(config_dir)

        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Parse a YAML file from the config dir; missing or empty gives {}."""
        path = self.config_dir / filename
        if not path.exists():
            return {}
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.error("settings_invalid_type", file=str(path), type=type(data).__name__)
            return {}
        return data

    @property
    def token(self) -> str:
        """Discord bot token. Env var DISCORD_TOKEN takes precedence."""
        return os.environ.get("DISCORD_TOKEN") or self.settings.get("token", "")

    @property
    def application_id(self) -> str:
        """Discord application ID. Env var DISCORD_APPLICATION_ID takes precedence."""
        value = os.environ.get("DISCORD_APPLICATION_ID") or self.settings.get("application_id", "")
        return str(value)

    @property
    def module_dirs(self) -> List[Path]:
        """Module directories to discover, relative to the config dir."""
        dirs = self.settings.get("modules", [])
        if not isinstance(dirs, list):
            logger.error("modules_invalid_type", type=type(dirs).__name__)
            return []
        resolved = []
        for entry in dirs:
            path = Path(str(entry)).expanduser()
            if not path.is_absolute():
                path = self.config_dir / path
            resolved.append(path)
        return resolved

    @property
    def intent_names(self) -> List[str]:
        """Intent flag names to enable on top of the library defaults."""
        names = self.settings.get("intents", [])
        if not isinstance(names, list):
            logger.error("intents_invalid_type", type=type(names).__name__)
            return []
        return [str(name) for name in names]

    @property
    def intents(self) -> discord.Intents:
        """discord.Intents built from the defaults plus ``intents`` entries."""
        intents = discord.Intents.default()
        for name in self.intent_names:
            if name not in discord.Intents.VALID_FLAGS:
                logger.warning("unknown_intent", intent=name)
                continue
            setattr(intents, name, True)
        return intents

    @property
    def refresh_commands_on_start(self) -> bool:
        """Publish the command list before connecting (default True)."""
        return bool(self.settings.get("refresh_commands_on_start", True))

    @property
    def api_base_url(self) -> str:
        """Discord REST API root."""
        return self.settings.get("api_base_url", DISCORD_API_BASE)

    @property
    def log_dir(self) -> Path:
        """Where rotating log files go (``log_dir`` setting, else ``<config>/../logs``)."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(str(configured)).expanduser()
        return self.config_dir.parent / "logs"

    def _logging_option(self, key: str, default):
        section = self.settings.get("logging") or {}
        if not isinstance(section, dict):
            logger.error("logging_invalid_type", type=type(section).__name__)
            return default
        return section.get(key, default)

    @property
    def logging_level(self) -> str:
        """Level for the console and glimmer.log (``logging.level``, default INFO)."""
        return str(self._logging_option("level", "INFO"))

    @property
    def logging_subsystem_levels(self) -> Dict[str, str]:
        """Per-subsystem overrides, e.g. ``{"dispatch": "DEBUG"}``."""
        levels = self._logging_option("subsystem_levels", {})
        return {str(k): str(v) for k, v in levels.items()} if isinstance(levels, dict) else {}

    @property
    def logging_max_file_size_mb(self) -> int:
        return int(self._logging_option("max_file_size_mb", 10))

    @property
    def logging_backup_count(self) -> int:
        return int(self._logging_option("backup_count", 5))

    def validate(self) -> None:
        """Report missing credentials and module directories.

        Logs warnings/errors but does not raise; the caller decides
        whether a missing token is fatal.
        """
        if not self.token:
            logger.error("missing_token", msg="Set DISCORD_TOKEN or token in settings.yaml")
        if not self.application_id:
            logger.error(
                "missing_application_id",
                msg="Set DISCORD_APPLICATION_ID or application_id in settings.yaml",
            )
        elif not self.application_id.isdigit():
            logger.error("invalid_application_id", application_id=self.application_id)
        dirs = self.module_dirs
        if not dirs:
            logger.warning("no_modules_configured", msg="Bot will have no commands")
        for path in dirs:
            if not path.is_dir():
                logger.error("module_dir_missing", path=str(path))


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config

"""Logging setup for glimmer bots.

structlog renders events; stdlib logging routes them. Every glimmer
logger lives under the "glimmer" namespace, so one rotating file
collects everything and each subsystem additionally writes its own:

    root                  console (stdout)
      glimmer             glimmer.log
        glimmer.bot       bot.log        config, startup, shutdown
        glimmer.discovery discovery.log  module loading
        glimmer.dispatch  dispatch.log   registry and command routing
        glimmer.platform  platform.log   Discord client, REST, events

Bot tokens and Authorization header values are scrubbed from every
event before it is rendered.
"""

import logging
import logging.handlers
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

SUBSYSTEMS = ("bot", "discovery", "dispatch", "platform")

LOGGER_PREFIX = "glimmer"

_MEGABYTE = 1024 * 1024

_REDACTED = "***REDACTED***"

_SECRET_PATTERNS = (
    # Bot token: base64 snowflake, timestamp, HMAC
    re.compile(r"[MNO][a-zA-Z\d_-]{23,25}\.[a-zA-Z\d_-]{6}\.[a-zA-Z\d_-]{27,38}"),
    re.compile(r"(?:Bot|Bearer)\s+[a-zA-Z0-9_./-]{20,}"),
)


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        for pattern in _SECRET_PATTERNS:
            value = pattern.sub(_REDACTED, value)
        return value
    if isinstance(value, dict):
        return {key: _scrub(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_scrub(item) for item in value)
    return value


def sanitize_secrets(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor redacting tokens anywhere in the event."""
    return {key: _scrub(value) for key, value in event_dict.items()}


@dataclass
class _LogSettings:
    level: int = logging.INFO
    subsystem_levels: Dict[str, int] = field(default_factory=dict)
    log_dir: Optional[Path] = None
    max_bytes: int = 10 * _MEGABYTE
    backup_count: int = 5

    @classmethod
    def from_config(cls, config) -> "_LogSettings":
        level = _level(config.logging_level, logging.INFO)
        return cls(
            level=level,
            subsystem_levels={
                name: _level(value, level)
                for name, value in config.logging_subsystem_levels.items()
            },
            log_dir=config.log_dir,
            max_bytes=int(config.logging_max_file_size_mb) * _MEGABYTE,
            backup_count=int(config.logging_backup_count),
        )


def _level(name: Any, default: int) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


# Processors shared by the structlog chain and the file formatter
_SHARED_PROCESSORS = (
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
)


def _reset(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


def _file_handler(path: Path, level: int, settings: _LogSettings) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    ))
    return handler


def _usable_log_dir(settings: _LogSettings) -> Optional[Path]:
    if settings.log_dir is None:
        return None
    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(
            f"WARNING: Cannot create log directory {settings.log_dir}: {exc}. "
            "Logging to the console only.",
            file=sys.stderr,
        )
        return None
    return settings.log_dir


def setup_logging(config=None) -> None:
    """Configure structlog and the stdlib handler tree.

    Called once with no config at process start (console only, loggers
    left uncached) and again with the loaded Config, which adds the
    rotating files and applies the configured levels. Safe to repeat:
    handlers from an earlier call are replaced.

    Args:
        config: Optional Config instance.
    """
    settings = _LogSettings.from_config(config) if config is not None else _LogSettings()
    log_dir = _usable_log_dir(settings)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(settings.level)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    root.addHandler(console)

    package_logger = logging.getLogger(LOGGER_PREFIX)
    _reset(package_logger, logging.DEBUG)
    if log_dir is not None:
        package_logger.addHandler(
            _file_handler(log_dir / f"{LOGGER_PREFIX}.log", settings.level, settings)
        )

    for subsystem in SUBSYSTEMS:
        level = settings.subsystem_levels.get(subsystem, settings.level)
        sub_logger = logging.getLogger(f"{LOGGER_PREFIX}.{subsystem}")
        _reset(sub_logger, level)
        if log_dir is not None:
            sub_logger.addHandler(_file_handler(log_dir / f"{subsystem}.log", level, settings))

    # py-cord logs gateway chatter at DEBUG
    logging.getLogger("discord").setLevel(max(settings.level, logging.INFO))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=config is not None,
    )

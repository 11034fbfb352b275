"""Structured reports of non-fatal anomalies.

Overrides and routing misses are not errors: the bot keeps running.
They are handed to a sink the host can replace; the default sink logs
them as warnings.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict

import structlog

logger = structlog.get_logger("glimmer.dispatch")

# Diagnostic codes
COMMAND_OVERRIDDEN = "command_overridden"
UNKNOWN_COMMAND = "unknown_command"
UNKNOWN_SUBCOMMAND = "unknown_subcommand"


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal anomaly reported by the registry or dispatcher.

    Attributes:
        code: Machine-readable code (e.g. "unknown_command").
        message: Human-readable description.
        fields: Structured context (command name, table, ...).
    """
    code: str
    message: str
    fields: Dict[str, Any] = field(default_factory=dict)


DiagnosticSink = Callable[[Diagnostic], None]


def log_diagnostic(diagnostic: Diagnostic) -> None:
    """Default sink: log the diagnostic as a warning."""
    logger.warning(diagnostic.code, detail=diagnostic.message, **diagnostic.fields)


def unknown_subcommand(category: str, subcommand: Any) -> Diagnostic:
    return Diagnostic(
        UNKNOWN_SUBCOMMAND,
        f'Subcommand "{subcommand}" was called but category "{category}" '
        "has no handlers for it.",
        {"command": category, "subcommand": subcommand},
    )

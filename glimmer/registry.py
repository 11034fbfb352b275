"""Command registry and interaction dispatch.

The registry keeps three name-keyed tables (chat-input, user context
menu, message context menu). Registration is monotonic: a later command
with the same name and type replaces the earlier one and reports a
diagnostic. The dispatcher routes application command interactions to
the matching handler and never lets a routing miss or a handler failure
escape into the client's event loop.

Diagnostics are built by glimmer.diagnostics and re-exported here.

Key classes:
    CommandRegistry: Per-type command tables.
    Dispatcher: Routes interactions to command handlers.
"""

import inspect
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

import structlog

from .command_types import Command, CommandKind, TopLevelCommand
from .declarations import CommandDeclaration, CommandType
from .diagnostics import (
    COMMAND_OVERRIDDEN,
    UNKNOWN_COMMAND,
    UNKNOWN_SUBCOMMAND,
    Diagnostic,
    DiagnosticSink,
    log_diagnostic,
    unknown_subcommand,
)
from .exceptions import CommandHandlerError
from .interactions import classify, command_name, selected_subcommand

logger = structlog.get_logger("glimmer.dispatch")

ErrorHandler = Callable[[CommandHandlerError], Union[Awaitable[None], None]]

# Which table each top-level command kind is registered in
_TABLE_FOR_KIND: Dict[CommandKind, CommandType] = {
    CommandKind.NORMAL: CommandType.CHAT_INPUT,
    CommandKind.CATEGORY: CommandType.CHAT_INPUT,
    CommandKind.USER_MENU: CommandType.USER,
    CommandKind.MESSAGE_MENU: CommandType.MESSAGE,
}

_TABLE_LABELS: Dict[CommandType, str] = {
    CommandType.CHAT_INPUT: "chat input",
    CommandType.USER: "user context menu",
    CommandType.MESSAGE: "message context menu",
}


class CommandRegistry:
    """Per-type tables mapping command names to commands.

    Only grows: commands are added or replaced, never removed.
    """

    def __init__(self, diagnostics: DiagnosticSink = log_diagnostic):
        self._diagnostics = diagnostics
        self._tables: Dict[CommandType, Dict[str, TopLevelCommand]] = {
            command_type: {} for command_type in CommandType
        }

    def add(self, command: TopLevelCommand) -> None:
        """Insert a command into its table, replacing any same-named one."""
        command_type = _TABLE_FOR_KIND.get(command.kind)
        if command_type is None:
            raise TypeError(f"{command!r} can't be registered as a top-level command")
        table = self._tables[command_type]
        if command.name in table:
            label = _TABLE_LABELS[command_type]
            self._diagnostics(Diagnostic(
                COMMAND_OVERRIDDEN,
                f'Overriding {label} command "{command.name}"',
                {"command": command.name, "table": command_type.name.lower()},
            ))
        if command.kind == CommandKind.CATEGORY:
            command.report_diagnostics_to(self._diagnostics)
        table[command.name] = command

    def get(self, command_type: CommandType, name: str) -> Optional[TopLevelCommand]:
        return self._tables[command_type].get(name)

    def table(self, command_type: CommandType) -> Mapping[str, TopLevelCommand]:
        """Read-only view of one table."""
        return MappingProxyType(self._tables[command_type])

    def commands(self) -> List[TopLevelCommand]:
        """All registered commands: chat-input, then user menu, then message menu."""
        return [
            command
            for command_type in CommandType
            for command in self._tables[command_type].values()
        ]

    def declarations(self) -> List[CommandDeclaration]:
        """Discord declarations for every registered command."""
        return [command.to_declaration() for command in self.commands()]

    def __len__(self) -> int:
        return sum(len(table) for table in self._tables.values())

    def __contains__(self, command: object) -> bool:
        if not isinstance(command, Command):
            return False
        command_type = _TABLE_FOR_KIND.get(command.kind)
        return command_type is not None and self._tables[command_type].get(command.name) is command


class Dispatcher:
    """Routes application command interactions to their handlers.

    Args:
        registry: Registry to look commands up in.
        error_handler: Optional callback (sync or async) receiving a
            CommandHandlerError whenever a handler raises.
        diagnostics: Sink for routing misses.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        *,
        error_handler: Optional[ErrorHandler] = None,
        diagnostics: DiagnosticSink = log_diagnostic,
    ):
        self._registry = registry
        self._error_handler = error_handler
        self._diagnostics = diagnostics

    async def dispatch(self, interaction: Any) -> bool:
        """Route one interaction.

        Returns True when a handler ran to completion. Unknown commands,
        unknown subcommands, non-command interactions and handler
        failures all return False; none of them raise.
        """
        command_type = classify(interaction)
        if command_type is None:
            return False

        name = command_name(interaction)
        command = self._registry.get(command_type, name)
        if command is None:
            label = _TABLE_LABELS[command_type]
            self._diagnostics(Diagnostic(
                UNKNOWN_COMMAND,
                f'Received a "{name}" {label} command, but there is no handler for it.',
                {"command": name, "table": command_type.name.lower()},
            ))
            return False

        target: Command = command
        if command.kind == CommandKind.CATEGORY:
            sub = command.resolve(interaction)
            if sub is None:
                self._diagnostics(
                    unknown_subcommand(command.name, selected_subcommand(interaction))
                )
                return False
            target = sub

        try:
            await target.invoke(interaction)
        except Exception as e:
            await self._handle_failure(target, interaction, e)
            return False
        return True

    async def _handle_failure(self, command: Command, interaction: Any, error: Exception) -> None:
        logger.error(
            "command_handler_failed",
            command=command.name,
            kind=command.kind.value,
            error=str(error),
            error_type=type(error).__name__,
            exc_info=error,
        )
        if self._error_handler is None:
            return
        try:
            result = self._error_handler(CommandHandlerError(command, interaction, error))
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                "error_handler_failed",
                command=command.name,
                error=str(e),
                error_type=type(e).__name__,
            )

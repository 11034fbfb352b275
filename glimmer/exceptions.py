"""Custom exception hierarchy for glimmer.

Every error raised by the framework derives from GlimmerError, so a
host application can catch framework failures broadly while still
telling configuration problems apart from runtime handler failures.

Platform transport errors (login failures, aiohttp errors) are never
wrapped; they reach the caller of ``start()`` or ``refresh_commands()``
unchanged.
"""

from typing import Any, Optional


class GlimmerError(Exception):
    """Base exception for all glimmer errors.

    Attributes:
        message: Human-readable error description.
        module: Originating module name (e.g. "discovery").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.module = module
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return f"{cls}({self.message!r}, module={self.module!r})"


# ---------------------------------------------------------------------------
# Configuration exceptions (fatal to discovery, never retried)
# ---------------------------------------------------------------------------

class ModuleConfigurationError(GlimmerError):
    """A module directory or one of its files is malformed.

    Raised for wrong exports, missing category directories and event
    name mismatches. Aborts the whole discovery call.

    Attributes:
        file: Path of the offending file or directory (if known).
        expected_type: Name of the type the file should have exported.
    """

    def __init__(
        self,
        message: str = "",
        *,
        file: Optional[str] = None,
        expected_type: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.file = file
        self.expected_type = expected_type
        super().__init__(message, module=module or "discovery", **context)


class CommandNameError(GlimmerError):
    """A command name is invalid or was already bound to another value."""

    def __init__(
        self,
        message: str = "",
        *,
        name: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.name = name
        super().__init__(message, module=module or "command_types", **context)


class InvalidOptionError(GlimmerError):
    """A command option is not one of the supported option kinds."""

    def __init__(
        self,
        message: str = "",
        *,
        option: Any = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.option = option
        super().__init__(message, module=module or "options", **context)


# ---------------------------------------------------------------------------
# Runtime exceptions
# ---------------------------------------------------------------------------

class CommandHandlerError(GlimmerError):
    """A command handler raised while processing an interaction.

    Never raised into the client's event loop; instances are handed to
    the bot's error handler.

    Attributes:
        command: The command whose handler failed.
        interaction: The interaction being processed.
        error: The original exception.
    """

    def __init__(
        self,
        command: Any,
        interaction: Any,
        error: BaseException,
        *,
        module: Optional[str] = None,
    ) -> None:
        self.command = command
        self.interaction = interaction
        self.error = error
        super().__init__(
            f"Handler for command {command.name!r} failed: {error}",
            module=module or "dispatch",
            error_type=type(error).__name__,
        )


class CommandPublishError(GlimmerError):
    """Discord rejected the command declaration batch.

    Attributes:
        status: HTTP status code returned by Discord.
        body: Response body text.
    """

    def __init__(
        self,
        message: str = "",
        *,
        status: Optional[int] = None,
        body: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.status = status
        self.body = body
        super().__init__(message, module=module or "rest", status=status, **context)

"""Command model for glimmer bots.

A command is a declarable unit of interaction: a handler plus the
metadata Discord needs to show it. Commands never choose their own
name; module discovery binds the file's base name to the command, and
once a Module holds the command the name is fixed.

Key classes:
    Command: Abstract base shared by every variant.
    NormalCommand: Standalone slash command.
    SubCommand: Slash command nested in a category.
    CategoryCommand: Slash command that only routes to subcommands.
    UserContextMenuCommand: Command shown on a user's context menu.
    MessageContextMenuCommand: Command shown on a message's context menu.

Every variant carries a CommandKind tag; the registry and schema
conversion switch on the tag rather than on instance checks.
"""

import inspect
import re
from abc import ABC, abstractmethod
from enum import Enum
from types import MappingProxyType
from typing import (
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

import discord

from .declarations import (
    CommandDeclaration,
    CommandType,
    LocalizationMap,
    OptionDeclaration,
    OptionKind,
)
from .diagnostics import DiagnosticSink, log_diagnostic, unknown_subcommand
from .exceptions import CommandNameError, ModuleConfigurationError
from .interactions import selected_subcommand
from .options import NAME_PATTERN, CommandOption, option_declaration, validate_option

# Type alias for command handlers: async (interaction) -> None
CommandHandler = Callable[[Any], Awaitable[None]]

MemberPermissions = Union[discord.Permissions, int, None]

# Context menu names may contain spaces and mixed case
_CONTEXT_MENU_NAME = re.compile(r"^[^\n\r\t]{1,32}$")


class CommandKind(str, Enum):
    """Tag identifying the concrete command variant."""
    NORMAL = "normal"
    SUB = "sub"
    CATEGORY = "category"
    USER_MENU = "user_menu"
    MESSAGE_MENU = "message_menu"


def _permissions_value(permissions: MemberPermissions) -> Optional[int]:
    """Normalize a permission requirement to its integer bitfield."""
    if permissions is None:
        return None
    if isinstance(permissions, discord.Permissions):
        return permissions.value
    if isinstance(permissions, int) and not isinstance(permissions, bool) and permissions >= 0:
        return permissions
    raise TypeError(
        f"member_permissions must be discord.Permissions, a non-negative int or None, "
        f"got {permissions!r}"
    )


def _copy_localizations(value: Optional[LocalizationMap]) -> Optional[LocalizationMap]:
    return dict(value) if value is not None else None


class Command(ABC):
    """Base class for every glimmer command.

    Attributes:
        name_localizations: Optional mapping of locale to localized name.
    """

    kind: ClassVar[CommandKind]

    def __init__(
        self,
        *,
        handler: CommandHandler,
        name_localizations: Optional[LocalizationMap] = None,
    ):
        if not callable(handler):
            raise TypeError(f"{type(self).__name__} handler must be callable, got {handler!r}")
        self._name = ""
        self._name_locked = False
        self._handler = handler
        self.name_localizations = _copy_localizations(name_localizations)

    @property
    def name(self) -> str:
        """Name of the command; empty until discovery binds one."""
        return self._name

    @property
    def handler(self) -> CommandHandler:
        """Callable invoked with the interaction when the command runs."""
        return self._handler

    @property
    def name_locked(self) -> bool:
        """Whether the name is fixed for good (set once a Module holds the command)."""
        return self._name_locked

    def check_name(self, name: str) -> None:
        """Raise CommandNameError if bind_name(name) would fail. Changes nothing."""
        if self._name_locked:
            if self._name != name:
                raise CommandNameError(
                    f"Command already named {self._name!r}, refusing to rename it to {name!r}",
                    name=name,
                )
            return
        self._validate_name(name)

    def bind_name(self, name: str) -> None:
        """Set the command's name.

        Discovery calls this with the file's base name, replacing any
        name bound earlier. Once a Module owns the command its name is
        locked, and binding a different name raises CommandNameError.
        """
        self.check_name(name)
        self._name = name

    def lock_name(self) -> None:
        if not self._name:
            raise CommandNameError(
                f"Cannot lock the name of an unnamed {type(self).__name__}"
            )
        self._name_locked = True

    def _validate_name(self, name: str) -> None:
        if not NAME_PATTERN.match(name) or name != name.lower():
            raise CommandNameError(
                f"Invalid command name {name!r}: slash command names must be "
                "1-32 lowercase word characters or dashes",
                name=name,
            )

    async def invoke(self, interaction: Any) -> None:
        """Run the handler, awaiting its result if it returned an awaitable."""
        result = self.handler(interaction)
        if inspect.isawaitable(result):
            await result

    @abstractmethod
    def to_declaration(self) -> Union[CommandDeclaration, OptionDeclaration]:
        """Convert the command to its Discord declaration.

        Pure: repeated calls on unchanged state give equal results.
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self._name!r}>"


class _DescribedCommand(Command):
    """Command with a description (all slash command variants)."""

    def __init__(
        self,
        *,
        description: str,
        handler: CommandHandler,
        name_localizations: Optional[LocalizationMap] = None,
        description_localizations: Optional[LocalizationMap] = None,
    ):
        super().__init__(handler=handler, name_localizations=name_localizations)
        if not isinstance(description, str) or not 1 <= len(description) <= 100:
            raise ValueError(
                f"{type(self).__name__} description must be 1-100 characters, got {description!r}"
            )
        self.description = description
        self.description_localizations = _copy_localizations(description_localizations)


def _validated_options(options: Optional[Iterable[CommandOption]]) -> Tuple[CommandOption, ...]:
    return tuple(validate_option(option) for option in options or ())


class NormalCommand(_DescribedCommand):
    """A standalone slash command.

    Args:
        description: Description shown in the Discord client.
        handler: Async callable receiving the interaction.
        options: Ordered command options.
        name_localizations: Localized names keyed by locale.
        description_localizations: Localized descriptions keyed by locale.
        member_permissions: Permissions a guild member needs to see and
            use the command. None means no permission is required.
    """

    kind: ClassVar[CommandKind] = CommandKind.NORMAL

    def __init__(
        self,
        *,
        description: str,
        handler: CommandHandler,
        options: Optional[Iterable[CommandOption]] = None,
        name_localizations: Optional[LocalizationMap] = None,
        description_localizations: Optional[LocalizationMap] = None,
        member_permissions: MemberPermissions = None,
    ):
        super().__init__(
            description=description,
            handler=handler,
            name_localizations=name_localizations,
            description_localizations=description_localizations,
        )
        self.options: Tuple[CommandOption, ...] = _validated_options(options)
        self.member_permissions: Optional[int] = _permissions_value(member_permissions)

    def to_declaration(self) -> CommandDeclaration:
        return _slash_declaration(
            self,
            options=[option_declaration(option) for option in self.options],
            member_permissions=self.member_permissions,
        )

    def to_sub_command(self) -> "SubCommand":
        """Make a SubCommand version of this command.

        The permission requirement is dropped, since subcommands can't
        carry their own.
        """
        sub = SubCommand(
            description=self.description,
            handler=self.handler,
            options=self.options,
            name_localizations=self.name_localizations,
            description_localizations=self.description_localizations,
        )
        if self.name:
            sub.bind_name(self.name)
        return sub


class SubCommand(_DescribedCommand):
    """A slash command that lives inside a CategoryCommand."""

    kind: ClassVar[CommandKind] = CommandKind.SUB

    def __init__(
        self,
        *,
        description: str,
        handler: CommandHandler,
        options: Optional[Iterable[CommandOption]] = None,
        name_localizations: Optional[LocalizationMap] = None,
        description_localizations: Optional[LocalizationMap] = None,
    ):
        super().__init__(
            description=description,
            handler=handler,
            name_localizations=name_localizations,
            description_localizations=description_localizations,
        )
        self.options: Tuple[CommandOption, ...] = _validated_options(options)

    def to_declaration(self) -> OptionDeclaration:
        return OptionDeclaration(
            type=OptionKind.SUB_COMMAND,
            name=self.name,
            description=self.description,
            name_localizations=self.name_localizations,
            description_localizations=self.description_localizations,
            options=[option_declaration(option) for option in self.options],
        )

    def to_normal_command(self, member_permissions: MemberPermissions = None) -> NormalCommand:
        """Make a NormalCommand version of this subcommand.

        Args:
            member_permissions: Permissions needed for the new command.
                Not carried over from anywhere; omit it for no requirement.
        """
        command = NormalCommand(
            description=self.description,
            handler=self.handler,
            options=self.options,
            name_localizations=self.name_localizations,
            description_localizations=self.description_localizations,
            member_permissions=member_permissions,
        )
        if self.name:
            command.bind_name(self.name)
        return command


class CategoryCommand(_DescribedCommand):
    """A slash command grouping subcommands.

    Has no handler of its own: invoking it routes to the subcommand the
    user picked. Subcommands are attached once, by discovery or by
    Module.from_mapping, and are read-only afterwards.
    """

    kind: ClassVar[CommandKind] = CommandKind.CATEGORY

    def __init__(
        self,
        *,
        description: str,
        name_localizations: Optional[LocalizationMap] = None,
        description_localizations: Optional[LocalizationMap] = None,
        member_permissions: MemberPermissions = None,
    ):
        self._subcommands: Mapping[str, SubCommand] = MappingProxyType({})
        self._finalized = False
        self._diagnostics: DiagnosticSink = log_diagnostic
        super().__init__(
            description=description,
            handler=self._route,
            name_localizations=name_localizations,
            description_localizations=description_localizations,
        )
        self.member_permissions: Optional[int] = _permissions_value(member_permissions)

    @property
    def subcommands(self) -> Mapping[str, SubCommand]:
        """Read-only mapping of subcommand name to SubCommand."""
        return self._subcommands

    @property
    def finalized(self) -> bool:
        return self._finalized

    def report_diagnostics_to(self, sink: DiagnosticSink) -> None:
        """Send subcommand routing misses to ``sink`` instead of the log."""
        self._diagnostics = sink

    def check_subcommands(self, subcommands: Mapping[str, SubCommand]) -> None:
        """Raise if attach_subcommands(subcommands) would fail. Changes nothing."""
        if self._finalized:
            raise ModuleConfigurationError(
                f"Category {self.name!r} already has its subcommands attached",
                expected_type=SubCommand.__name__,
            )
        seen = set()
        for sub_name, sub in subcommands.items():
            if id(sub) in seen:
                raise ModuleConfigurationError(
                    f"Category {self.name!r} got the same SubCommand under two names",
                    expected_type=SubCommand.__name__,
                )
            seen.add(id(sub))
            if not isinstance(sub, SubCommand):
                raise ModuleConfigurationError(
                    f"Category {self.name!r} got {type(sub).__name__} for {sub_name!r}, "
                    f"expected {SubCommand.__name__}",
                    expected_type=SubCommand.__name__,
                )
            sub.check_name(sub_name)

    def attach_subcommands(self, subcommands: Mapping[str, SubCommand]) -> None:
        """Finalize the category with its subcommands.

        Each subcommand gets the mapping key as its name. The stored
        snapshot is ordered by name. Everything is checked before any
        subcommand is renamed, so a rejected call leaves them untouched.
        """
        self.check_subcommands(subcommands)
        snapshot: Dict[str, SubCommand] = {}
        for sub_name in sorted(subcommands):
            sub = subcommands[sub_name]
            sub.bind_name(sub_name)
            sub.lock_name()
            snapshot[sub_name] = sub
        self._subcommands = MappingProxyType(snapshot)
        self._finalized = True

    def resolve(self, interaction: Any) -> Optional[SubCommand]:
        """Return the subcommand selected in the interaction, if known."""
        sub_name = selected_subcommand(interaction)
        if sub_name is None:
            return None
        return self._subcommands.get(sub_name)

    async def _route(self, interaction: Any) -> None:
        sub = self.resolve(interaction)
        if sub is None:
            self._diagnostics(unknown_subcommand(self.name, selected_subcommand(interaction)))
            return
        await sub.invoke(interaction)

    def to_declaration(self) -> CommandDeclaration:
        return _slash_declaration(
            self,
            options=[sub.to_declaration() for sub in self._subcommands.values()],
            member_permissions=self.member_permissions,
        )


class _ContextMenuCommand(Command):
    """Command invoked from a user's or message's context menu."""

    command_type: ClassVar[CommandType]

    def __init__(
        self,
        *,
        handler: CommandHandler,
        name_localizations: Optional[LocalizationMap] = None,
        member_permissions: MemberPermissions = None,
    ):
        super().__init__(handler=handler, name_localizations=name_localizations)
        self.member_permissions: Optional[int] = _permissions_value(member_permissions)

    def _validate_name(self, name: str) -> None:
        if not _CONTEXT_MENU_NAME.match(name) or name != name.strip():
            raise CommandNameError(
                f"Invalid context menu command name {name!r}: must be 1-32 characters",
                name=name,
            )

    def to_declaration(self) -> CommandDeclaration:
        return CommandDeclaration(
            type=self.command_type,
            name=self.name,
            name_localizations=self.name_localizations,
            default_member_permissions=_permissions_string(self.member_permissions),
        )


class UserContextMenuCommand(_ContextMenuCommand):
    """Command run on a selected user."""

    kind: ClassVar[CommandKind] = CommandKind.USER_MENU
    command_type: ClassVar[CommandType] = CommandType.USER


class MessageContextMenuCommand(_ContextMenuCommand):
    """Command run on a selected message."""

    kind: ClassVar[CommandKind] = CommandKind.MESSAGE_MENU
    command_type: ClassVar[CommandType] = CommandType.MESSAGE


TopLevelCommand = Union[
    NormalCommand, CategoryCommand, UserContextMenuCommand, MessageContextMenuCommand
]

TOP_LEVEL_KINDS = frozenset({
    CommandKind.NORMAL,
    CommandKind.CATEGORY,
    CommandKind.USER_MENU,
    CommandKind.MESSAGE_MENU,
})


def _permissions_string(value: Optional[int]) -> Optional[str]:
    return str(value) if value is not None else None


def _slash_declaration(
    command: _DescribedCommand,
    *,
    options: List[OptionDeclaration],
    member_permissions: Optional[int],
) -> CommandDeclaration:
    return CommandDeclaration(
        type=CommandType.CHAT_INPUT,
        name=command.name,
        name_localizations=command.name_localizations,
        description=command.description,
        description_localizations=command.description_localizations,
        options=options,
        default_member_permissions=_permissions_string(member_permissions),
    )

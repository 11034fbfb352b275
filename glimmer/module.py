"""Module discovery: turn a directory tree into a Module.

Directory layout::

    <root>/
        commands/
            ping.py           command = NormalCommand(...)
            mod.py            command = CategoryCommand(...)
            mod/
                ban.py        command = SubCommand(...)
                kick.py       command = SubCommand(...)
            Report.py         command = MessageContextMenuCommand(...)
        events/
            member_join.py    handler = EventHandler("member_join", ...)

The file's base name is the command's name; a category's subcommands
live in a directory named like the category file. Event files must be
named after the event their handler subscribes to.

Any malformed file aborts the whole discovery call with a
ModuleConfigurationError; a partial Module is never returned.

Key classes:
    Module: Immutable bundle of top-level commands and event handlers.
"""

import asyncio
import hashlib
import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

import structlog

from .command_types import (
    TOP_LEVEL_KINDS,
    CategoryCommand,
    Command,
    CommandKind,
    SubCommand,
    TopLevelCommand,
)
from .events import EventHandler
from .exceptions import CommandNameError, ModuleConfigurationError

logger = structlog.get_logger("glimmer.discovery")

COMMANDS_DIR = "commands"
EVENTS_DIR = "events"
SOURCE_SUFFIX = ".py"

# Module-level attribute each file must define
COMMAND_EXPORT = "command"
EVENT_EXPORT = "handler"


def _wrong_export_message(file: Path, attribute: str, expected: str, found: Any) -> str:
    return (
        f'Module in "{file}" doesn\'t define `{attribute}` as an instance of {expected} '
        f"(found {type(found).__name__}). Maybe it imports {expected} from another "
        "copy of glimmer?"
    )


class Module:
    """An immutable bundle of top-level commands and event handlers.

    Build one with Module.from_directory() or Module.from_mapping(),
    then hand it to Glimmer.add_modules(). Subcommands are not
    top-level: they only live inside their category.
    """

    def __init__(
        self,
        commands: Iterable[TopLevelCommand] = (),
        events: Iterable[EventHandler] = (),
    ):
        commands = tuple(commands)
        events = tuple(events)
        for command in commands:
            if not isinstance(command, Command) or command.kind not in TOP_LEVEL_KINDS:
                raise ModuleConfigurationError(
                    f"{command!r} can't be a top-level command of a module",
                    expected_type="NormalCommand, CategoryCommand or a context menu command",
                )
            if not command.name:
                raise CommandNameError(
                    f"Cannot add an unnamed {type(command).__name__} to a module"
                )
        for event in events:
            if not isinstance(event, EventHandler):
                raise ModuleConfigurationError(
                    f"{event!r} is not an EventHandler",
                    expected_type=EventHandler.__name__,
                )
        # Nothing is locked until every entry has been accepted
        for command in commands:
            command.lock_name()
        self._commands: Tuple[TopLevelCommand, ...] = commands
        self._events: Tuple[EventHandler, ...] = events

    @property
    def commands(self) -> Tuple[TopLevelCommand, ...]:
        """Top-level commands, categories included."""
        return self._commands

    @property
    def events(self) -> Tuple[EventHandler, ...]:
        return self._events

    def __repr__(self) -> str:
        return (
            f"<Module commands={[c.name for c in self._commands]!r} "
            f"events={[e.event for e in self._events]!r}>"
        )

    # ------------------------------------------------------------------
    # Explicit registration
    # ------------------------------------------------------------------

    @classmethod
    def from_mapping(
        cls,
        commands: Optional[Mapping[str, Command]] = None,
        subcommands: Optional[Mapping[str, Mapping[str, SubCommand]]] = None,
        events: Optional[Mapping[str, EventHandler]] = None,
    ) -> "Module":
        """Build a Module from explicit name -> object mappings.

        The mapping keys play the role file names play in discovery:
        each command is named after its key, each category takes its
        subcommands from ``subcommands[<category name>]``, and each
        event handler must handle the event its key names.

        All three mappings are checked before any command is named or
        any category finalized, so a rejected call can be retried with
        the same command objects.

        Args:
            commands: Top-level command name -> command.
            subcommands: Category name -> (subcommand name -> SubCommand).
            events: Event name -> EventHandler.
        """
        commands = dict(commands or {})
        subcommands = dict(subcommands or {})
        events = dict(events or {})

        _check_commands(commands, subcommands)
        _check_events(events)

        top_level: List[TopLevelCommand] = []
        for name in sorted(commands):
            command = commands[name]
            if command.kind == CommandKind.SUB:
                logger.warning("subcommand_outside_category", command=name)
                continue
            command.bind_name(name)
            if command.kind == CommandKind.CATEGORY:
                command.attach_subcommands(subcommands[name])
            top_level.append(command)

        return cls(top_level, [events[event_name] for event_name in sorted(events)])

    # ------------------------------------------------------------------
    # Directory discovery
    # ------------------------------------------------------------------

    @classmethod
    async def from_directory(cls, directory: Union[str, Path]) -> "Module":
        """Discover a Module from a directory (see the module docstring).

        Command files, and the subcommand files of each category, are
        loaded concurrently; the first failure aborts the call.

        Raises:
            ModuleConfigurationError: A file is malformed, a category
                directory is missing, or an event file is misnamed.
        """
        directory = Path(directory)

        command_files = await _list_sources(directory / COMMANDS_DIR, required=False)
        loaded = await asyncio.gather(*(_load_command(path) for path in command_files))

        commands = {}
        subcommands = {}
        for path, command, subs in loaded:
            commands[path.stem] = command
            if subs is not None:
                subcommands[path.stem] = subs

        event_files = await _list_sources(directory / EVENTS_DIR, required=False)
        events = await asyncio.gather(*(_load_event_handler(path) for path in event_files))

        module = cls.from_mapping(
            commands=commands,
            subcommands=subcommands,
            events={path.stem: handler for path, handler in zip(event_files, events)},
        )
        logger.info(
            "module_discovered",
            path=str(directory),
            commands=[command.name for command in module.commands],
            events=[handler.event for handler in module.events],
        )
        return module


def _check_commands(
    commands: Mapping[str, Command],
    subcommands: Mapping[str, Mapping[str, SubCommand]],
) -> None:
    seen = set()
    for name, command in commands.items():
        if not isinstance(command, Command):
            raise ModuleConfigurationError(
                f"Value registered as command {name!r} is a {type(command).__name__}, "
                f"expected {Command.__name__}",
                expected_type=Command.__name__,
            )
        if id(command) in seen:
            raise ModuleConfigurationError(
                f"Command registered as {name!r} is also registered under another name",
                expected_type=Command.__name__,
            )
        seen.add(id(command))
        if command.kind == CommandKind.SUB:
            continue
        command.check_name(name)
        if command.kind == CommandKind.CATEGORY:
            if name not in subcommands:
                raise ModuleConfigurationError(
                    f"Category {name!r} has no subcommands registered",
                    expected_type=SubCommand.__name__,
                )
            command.check_subcommands(subcommands[name])

    orphans = sorted(
        name for name in subcommands
        if name not in commands or commands[name].kind != CommandKind.CATEGORY
    )
    if orphans:
        raise ModuleConfigurationError(
            f"Subcommands registered for unknown categories: {orphans}",
            expected_type=CategoryCommand.__name__,
        )


def _check_events(events: Mapping[str, EventHandler]) -> None:
    for event_name, handler in events.items():
        if not isinstance(handler, EventHandler):
            raise ModuleConfigurationError(
                f"Value registered for event {event_name!r} is a {type(handler).__name__}, "
                f"expected {EventHandler.__name__}",
                expected_type=EventHandler.__name__,
            )
        if handler.event != event_name:
            raise ModuleConfigurationError(
                f"EventHandler registered as {event_name!r} handles the "
                f"{handler.event!r} event",
                expected_type=EventHandler.__name__,
                event=handler.event,
            )
        handler.check_signature()


def _scan(directory: Path) -> List[Path]:
    return sorted(
        path
        for path in directory.iterdir()
        if path.is_file()
        and path.suffix == SOURCE_SUFFIX
        and not path.name.startswith("_")
    )


async def _list_sources(directory: Path, *, required: bool) -> List[Path]:
    """List loadable source files in a directory, sorted by name."""
    try:
        return await asyncio.to_thread(_scan, directory)
    except FileNotFoundError as e:
        if not required:
            logger.debug("discovery_dir_missing", path=str(directory))
            return []
        raise ModuleConfigurationError(
            f'Couldn\'t read subcommands in "{directory}": {e}',
            file=str(directory),
        ) from e
    except OSError as e:
        raise ModuleConfigurationError(
            f'Couldn\'t read "{directory}": {e}',
            file=str(directory),
        ) from e


def _import_source(path: Path) -> ModuleType:
    """Execute a source file as a fresh module."""
    digest = hashlib.sha1(str(path.resolve()).encode()).hexdigest()[:12]
    module_name = f"_glimmer_module_{digest}_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ModuleConfigurationError(f'Couldn\'t load "{path}"', file=str(path))
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise ModuleConfigurationError(
            f'Importing "{path}" failed: {e}',
            file=str(path),
            error_type=type(e).__name__,
        ) from e
    return module


async def _load_export(path: Path, attribute: str, expected: type) -> Any:
    module = await asyncio.to_thread(_import_source, path)
    value = getattr(module, attribute, None)
    if not isinstance(value, expected):
        raise ModuleConfigurationError(
            _wrong_export_message(path, attribute, expected.__name__, value),
            file=str(path),
            expected_type=expected.__name__,
        )
    return value


def _bind_file_name(command: Command, path: Path) -> None:
    try:
        command.bind_name(path.stem)
    except CommandNameError as e:
        raise ModuleConfigurationError(
            f'Can\'t name the command defined in "{path}": {e.message}',
            file=str(path),
            expected_type=type(command).__name__,
        ) from e


async def _load_command(path: Path) -> Tuple[Path, Command, Optional[dict]]:
    """Load a command file and, for categories, its subcommand directory."""
    command = await _load_export(path, COMMAND_EXPORT, Command)
    _bind_file_name(command, path)
    logger.debug("command_loaded", file=str(path), kind=command.kind.value)

    if command.kind != CommandKind.CATEGORY:
        return path, command, None

    sub_dir = path.with_suffix("")
    sub_files = await _list_sources(sub_dir, required=True)
    subs = await asyncio.gather(*(_load_subcommand(sub_path) for sub_path in sub_files))

    return path, command, {sub_path.stem: sub for sub_path, sub in zip(sub_files, subs)}


async def _load_subcommand(path: Path) -> SubCommand:
    sub = await _load_export(path, COMMAND_EXPORT, Command)
    if sub.kind != CommandKind.SUB:
        raise ModuleConfigurationError(
            _wrong_export_message(path, COMMAND_EXPORT, SubCommand.__name__, sub),
            file=str(path),
            expected_type=SubCommand.__name__,
        )
    _bind_file_name(sub, path)
    return sub


async def _load_event_handler(path: Path) -> EventHandler:
    handler = await _load_export(path, EVENT_EXPORT, EventHandler)
    if handler.event != path.stem:
        raise ModuleConfigurationError(
            f'EventHandler defined in "{path}" handles the {handler.event} event, '
            f'but has the file name of another event: "{path.stem}".',
            file=str(path),
            expected_type=EventHandler.__name__,
            event=handler.event,
        )
    try:
        handler.check_signature()
    except ModuleConfigurationError as e:
        raise ModuleConfigurationError(
            f'"{path}": {e.message}',
            file=str(path),
            expected_type=EventHandler.__name__,
            event=handler.event,
        ) from e
    return handler

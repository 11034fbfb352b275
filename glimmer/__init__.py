"""glimmer: a small Discord bot framework built around modules.

Declare commands and event handlers one per file, discover them with
Module.from_directory(), and hand the modules to a Glimmer bot.
"""

from .bot import Glimmer
from .command_types import (
    CategoryCommand,
    Command,
    CommandKind,
    MessageContextMenuCommand,
    NormalCommand,
    SubCommand,
    UserContextMenuCommand,
)
from .declarations import CommandDeclaration, CommandType, OptionChoice, OptionDeclaration
from .events import EventHandler
from .exceptions import (
    CommandHandlerError,
    CommandNameError,
    CommandPublishError,
    GlimmerError,
    InvalidOptionError,
    ModuleConfigurationError,
)
from .module import Module
from .options import (
    AttachmentOption,
    BooleanOption,
    ChannelOption,
    IntegerOption,
    MentionableOption,
    NumberOption,
    RoleOption,
    StringOption,
    UserOption,
)
from .diagnostics import Diagnostic
from .registry import CommandRegistry, Dispatcher

__version__ = "0.1.0"

__all__ = [
    "AttachmentOption",
    "BooleanOption",
    "CategoryCommand",
    "ChannelOption",
    "Command",
    "CommandDeclaration",
    "CommandHandlerError",
    "CommandKind",
    "CommandNameError",
    "CommandPublishError",
    "CommandRegistry",
    "CommandType",
    "Diagnostic",
    "Dispatcher",
    "EventHandler",
    "Glimmer",
    "GlimmerError",
    "IntegerOption",
    "InvalidOptionError",
    "MentionableOption",
    "MessageContextMenuCommand",
    "Module",
    "ModuleConfigurationError",
    "NormalCommand",
    "NumberOption",
    "OptionChoice",
    "OptionDeclaration",
    "RoleOption",
    "StringOption",
    "SubCommand",
    "UserContextMenuCommand",
    "UserOption",
]

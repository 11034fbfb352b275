"""Pydantic models for Discord application command payloads.

These mirror the JSON Discord expects in the bulk overwrite endpoint
(``PUT /applications/{id}/commands``). Commands build them through
``to_declaration()``; nothing here performs I/O.

Enums:
    CommandType, OptionKind

Models:
    OptionChoice, OptionDeclaration, CommandDeclaration
"""

from enum import IntEnum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

LocalizationMap = Dict[str, str]


class CommandType(IntEnum):
    """Discord application command types."""
    CHAT_INPUT = 1
    USER = 2
    MESSAGE = 3


class OptionKind(IntEnum):
    """Discord application command option types.

    SUB_COMMAND is only produced for subcommands nested in a category;
    the remaining members are the nine user-facing option kinds.
    """
    SUB_COMMAND = 1
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8
    MENTIONABLE = 9
    NUMBER = 10
    ATTACHMENT = 11


class OptionChoice(BaseModel):
    """A predefined value for a string, integer or number option."""
    name: str = Field(min_length=1, max_length=100)
    value: Union[int, float, str]
    name_localizations: Optional[LocalizationMap] = None


class OptionDeclaration(BaseModel):
    """Declaration of a command option or of a subcommand."""
    type: OptionKind
    name: str
    description: str
    name_localizations: Optional[LocalizationMap] = None
    description_localizations: Optional[LocalizationMap] = None
    required: Optional[bool] = None
    choices: Optional[List[OptionChoice]] = None
    channel_types: Optional[List[int]] = None
    min_value: Optional[Union[int, float]] = None
    max_value: Optional[Union[int, float]] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    autocomplete: Optional[bool] = None
    options: Optional[List["OptionDeclaration"]] = None

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON-ready dict, dropping unset fields."""
        return self.model_dump(mode="json", exclude_none=True)


class CommandDeclaration(BaseModel):
    """Declaration of a top-level application command.

    ``default_member_permissions`` is the permission bitfield as a
    decimal string; None means every member may use the command.
    """
    type: CommandType = CommandType.CHAT_INPUT
    name: str
    description: str = ""
    name_localizations: Optional[LocalizationMap] = None
    description_localizations: Optional[LocalizationMap] = None
    options: List[OptionDeclaration] = Field(default_factory=list)
    default_member_permissions: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON-ready dict, dropping unset fields."""
        payload = self.model_dump(mode="json", exclude_none=True)
        if self.type != CommandType.CHAT_INPUT:
            # Context menu commands carry neither description nor options
            payload.pop("description", None)
            payload.pop("description_localizations", None)
            payload.pop("options", None)
        return payload

"""Typed option models for chat-input commands.

Each concrete model corresponds to exactly one Discord option kind and
is converted to an OptionDeclaration without any coercion between
kinds. Anything else handed to a command as an option is rejected with
InvalidOptionError when the command is built.
"""

import re
from typing import ClassVar, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .declarations import LocalizationMap, OptionChoice, OptionDeclaration, OptionKind
from .exceptions import InvalidOptionError

# Discord's rule for chat-input command and option names
NAME_PATTERN = re.compile(r"^[-_\w]{1,32}$")


class CommandOption(BaseModel):
    """Fields shared by every option kind.

    Not usable on its own: only the concrete subclasses below map to a
    Discord option kind.
    """

    model_config = ConfigDict(extra="forbid")

    kind: ClassVar[Optional[OptionKind]] = None

    name: str
    description: str = Field(min_length=1, max_length=100)
    required: bool = False
    name_localizations: Optional[LocalizationMap] = None
    description_localizations: Optional[LocalizationMap] = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not NAME_PATTERN.match(value) or value != value.lower():
            raise ValueError(
                f"option name {value!r} must be 1-32 lowercase word characters or dashes"
            )
        return value

    def _declaration_fields(self) -> dict:
        """Kind-specific declaration fields. Overridden by subclasses."""
        return {}


class BooleanOption(CommandOption):
    kind: ClassVar[Optional[OptionKind]] = OptionKind.BOOLEAN


class UserOption(CommandOption):
    kind: ClassVar[Optional[OptionKind]] = OptionKind.USER


class RoleOption(CommandOption):
    kind: ClassVar[Optional[OptionKind]] = OptionKind.ROLE


class AttachmentOption(CommandOption):
    kind: ClassVar[Optional[OptionKind]] = OptionKind.ATTACHMENT


class MentionableOption(CommandOption):
    kind: ClassVar[Optional[OptionKind]] = OptionKind.MENTIONABLE


class ChannelOption(CommandOption):
    """Channel option, optionally restricted to some channel types."""

    kind: ClassVar[Optional[OptionKind]] = OptionKind.CHANNEL

    channel_types: Optional[List[int]] = None

    def _declaration_fields(self) -> dict:
        return {"channel_types": self.channel_types}


class StringOption(CommandOption):
    kind: ClassVar[Optional[OptionKind]] = OptionKind.STRING

    choices: Optional[List[OptionChoice]] = None
    min_length: Optional[int] = Field(default=None, ge=0, le=6000)
    max_length: Optional[int] = Field(default=None, ge=1, le=6000)
    autocomplete: Optional[bool] = None

    def _declaration_fields(self) -> dict:
        return {
            "choices": self.choices,
            "min_length": self.min_length,
            "max_length": self.max_length,
            "autocomplete": self.autocomplete,
        }


class IntegerOption(CommandOption):
    kind: ClassVar[Optional[OptionKind]] = OptionKind.INTEGER

    choices: Optional[List[OptionChoice]] = None
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    autocomplete: Optional[bool] = None

    def _declaration_fields(self) -> dict:
        return {
            "choices": self.choices,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "autocomplete": self.autocomplete,
        }


class NumberOption(CommandOption):
    kind: ClassVar[Optional[OptionKind]] = OptionKind.NUMBER

    choices: Optional[List[OptionChoice]] = None
    min_value: Optional[Union[int, float]] = None
    max_value: Optional[Union[int, float]] = None
    autocomplete: Optional[bool] = None

    def _declaration_fields(self) -> dict:
        return {
            "choices": self.choices,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "autocomplete": self.autocomplete,
        }


def validate_option(option: object) -> CommandOption:
    """Return the option unchanged, or raise if it has no Discord kind."""
    if not isinstance(option, CommandOption) or option.kind is None:
        raise InvalidOptionError(
            f"{type(option).__name__} is not a supported command option; "
            "use one of the concrete option classes (StringOption, UserOption, ...)",
            option=option,
        )
    return option


def option_declaration(option: CommandOption) -> OptionDeclaration:
    """Convert an option to its declaration, preserving its kind."""
    option = validate_option(option)
    return OptionDeclaration(
        type=option.kind,
        name=option.name,
        description=option.description,
        name_localizations=option.name_localizations,
        description_localizations=option.description_localizations,
        required=option.required,
        **option._declaration_fields(),
    )

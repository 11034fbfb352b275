"""Helpers for reading application command interactions.

Works on the raw ``interaction.data`` payload the Discord client keeps on
every ``discord.Interaction``, so the same accessors serve real
interactions and lightweight stand-ins in tests.
"""

from typing import Any, Mapping, Optional

import discord

from .declarations import CommandType, OptionKind


def _data(interaction: Any) -> Mapping[str, Any]:
    data = getattr(interaction, "data", None)
    return data if isinstance(data, Mapping) else {}


def classify(interaction: Any) -> Optional[CommandType]:
    """Return the command type an interaction targets.

    None for anything that is not an application command invocation
    (components, modals, autocomplete, pings).
    """
    if getattr(interaction, "type", None) != discord.InteractionType.application_command:
        return None
    raw_type = _data(interaction).get("type", CommandType.CHAT_INPUT)
    try:
        return CommandType(raw_type)
    except ValueError:
        return None


def command_name(interaction: Any) -> str:
    """Name of the invoked top-level command."""
    return str(_data(interaction).get("name", ""))


def selected_subcommand(interaction: Any) -> Optional[str]:
    """Name of the subcommand chosen in a chat-input interaction, if any."""
    for option in _data(interaction).get("options") or ():
        if isinstance(option, Mapping) and option.get("type") == OptionKind.SUB_COMMAND:
            return option.get("name")
    return None

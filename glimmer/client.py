"""Discord client wrapper feeding gateway events to glimmer."""

from typing import Any

import discord

from .events import EventMultiplexer


class GlimmerClient(discord.Client):
    """discord.Client that forwards every dispatched event to a multiplexer.

    The client keeps its own ``on_<event>`` handling; glimmer's event
    handlers and the interaction router run alongside it.
    """

    def __init__(self, multiplexer: EventMultiplexer, **options: Any):
        super().__init__(**options)
        self._multiplexer = multiplexer

    def dispatch(self, event_name: str, *args: Any, **kwargs: Any) -> None:
        super().dispatch(event_name, *args, **kwargs)
        self._multiplexer.emit(event_name, *args)

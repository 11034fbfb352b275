"""Event handlers and the multiplexer that fans gateway events out to them.

An EventHandler pairs a Discord client event name (the ``on_<name>``
suffix, e.g. "message" or "member_join") with a callback. Discovery
reads the event name from a file name, so the pairing is checked
structurally: for events the client knows, the callback must accept the
exact number of positional arguments the client delivers.
"""

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Union

import structlog

from .exceptions import ModuleConfigurationError

logger = structlog.get_logger("glimmer.platform")

EventCallback = Callable[..., Union[Awaitable[None], None]]

# Positional payload arguments the Discord client passes to each event
EVENT_ARITY: Dict[str, int] = {
    "connect": 0,
    "disconnect": 0,
    "ready": 0,
    "resumed": 0,
    "shard_connect": 1,
    "shard_disconnect": 1,
    "shard_ready": 1,
    "shard_resumed": 1,
    "socket_raw_receive": 1,
    "socket_raw_send": 1,
    "typing": 3,
    "raw_typing": 1,
    "message": 1,
    "message_delete": 1,
    "bulk_message_delete": 1,
    "raw_message_delete": 1,
    "raw_bulk_message_delete": 1,
    "message_edit": 2,
    "raw_message_edit": 1,
    "reaction_add": 2,
    "reaction_remove": 2,
    "reaction_clear": 2,
    "reaction_clear_emoji": 1,
    "raw_reaction_add": 1,
    "raw_reaction_remove": 1,
    "raw_reaction_clear": 1,
    "raw_reaction_clear_emoji": 1,
    "interaction": 1,
    "private_channel_update": 2,
    "private_channel_pins_update": 2,
    "guild_channel_create": 1,
    "guild_channel_delete": 1,
    "guild_channel_update": 2,
    "guild_channel_pins_update": 2,
    "thread_create": 1,
    "thread_join": 1,
    "thread_delete": 1,
    "thread_remove": 1,
    "thread_update": 2,
    "thread_member_join": 1,
    "thread_member_remove": 1,
    "raw_thread_delete": 1,
    "webhooks_update": 1,
    "member_join": 1,
    "member_remove": 1,
    "raw_member_remove": 1,
    "member_update": 2,
    "presence_update": 2,
    "user_update": 2,
    "member_ban": 2,
    "member_unban": 2,
    "guild_join": 1,
    "guild_remove": 1,
    "guild_update": 2,
    "guild_available": 1,
    "guild_unavailable": 1,
    "guild_role_create": 1,
    "guild_role_delete": 1,
    "guild_role_update": 2,
    "guild_emojis_update": 3,
    "guild_stickers_update": 3,
    "voice_state_update": 3,
    "invite_create": 1,
    "invite_delete": 1,
    "integration_create": 1,
    "integration_update": 1,
    "guild_integrations_update": 1,
    "scheduled_event_create": 1,
    "scheduled_event_delete": 1,
    "scheduled_event_update": 2,
    "stage_instance_create": 1,
    "stage_instance_delete": 1,
    "stage_instance_update": 2,
    "audit_log_entry": 1,
    "auto_moderation_action": 1,
}


class EventHandler:
    """A callback subscribed to one Discord client event.

    Args:
        event: Event name without the ``on_`` prefix (e.g. "message").
        handler: Callback receiving the event's payload arguments. May
            be a coroutine function or a plain function.
    """

    def __init__(self, event: str, handler: EventCallback):
        if not isinstance(event, str) or not event:
            raise ValueError(f"EventHandler event must be a non-empty string, got {event!r}")
        if not callable(handler):
            raise TypeError(f"EventHandler handler must be callable, got {handler!r}")
        self.event = event
        self.handler = handler

    def check_signature(self) -> None:
        """Verify the callback accepts the payload of its event.

        Unknown event names (custom events dispatched by the host) are
        accepted with any callable.
        """
        arity = EVENT_ARITY.get(self.event)
        if arity is None:
            return
        try:
            signature = inspect.signature(self.handler)
        except (TypeError, ValueError):
            # Builtins without introspectable signatures
            return
        try:
            signature.bind(*([None] * arity))
        except TypeError as e:
            raise ModuleConfigurationError(
                f"Handler for the {self.event!r} event must accept {arity} "
                f"positional argument(s), but its signature is {signature}",
                expected_type=EventHandler.__name__,
                event=self.event,
            ) from e

    def __repr__(self) -> str:
        return f"<EventHandler event={self.event!r} handler={getattr(self.handler, '__qualname__', self.handler)!r}>"


class EventMultiplexer:
    """Fans a dispatched event out to every subscribed callback.

    Callbacks for one event start in subscription order, each in its own
    task. A failing callback is logged and never reaches the caller.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventCallback]] = defaultdict(list)
        self._tasks: Set[asyncio.Task] = set()

    def subscribe(self, event: str, callback: EventCallback) -> None:
        self._handlers[event].append(callback)

    def handlers(self, event: str) -> Tuple[EventCallback, ...]:
        return tuple(self._handlers.get(event, ()))

    @property
    def events(self) -> Tuple[str, ...]:
        """Event names with at least one subscriber."""
        return tuple(event for event, callbacks in self._handlers.items() if callbacks)

    def emit(self, event: str, *args: Any) -> List[asyncio.Task]:
        """Schedule every callback for ``event``. Must run inside the loop."""
        tasks = []
        for callback in self.handlers(event):
            task = asyncio.create_task(
                self._run(event, callback, args), name=f"glimmer-event-{event}"
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        return tasks

    async def _run(self, event: str, callback: EventCallback, args: Tuple[Any, ...]) -> None:
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.exception(
                "event_handler_failed",
                event_name=event,
                handler=getattr(callback, "__qualname__", repr(callback)),
                error=str(e),
                error_type=type(e).__name__,
            )

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight callbacks to finish."""
        if self._tasks:
            await asyncio.wait(set(self._tasks), timeout=timeout)

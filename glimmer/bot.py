"""The Glimmer bot: registry, dispatcher and Discord client in one place.

Typical use::

    bot = Glimmer(application_id=APP_ID, token=TOKEN)
    bot.add_modules(await Module.from_directory("modules/basic"))
    await bot.refresh_commands()
    await bot.start()

``refresh_commands()`` must be called after the last ``add_modules()``
for Discord to deliver interactions for the registered commands; local
dispatch works without it.
"""

from typing import Any, Dict, List, Optional

import aiohttp
import discord
import structlog

from .client import GlimmerClient
from .events import EventMultiplexer
from .module import Module
from .registry import (
    CommandRegistry,
    DiagnosticSink,
    Dispatcher,
    ErrorHandler,
    log_diagnostic,
)
from .rest import DISCORD_API_BASE, replace_all_commands

logger = structlog.get_logger("glimmer.platform")


class Glimmer:
    """A glimmer Discord bot.

    Args:
        application_id: Discord application ID.
        token: Discord bot token.
        client_options: Keyword arguments for ``discord.Client``. When
            ``intents`` is missing, ``discord.Intents.default()`` is used.
        error_handler: Optional callback receiving a CommandHandlerError
            whenever a command handler raises.
        diagnostics: Sink for overrides and routing misses. Defaults to
            logging them as warnings.
        api_base_url: Discord REST API root used by refresh_commands().
    """

    def __init__(
        self,
        *,
        application_id: str,
        token: str,
        client_options: Optional[Dict[str, Any]] = None,
        error_handler: Optional[ErrorHandler] = None,
        diagnostics: DiagnosticSink = log_diagnostic,
        api_base_url: str = DISCORD_API_BASE,
    ):
        self._application_id = str(application_id)
        self._token = token
        self._client_options = dict(client_options or {})
        self._api_base_url = api_base_url

        self.registry = CommandRegistry(diagnostics=diagnostics)
        self.dispatcher = Dispatcher(
            self.registry, error_handler=error_handler, diagnostics=diagnostics
        )
        self.events = EventMultiplexer()
        self.events.subscribe("ready", self._on_ready)
        self.events.subscribe("interaction", self.dispatcher.dispatch)

        # Created in start(): discord clients must be built inside a running loop
        self._client: Optional[GlimmerClient] = None
        self._modules: List[Module] = []

    @property
    def client(self) -> Optional[GlimmerClient]:
        """The Discord client, once start() has created it."""
        return self._client

    @property
    def modules(self) -> List[Module]:
        return list(self._modules)

    def add_modules(self, *modules: Module) -> None:
        """Register the commands and event handlers of each module.

        Commands replace same-named commands of the same type (with a
        diagnostic). Event handlers are additive: every handler for an
        event runs, in the order they were added.
        """
        for module in modules:
            for command in module.commands:
                self.registry.add(command)
            for handler in module.events:
                self.events.subscribe(handler.event, handler.handler)
            self._modules.append(module)
            logger.info(
                "module_added",
                commands=[command.name for command in module.commands],
                events=[handler.event for handler in module.events],
            )

    def _ensure_client(self) -> GlimmerClient:
        if self._client is None:
            options = dict(self._client_options)
            options.setdefault("intents", discord.Intents.default())
            self._client = GlimmerClient(self.events, **options)
        return self._client

    async def start(self) -> None:
        """Log in and run the gateway connection until the client closes."""
        client = self._ensure_client()
        await client.start(self._token)

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed():
            await self._client.close()
        await self.events.drain(timeout=5.0)

    async def refresh_commands(self) -> List[Any]:
        """Replace Discord's command list with every registered command."""
        declarations = self.registry.declarations()
        async with aiohttp.ClientSession() as session:
            return await replace_all_commands(
                session,
                self._application_id,
                self._token,
                declarations,
                api_base_url=self._api_base_url,
            )

    async def dispatch(self, interaction: Any) -> bool:
        """Route an interaction directly, bypassing the gateway."""
        return await self.dispatcher.dispatch(interaction)

    async def _on_ready(self) -> None:
        user = self._client.user if self._client is not None else None
        logger.info(
            "glimmer_ready",
            user=str(user) if user is not None else None,
            commands=len(self.registry),
        )

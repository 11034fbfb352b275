"""Publishing command declarations to Discord over REST.

Publishing is a full replace: Discord's bulk overwrite endpoint swaps
the application's whole global command set for the submitted list.
"""

from typing import Any, List, Sequence

import aiohttp
import structlog

from .declarations import CommandDeclaration
from .exceptions import CommandPublishError

logger = structlog.get_logger("glimmer.platform")

DISCORD_API_BASE = "https://discord.com/api/v10"
USER_AGENT = "DiscordBot (https://github.com/glimmer-bot/glimmer, 0.1.0)"


def commands_url(application_id: str, api_base_url: str = DISCORD_API_BASE) -> str:
    return f"{api_base_url.rstrip('/')}/applications/{application_id}/commands"


async def replace_all_commands(
    session: aiohttp.ClientSession,
    application_id: str,
    token: str,
    declarations: Sequence[CommandDeclaration],
    *,
    api_base_url: str = DISCORD_API_BASE,
    timeout: float = 30.0,
) -> List[Any]:
    """Replace the application's global commands with ``declarations``.

    Args:
        session: aiohttp session for the request.
        application_id: Discord application ID.
        token: Bot token, sent as ``Authorization: Bot <token>``.
        declarations: Every command the bot should expose.
        api_base_url: Discord API root (overridable for tests/proxies).
        timeout: Total request timeout in seconds.

    Returns:
        The command objects Discord echoes back.

    Raises:
        CommandPublishError: Discord answered with a non-2xx status.
        aiohttp.ClientError: Transport failures propagate unchanged.
    """
    url = commands_url(application_id, api_base_url)
    payload = [declaration.to_payload() for declaration in declarations]
    headers = {"Authorization": f"Bot {token}", "User-Agent": USER_AGENT}

    async with session.put(
        url,
        json=payload,
        headers=headers,
        timeout=aiohttp.ClientTimeout(total=timeout),
    ) as resp:
        if not 200 <= resp.status < 300:
            body = await resp.text()
            logger.error("commands_publish_failed", status=resp.status, body=body[:200])
            raise CommandPublishError(
                f"Discord rejected the command list with HTTP {resp.status}",
                status=resp.status,
                body=body,
            )
        result = await resp.json()

    logger.info(
        "commands_published",
        application_id=application_id,
        count=len(payload),
        names=[entry["name"] for entry in payload],
    )
    return result

"""Main entry point for glimmer bots.

Initializes logging in two phases (defaults then config-driven),
discovers every configured module directory, publishes the command
list, and runs the Discord client with graceful shutdown on
SIGTERM/SIGINT.

Key functions:
    build_bot: Discover modules and assemble a Glimmer bot from Config.
    main: Async entry point.
    run: Synchronous wrapper for the ``glimmer`` console script.
"""

import asyncio
import signal
import sys

import structlog

from .logging_config import setup_logging


async def build_bot(config):
    """Discover the configured modules and return a ready-to-start bot."""
    from .bot import Glimmer
    from .module import Module

    bot = Glimmer(
        application_id=config.application_id,
        token=config.token,
        client_options={"intents": config.intents},
        api_base_url=config.api_base_url,
    )
    modules = await asyncio.gather(
        *(Module.from_directory(path) for path in config.module_dirs)
    )
    bot.add_modules(*modules)
    return bot


async def main():
    """Main async entry point."""
    setup_logging()
    logger = structlog.get_logger("glimmer")
    logger.info("glimmer_starting")

    from .config import get_config

    config = get_config()
    config.validate()
    setup_logging(config)

    if not config.token or not config.application_id:
        logger.error("glimmer_missing_credentials")
        sys.exit(1)

    bot = await build_bot(config)
    if config.refresh_commands_on_start:
        await bot.refresh_commands()

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_shutdown(sig):
        logger.info("shutdown_signal_received", signal=sig.name)
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, handle_shutdown, sig)
        except NotImplementedError:
            # Windows: add_signal_handler not supported
            if sig == signal.SIGINT:
                signal.signal(
                    signal.SIGINT,
                    lambda s, f: handle_shutdown(signal.SIGINT),
                )

    bot_task = asyncio.create_task(bot.start(), name="glimmer-client")
    shutdown_task = asyncio.create_task(shutdown_event.wait(), name="glimmer-shutdown")
    try:
        done, _ = await asyncio.wait(
            {bot_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if bot_task in done:
            # Client stopped on its own; surface login/transport errors
            bot_task.result()
    except Exception as e:
        logger.error("bot_error", error=str(e), error_type=type(e).__name__)
        raise
    finally:
        shutdown_task.cancel()
        await bot.close()
        if not bot_task.done():
            bot_task.cancel()
            try:
                await bot_task
            except asyncio.CancelledError:
                pass
        logger.info("glimmer_stopped")


def run():
    """Synchronous entry point for the ``glimmer`` console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()

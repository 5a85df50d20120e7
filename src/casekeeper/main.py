"""
Casekeeper Discord Bot
======================

Moderation assistant that issues warnings, timeouts, kicks and bans, keeps a
permanent case record per sanctioned user, and manages one-time ban override
codes.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. CASEKEEPER_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("CASEKEEPER_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from casekeeper.bot.services import BotServices, build_services
from casekeeper.configuration.app_configuration import CONFIG_PATH, AppConfig
from casekeeper.moderation.errors import StorageFailure
from casekeeper.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for slash commands, member role lookups and the ``!purge`` prefix command."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, services: BotServices) -> None:
    """Register all operational cogs with the provided Discord bot instance."""
    from casekeeper.bot.cogs import events_listener, moderation_cmds

    events_listener.setup(discord_bot_instance, services)
    moderation_cmds.setup(discord_bot_instance, services)

    logger.info("All cogs loaded successfully.")


def create_bot(config: AppConfig) -> tuple[discord.Bot, BotServices]:
    """Instantiate the Discord bot, build the moderation services and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    services = build_services(bot, config)
    load_cogs(bot, services)
    return bot, services


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and log around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot, services: BotServices) -> None:
    """Gracefully stop the disclosure sweep, the database and the Discord client."""
    try:
        await services.close()
    except Exception as exc:
        logger.exception("Error during services shutdown: %s", exc)

    if not bot.is_closed():
        await bot.close()

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap configuration, storage and the bot, returning an exit code."""
    token = load_environment()
    config = AppConfig(CONFIG_PATH)

    try:
        bot, services = create_bot(config)
    except ValueError as exc:
        logger.critical("Invalid staff configuration in %s: %s", CONFIG_PATH, exc)
        return 1

    try:
        logger.info("Opening database at %s...", config.database_path)
        await services.open()
    except StorageFailure as exc:
        logger.critical("Failed to initialize database: %s", exc)
        await shutdown_runtime(bot, services)
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except discord.LoginFailure as exc:
        logger.critical("Discord login failed: %s", exc)
        exit_code = 1
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, services)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting Casekeeper…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""Event listener cog for Casekeeper.

Handles the ready event (case export sync, presence, disclosure sweep),
command errors, and the ``!purge`` prefix command.
"""

import discord
from discord.ext import commands

from casekeeper.bot.embeds import build_error_embed
from casekeeper.bot.services import BotServices
from casekeeper.datatypes.permission_datatypes import CommandName
from casekeeper.moderation.errors import ModerationError
from casekeeper.moderation.intents import Actor, ModerationIntent
from casekeeper.util.discord_utils import PURGE_MAX, PURGE_MIN
from casekeeper.util.logger import get_logger

logger = get_logger("events_listener_cog")

PURGE_PREFIX = "!purge"
PURGE_REPLY_SECONDS = 5


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle, error and prefix-command handlers."""

    def __init__(self, discord_bot_instance: discord.Bot, services: BotServices):
        self.bot = discord_bot_instance
        self.services = services
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        """Sync the case export, set the presence and start the disclosure sweep.

        on_ready can fire again after a reconnect; the scheduler ignores a
        second start.
        """
        if self.bot.user:
            logger.info("Bot connected as %s (ID: %s)", self.bot.user, self.bot.user.id)
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        await self.services.cases.sync_export()

        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(type=discord.ActivityType.watching, name=self.services.config.presence),
        )

        if not self.services.scheduler.running:
            logger.info("Starting override code disclosure sweep...")
            self.services.scheduler.start()

    @commands.Cog.listener(name="on_application_command_error")
    async def on_application_command_error(self, application_context: discord.ApplicationContext, error: Exception):
        """Log unexpected command errors and send a generic reply."""
        if isinstance(error, commands.CommandNotFound):
            return

        command_name = getattr(application_context.command, "name", "<unknown>")
        logger.error("Error in command '%s': %s", command_name, error, exc_info=error)

        error_message = "Something went wrong while running this command."
        try:
            await application_context.respond(embed=build_error_embed(error_message), ephemeral=True)
        except discord.InteractionResponded:
            await application_context.followup.send(embed=build_error_embed(error_message), ephemeral=True)

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        """``!purge <amount>``: prefix form of ``/purge``."""
        if message.author.bot or message.guild is None:
            return
        if not message.content.startswith(PURGE_PREFIX):
            return

        parts = message.content.split()
        if parts[0] != PURGE_PREFIX:
            return
        try:
            amount = int(parts[1])
        except (IndexError, ValueError):
            await message.reply(f"⚠️ Please provide a number between {PURGE_MIN} and {PURGE_MAX}.")
            return

        intent = ModerationIntent(
            command=CommandName.PURGE,
            actor=Actor(
                user_id=str(message.author.id),
                display_name=str(message.author),
                role_ids=[str(role.id) for role in getattr(message.author, "roles", [])],
            ),
            guild_id=str(message.guild.id),
            options={"amount": amount, "channel_id": str(message.channel.id)},
        )
        try:
            outcome = await self.services.dispatcher.dispatch(intent)
        except ModerationError as exc:
            await message.reply(f"❌ {exc.message}")
            return

        await message.channel.send(f"✅ Deleted {outcome.details.get('deleted', 0)} messages.", delete_after=PURGE_REPLY_SECONDS)


def setup(discord_bot_instance: discord.Bot, services: BotServices) -> None:
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, services))

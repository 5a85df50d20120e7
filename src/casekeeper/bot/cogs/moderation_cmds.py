"""
Moderation cog: the slash commands staff use to sanction members and manage
the case, warning and override-code ledgers.

Each command only translates its options into a :class:`ModerationIntent`
and hands it to the dispatcher, which does validation, authorization,
execution, recording and logging. The reply is always ephemeral.

Quick usage example
    from casekeeper.bot.cogs.moderation_cmds import ModerationCog
    bot.add_cog(ModerationCog(bot, services))
"""

from typing import Any, Dict, Optional

import discord
from discord import Option
from discord.ext import commands

from casekeeper.bot.embeds import build_error_embed, build_outcome_embed
from casekeeper.bot.services import BotServices
from casekeeper.datatypes.ledger_datatypes import Severity
from casekeeper.datatypes.permission_datatypes import CommandName
from casekeeper.moderation.errors import ModerationError
from casekeeper.moderation.intents import Actor, ModerationIntent
from casekeeper.util.discord_utils import (
    MAX_BAN_DELETE_DAYS,
    PURGE_MAX,
    PURGE_MIN,
    TIMEOUT_CHOICES,
    parse_duration_to_minutes,
)
from casekeeper.util.logger import get_logger

logger = get_logger("moderation_cog")

SEVERITY_CHOICES = [severity.value for severity in Severity]


def actor_from_context(ctx: discord.ApplicationContext) -> Actor:
    """Build the dispatcher's view of the invoking moderator."""
    author = ctx.author
    role_ids = [str(role.id) for role in getattr(author, "roles", [])]
    return Actor(
        user_id=str(author.id),
        display_name=str(author),
        role_ids=role_ids,
        avatar_url=author.display_avatar.url,
    )


class ModerationCog(commands.Cog):
    """Cog containing every moderation slash command."""

    def __init__(self, discord_bot_instance: discord.Bot, services: BotServices):
        self.discord_bot_instance = discord_bot_instance
        self.services = services
        logger.info("Moderation cog loaded")

    async def run_intent(
        self,
        ctx: discord.ApplicationContext,
        command: CommandName,
        target: Optional[str] = None,
        **options: Any,
    ) -> None:
        """Dispatch one command and reply with its outcome or error.

        Anything other than a :class:`ModerationError` propagates to the
        ``on_application_command_error`` listener.
        """
        await ctx.defer(ephemeral=True)

        if ctx.guild is None:
            await ctx.send_followup("This command can only be used in a server.", ephemeral=True)
            return

        intent = ModerationIntent(
            command=command,
            actor=actor_from_context(ctx),
            guild_id=str(ctx.guild.id),
            target=target,
            options=options,
        )
        try:
            outcome = await self.services.dispatcher.dispatch(intent)
        except ModerationError as exc:
            logger.info("[MODERATION COG] /%s by %s rejected: %s", command, ctx.author.id, exc.message)
            await ctx.send_followup(embed=build_error_embed(exc.message), ephemeral=True)
            return

        await ctx.send_followup(embed=build_outcome_embed(outcome), ephemeral=outcome.ephemeral)

    @commands.slash_command(name="warn", description="Warn a user.")
    async def warn(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to warn.", required=True),  # type: ignore
        reason: Option(str, "Reason for the warning.", required=True),  # type: ignore
        severity: Option(str, "Warning severity.", choices=SEVERITY_CHOICES, default="moderate"),  # type: ignore
        timeout: Option(str, "Also time the user out.", choices=TIMEOUT_CHOICES, required=False, default=None),  # type: ignore
        silent: Option(bool, "Do not DM the user.", default=False),  # type: ignore
    ) -> None:
        """Warn a user, optionally timing them out as well."""
        await self.run_intent(
            ctx,
            CommandName.WARN,
            str(user.id),
            reason=reason,
            severity=severity,
            timeout=parse_duration_to_minutes(timeout) if timeout else None,
            silent=silent,
        )

    @commands.slash_command(name="timeout", description="Timeout a user without a warning.")
    async def timeout(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to timeout.", required=True),  # type: ignore
        duration: Option(str, "Duration of the timeout.", choices=TIMEOUT_CHOICES, required=True),  # type: ignore
        reason: Option(str, "Reason for the timeout.", required=True),  # type: ignore
    ) -> None:
        await self.run_intent(
            ctx,
            CommandName.TIMEOUT,
            str(user.id),
            duration=parse_duration_to_minutes(duration),
            reason=reason,
        )

    @commands.slash_command(name="kick", description="Kick a user from the server.")
    async def kick(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to kick.", required=True),  # type: ignore
        reason: Option(str, "Reason for the kick.", required=True),  # type: ignore
    ) -> None:
        await self.run_intent(ctx, CommandName.KICK, str(user.id), reason=reason)

    @commands.slash_command(name="ban", description="Ban a user by mention or user ID.")
    async def ban(
        self,
        ctx: discord.ApplicationContext,
        target: Option(str, "User @mention or user ID.", required=True),  # type: ignore
        reason: Option(str, "Reason for the ban.", required=True),  # type: ignore
        hackban: Option(bool, "Ban by ID even if the user is not in the server.", default=False),  # type: ignore
        delete_days: Option(int, "Days of messages to delete.", min_value=0, max_value=MAX_BAN_DELETE_DAYS, default=0),  # type: ignore
        override_code: Option(str, "One-time override code.", required=False, default=None),  # type: ignore
    ) -> None:
        """Ban a user. Staff without the ban permission need an override code."""
        await self.run_intent(
            ctx,
            CommandName.BAN,
            target,
            reason=reason,
            hackban=hackban,
            delete_days=delete_days,
            override_code=override_code,
        )

    @commands.slash_command(name="unban", description="Unban a user, or list bans when no user ID is given.")
    async def unban(
        self,
        ctx: discord.ApplicationContext,
        user_id: Option(str, "User ID to unban. Leave empty to list bans.", required=False, default=None),  # type: ignore
        reason: Option(str, "Reason for the unban.", required=False, default=None),  # type: ignore
        override_code: Option(str, "One-time override code.", required=False, default=None),  # type: ignore
    ) -> None:
        await self.run_intent(ctx, CommandName.UNBAN, user_id, reason=reason, override_code=override_code)

    @commands.slash_command(name="case", description="Look up cases by number, user or severity.")
    async def case(
        self,
        ctx: discord.ApplicationContext,
        number: Option(int, "Case number.", min_value=1, required=False, default=None),  # type: ignore
        user: Option(discord.User, "Show cases of this user.", required=False, default=None),  # type: ignore
        severity: Option(str, "Show cases of this severity.", choices=SEVERITY_CHOICES, required=False, default=None),  # type: ignore
    ) -> None:
        await self.run_intent(
            ctx,
            CommandName.CASE,
            str(user.id) if user else None,
            number=number,
            severity=severity,
        )

    @commands.slash_command(name="clearwarnings", description="Clear every warning of a user.")
    async def clearwarnings(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user whose warnings to clear.", required=True),  # type: ignore
    ) -> None:
        await self.run_intent(ctx, CommandName.CLEAR_WARNINGS, str(user.id))

    @commands.slash_command(name="deletecase", description="Delete a case.")
    async def deletecase(
        self,
        ctx: discord.ApplicationContext,
        number: Option(int, "Case number.", min_value=1, required=True),  # type: ignore
        revert_warn: Option(bool, "Also remove the warning this case recorded.", default=False),  # type: ignore
    ) -> None:
        await self.run_intent(ctx, CommandName.DELETE_CASE, number=number, revert_warn=revert_warn)

    @commands.slash_command(name="generatebancode", description="Show or generate the ban override code.")
    async def generatebancode(self, ctx: discord.ApplicationContext) -> None:
        await self.run_intent(ctx, CommandName.GENERATE_BAN_CODE)

    @commands.slash_command(name="purge", description="Delete recent messages in this channel.")
    async def purge(
        self,
        ctx: discord.ApplicationContext,
        amount: Option(int, "How many messages.", min_value=PURGE_MIN, max_value=PURGE_MAX, required=True),  # type: ignore
        user: Option(discord.User, "Only delete messages from this user.", required=False, default=None),  # type: ignore
    ) -> None:
        await self.run_intent(
            ctx,
            CommandName.PURGE,
            str(user.id) if user else None,
            amount=amount,
            channel_id=str(ctx.channel_id),
        )

    @commands.slash_command(name="help", description="List the moderation commands.")
    async def help(self, ctx: discord.ApplicationContext) -> None:
        await self.run_intent(ctx, CommandName.HELP)


def setup(discord_bot_instance: discord.Bot, services: BotServices) -> None:
    """Register the moderation cog with the running bot."""
    discord_bot_instance.add_cog(ModerationCog(discord_bot_instance, services))

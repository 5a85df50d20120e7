"""
py-cord implementations of the moderation platform and notification sink.

Every Discord API failure is converted into
:class:`~casekeeper.moderation.errors.ExternalActionFailure` so the dispatcher
never has to know about ``discord`` exceptions.
"""

from __future__ import annotations

import datetime
from typing import List, Optional

import discord

from casekeeper.bot.embeds import build_dm_embed, build_event_embed
from casekeeper.moderation.errors import ExternalActionFailure
from casekeeper.moderation.intents import ModerationEvent, UserRef
from casekeeper.util.discord_utils import default_avatar_url
from casekeeper.util.logger import get_logger

logger = get_logger("discord_platform")


def user_ref(user: discord.abc.User) -> UserRef:
    avatar = user.display_avatar.url if user.display_avatar else default_avatar_url(user.id)
    return UserRef(user_id=str(user.id), username=str(user), avatar_url=avatar)


class DiscordPlatform:
    """Executes sanctions and lookups through a connected ``discord.Bot``."""

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    async def _guild(self, guild_id: str) -> discord.Guild:
        guild = self.bot.get_guild(int(guild_id))
        if guild is not None:
            return guild
        try:
            return await self.bot.fetch_guild(int(guild_id))
        except discord.HTTPException as exc:
            raise ExternalActionFailure("find the server", str(exc)) from exc

    async def _member(self, guild: discord.Guild, user_id: str) -> Optional[discord.Member]:
        member = guild.get_member(int(user_id))
        if member is not None:
            return member
        try:
            return await guild.fetch_member(int(user_id))
        except discord.NotFound:
            return None
        except discord.HTTPException as exc:
            raise ExternalActionFailure("look up the member", str(exc)) from exc

    async def fetch_member_role_ids(self, guild_id: str, user_id: str) -> Optional[List[str]]:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        if member is None:
            return None
        return [str(role.id) for role in member.roles]

    async def fetch_user(self, user_id: str) -> Optional[UserRef]:
        user = self.bot.get_user(int(user_id))
        if user is None:
            try:
                user = await self.bot.fetch_user(int(user_id))
            except discord.NotFound:
                return None
            except discord.HTTPException as exc:
                logger.warning("[DISCORD PLATFORM] Failed to fetch user %s: %s", user_id, exc)
                return None
        return user_ref(user)

    async def timeout(self, guild_id: str, user_id: str, minutes: int, reason: str) -> None:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        if member is None:
            raise ExternalActionFailure("timeout", "user is not a member of this server")
        try:
            await member.timeout_for(datetime.timedelta(minutes=minutes), reason=reason)
        except discord.HTTPException as exc:
            raise ExternalActionFailure("timeout", str(exc)) from exc

    async def kick(self, guild_id: str, user_id: str, reason: str) -> None:
        guild = await self._guild(guild_id)
        try:
            await guild.kick(discord.Object(id=int(user_id)), reason=reason)
        except discord.HTTPException as exc:
            raise ExternalActionFailure("kick", str(exc)) from exc

    async def ban(self, guild_id: str, user_id: str, reason: str, delete_days: int) -> None:
        guild = await self._guild(guild_id)
        try:
            await guild.ban(
                discord.Object(id=int(user_id)),
                reason=reason,
                delete_message_seconds=delete_days * 86400,
            )
        except discord.HTTPException as exc:
            raise ExternalActionFailure("ban", f"invalid user ID, missing permissions, or user already banned ({exc})") from exc

    async def unban(self, guild_id: str, user_id: str, reason: str) -> None:
        guild = await self._guild(guild_id)
        try:
            await guild.unban(discord.Object(id=int(user_id)), reason=reason)
        except discord.HTTPException as exc:
            raise ExternalActionFailure("unban", f"user is not banned, invalid user ID, or missing permissions ({exc})") from exc

    async def fetch_bans(self, guild_id: str) -> List[UserRef]:
        guild = await self._guild(guild_id)
        try:
            return [user_ref(entry.user) async for entry in guild.bans(limit=None)]
        except discord.HTTPException as exc:
            raise ExternalActionFailure("fetch the ban list", str(exc)) from exc

    async def send_direct_message(self, user_id: str, event: ModerationEvent) -> bool:
        guild = self.bot.get_guild(int(event.guild_id)) if event.guild_id else None
        guild_name = guild.name if guild else "the server"
        try:
            user = self.bot.get_user(int(user_id)) or await self.bot.fetch_user(int(user_id))
            await user.send(embed=build_dm_embed(event, guild_name))
        except discord.HTTPException as exc:
            logger.info("[DISCORD PLATFORM] Could not DM %s: %s", user_id, exc)
            return False
        return True

    async def purge(self, guild_id: str, channel_id: str, amount: int, user_id: Optional[str] = None) -> int:
        channel = self.bot.get_channel(int(channel_id))
        if not isinstance(channel, discord.TextChannel):
            raise ExternalActionFailure("purge", "this channel does not support bulk deletion")

        remaining = amount

        def check(message: discord.Message) -> bool:
            nonlocal remaining
            if user_id is None:
                return True
            if remaining > 0 and str(message.author.id) == user_id:
                remaining -= 1
                return True
            return False

        # A user filter only scans the latest 100 messages.
        limit = amount if user_id is None else 100

        try:
            deleted = await channel.purge(limit=limit, check=check, bulk=True)
        except discord.HTTPException as exc:
            raise ExternalActionFailure("delete messages", f"they may be older than 14 days ({exc})") from exc
        return len(deleted)


class DiscordNotificationSink:
    """Posts moderation events as embeds into text channels."""

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    async def send(self, channel_id: Optional[int], event: ModerationEvent) -> None:
        if channel_id is None:
            logger.debug("[NOTIFICATION SINK] No channel configured for %s; skipping", event.kind)
            return

        channel = self.bot.get_channel(int(channel_id))
        try:
            if channel is None:
                channel = await self.bot.fetch_channel(int(channel_id))
            await channel.send(embed=build_event_embed(event))
        except discord.HTTPException as exc:
            raise ExternalActionFailure(f"post to channel {channel_id}", str(exc)) from exc

"""
Interfaces the dispatcher needs from the chat platform.

The py-cord implementations live in :mod:`casekeeper.bot.discord_platform`;
the tests use in-memory fakes. Every sanction method raises
:class:`~casekeeper.moderation.errors.ExternalActionFailure` when the platform
rejects the call.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from casekeeper.moderation.intents import ModerationEvent, UserRef


class ModerationPlatform(Protocol):
    async def fetch_member_role_ids(self, guild_id: str, user_id: str) -> Optional[List[str]]:
        """Role ids of a guild member, or None if the user is not a member."""
        ...

    async def fetch_user(self, user_id: str) -> Optional[UserRef]:
        ...

    async def timeout(self, guild_id: str, user_id: str, minutes: int, reason: str) -> None:
        ...

    async def kick(self, guild_id: str, user_id: str, reason: str) -> None:
        ...

    async def ban(self, guild_id: str, user_id: str, reason: str, delete_days: int) -> None:
        ...

    async def unban(self, guild_id: str, user_id: str, reason: str) -> None:
        ...

    async def fetch_bans(self, guild_id: str) -> Sequence[UserRef]:
        ...

    async def send_direct_message(self, user_id: str, event: ModerationEvent) -> bool:
        """Best effort; returns False when the user cannot be messaged."""
        ...

    async def purge(self, guild_id: str, channel_id: str, amount: int, user_id: Optional[str] = None) -> int:
        """Delete up to ``amount`` recent messages and return how many were deleted."""
        ...


class NotificationSink(Protocol):
    async def send(self, channel_id: Optional[int], event: ModerationEvent) -> None:
        """Post ``event`` to ``channel_id``. A None channel is silently skipped."""
        ...

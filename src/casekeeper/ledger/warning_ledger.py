"""Per-guild warning history, persisted as ``warnings.json``.

Document layout: ``{guild_id: {user_id: {username, count, history[...]}}}``.
A user's record disappears as soon as its history is empty.
"""

from __future__ import annotations

from typing import Callable, Optional

from casekeeper.database.document_store import WARNINGS_DOCUMENT, DocumentStore
from casekeeper.datatypes.ledger_datatypes import DEFAULT_SEVERITY, WarningEvent, WarningRecord
from casekeeper.util.discord_utils import now_ms
from casekeeper.util.logger import get_logger

logger = get_logger("warning_ledger")


class WarningLedger:
    def __init__(self, store: DocumentStore, clock: Callable[[], int] = now_ms) -> None:
        self._store = store
        self._clock = clock

    async def add_warning(
        self,
        guild_id: str,
        user_id: str,
        username: str,
        reason: str,
        severity: str = DEFAULT_SEVERITY,
    ) -> int:
        """Append a warning and return the user's new warning count."""
        guild_id, user_id = str(guild_id), str(user_id)
        async with self._store.mutate(WARNINGS_DOCUMENT, {}) as document:
            users = document.setdefault(guild_id, {})
            record = WarningRecord.from_dict(users[user_id]) if user_id in users else WarningRecord(username)
            record.username = username
            record.history.append(WarningEvent(reason=reason, severity=severity, timestamp=self._clock()))
            record.count = len(record.history)
            users[user_id] = record.to_dict()

        logger.debug("[WARNING LEDGER] %s in guild %s now has %d warnings", user_id, guild_id, record.count)
        return record.count

    async def revert_warning(self, guild_id: str, user_id: str) -> bool:
        """Remove the most recent warning. Returns False when there is nothing to revert."""
        guild_id, user_id = str(guild_id), str(user_id)
        async with self._store.mutate(WARNINGS_DOCUMENT, {}) as document:
            users = document.get(guild_id, {})
            if user_id not in users:
                return False

            record = WarningRecord.from_dict(users[user_id])
            if not record.history:
                return False

            record.history.pop()
            record.count = len(record.history)
            if record.count == 0:
                del users[user_id]
            else:
                users[user_id] = record.to_dict()

        logger.debug("[WARNING LEDGER] Reverted a warning of %s in guild %s (%d left)", user_id, guild_id, record.count)
        return True

    async def clear_warnings(self, guild_id: str, user_id: str) -> Optional[int]:
        """Delete the user's record. Returns the previous count, or None if there was none."""
        guild_id, user_id = str(guild_id), str(user_id)
        async with self._store.mutate(WARNINGS_DOCUMENT, {}) as document:
            users = document.get(guild_id, {})
            raw = users.pop(user_id, None)

        if raw is None:
            return None
        return WarningRecord.from_dict(raw).count

    async def get_warnings(self, guild_id: str, user_id: str) -> Optional[WarningRecord]:
        document = await self._store.load(WARNINGS_DOCUMENT, {})
        raw = document.get(str(guild_id), {}).get(str(user_id))
        return WarningRecord.from_dict(raw) if raw is not None else None

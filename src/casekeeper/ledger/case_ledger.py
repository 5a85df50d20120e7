"""Per-guild case records, persisted as ``cases.json``.

Case numbers are handed out from ``nextCaseNumber``, which only ever grows:
deleting a case neither renumbers the others nor frees its number.
"""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

from casekeeper.database.document_store import CASES_DOCUMENT, DocumentStore
from casekeeper.datatypes.ledger_datatypes import Case, CaseType, GuildCaseLedger
from casekeeper.ledger.case_export import CaseExporter
from casekeeper.util.discord_utils import default_avatar_url, now_ms
from casekeeper.util.logger import get_logger

logger = get_logger("case_ledger")


class CaseLedger:
    """Creates, looks up and deletes cases. Every change refreshes the export."""

    def __init__(
        self,
        store: DocumentStore,
        exporter: Optional[CaseExporter] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._exporter = exporter
        self._clock = clock
        self._export_lock = asyncio.Lock()

    async def _export(self) -> None:
        if self._exporter is None:
            return
        # One export at a time, always from the latest stored document.
        async with self._export_lock:
            document = await self._store.load(CASES_DOCUMENT, {})
            try:
                await self._exporter.export(document)
            except OSError as exc:
                logger.error("[CASE LEDGER] Case export failed: %s", exc)

    async def _load_guild(self, guild_id: str) -> GuildCaseLedger:
        document = await self._store.load(CASES_DOCUMENT, {})
        raw = document.get(str(guild_id))
        return GuildCaseLedger.from_dict(raw) if raw else GuildCaseLedger()

    async def ensure_guild_ledger(self, guild_id: str) -> GuildCaseLedger:
        """Return the guild's ledger, persisting an empty seed on first access."""
        guild_id = str(guild_id)
        async with self._store.mutate(CASES_DOCUMENT, {}) as document:
            if guild_id not in document:
                document[guild_id] = GuildCaseLedger().to_dict()
                logger.info("[CASE LEDGER] Initialized case ledger for guild %s", guild_id)
            return GuildCaseLedger.from_dict(document[guild_id])

    async def create_case(
        self,
        guild_id: str,
        case_type: CaseType,
        user_id: str,
        username: str,
        moderator_id: str,
        moderator_name: str,
        reason: str,
        severity: Optional[str] = None,
        duration: Optional[int] = None,
        user_avatar: Optional[str] = None,
        moderator_avatar: Optional[str] = None,
    ) -> int:
        """Record a case and return its number."""
        guild_id = str(guild_id)
        async with self._store.mutate(CASES_DOCUMENT, {}) as document:
            raw = document.get(guild_id)
            ledger = GuildCaseLedger.from_dict(raw) if raw else GuildCaseLedger()

            case_number = ledger.next_case_number
            ledger.next_case_number += 1
            ledger.cases.append(
                Case(
                    case_number=case_number,
                    type=CaseType(case_type),
                    user_id=str(user_id),
                    username=username,
                    user_avatar=user_avatar or default_avatar_url(user_id),
                    moderator_id=str(moderator_id),
                    moderator_name=moderator_name,
                    moderator_avatar=moderator_avatar or default_avatar_url(moderator_id),
                    reason=reason,
                    timestamp=self._clock(),
                    guild_id=guild_id,
                    severity=severity,
                    duration=duration,
                )
            )
            ledger.cases.sort(key=lambda case: case.case_number)
            document[guild_id] = ledger.to_dict()

        logger.info("[CASE LEDGER] Case #%d (%s) created for %s in guild %s", case_number, case_type, user_id, guild_id)
        await self._export()
        return case_number

    async def find_by_number(self, guild_id: str, case_number: int) -> Optional[Case]:
        ledger = await self._load_guild(guild_id)
        return next((case for case in ledger.cases if case.case_number == case_number), None)

    async def find_by_user(self, guild_id: str, user_id: str) -> List[Case]:
        ledger = await self._load_guild(guild_id)
        return [case for case in ledger.cases if case.user_id == str(user_id)]

    async def find_by_severity(self, guild_id: str, severity: str) -> List[Case]:
        wanted = severity.lower()
        ledger = await self._load_guild(guild_id)
        return [case for case in ledger.cases if case.severity and case.severity.lower() == wanted]

    async def delete_case(self, guild_id: str, case_number: int) -> Optional[Case]:
        """Remove a case. Returns the removed case, or None if it did not exist."""
        guild_id = str(guild_id)
        async with self._store.mutate(CASES_DOCUMENT, {}) as document:
            raw = document.get(guild_id)
            if not raw:
                return None
            ledger = GuildCaseLedger.from_dict(raw)
            removed = next((case for case in ledger.cases if case.case_number == case_number), None)
            if removed is None:
                return None
            ledger.cases.remove(removed)
            document[guild_id] = ledger.to_dict()

        logger.info("[CASE LEDGER] Case #%d deleted in guild %s", case_number, guild_id)
        await self._export()
        return removed

    async def sync_export(self) -> None:
        """Rewrite the export directory from the stored document (run at startup)."""
        await self._export()

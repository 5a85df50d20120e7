"""
One-time override codes, persisted as ``override-codes.json``.

A code lets a staff member without the ``ban`` permission run ``/ban`` or
``/unban`` once. Consuming a code mints an auto-generated replacement, which
the disclosure sweep publishes only after it has aged past the disclosure
delay, unless its generator is an invisible (override-only) actor.

Document layout: ``{"codes": [{code, command, generatedBy, ...}, ...]}``.
"""

from __future__ import annotations

import secrets
from typing import Awaitable, Callable, List, Optional

from casekeeper.database.document_store import OVERRIDE_CODES_DOCUMENT, DocumentStore
from casekeeper.datatypes.ledger_datatypes import OverrideCode
from casekeeper.util.discord_utils import now_ms
from casekeeper.util.logger import get_logger

logger = get_logger("override_codes")

# No I, O or 0; they are easy to confuse with l and each other.
CODE_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHJKLMNPQRSTUVWXYZ123456789!§$%&/()=?"
CODE_LENGTH = 8
DEFAULT_DISCLOSURE_DELAY_MS = 24 * 60 * 60 * 1000

_EMPTY_DOCUMENT = {"codes": []}


def random_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


class OverrideCodeLedger:
    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], int] = now_ms,
        disclosure_delay_ms: int = DEFAULT_DISCLOSURE_DELAY_MS,
        code_factory: Callable[[], str] = random_code,
    ) -> None:
        self._store = store
        self._clock = clock
        self.disclosure_delay_ms = disclosure_delay_ms
        self._code_factory = code_factory

    async def generate(
        self,
        generated_by: str,
        generated_by_id: Optional[str] = None,
        auto_generated: bool = False,
        command: str = "ban",
    ) -> str:
        """Mint and store a new unused code, retrying until it is unique."""
        async with self._store.mutate(OVERRIDE_CODES_DOCUMENT, _EMPTY_DOCUMENT) as document:
            codes = document.setdefault("codes", [])
            existing = {entry.get("code") for entry in codes}

            code = self._code_factory()
            while code in existing:
                logger.debug("[OVERRIDE CODES] Generated code collided with an existing one; retrying")
                code = self._code_factory()

            codes.append(
                OverrideCode(
                    code=code,
                    command=command,
                    generated_by=generated_by,
                    generated_by_id=str(generated_by_id) if generated_by_id is not None else None,
                    generated_at=self._clock(),
                    auto_generated=auto_generated,
                ).to_dict()
            )

        logger.info("[OVERRIDE CODES] New %s code generated (auto=%s)", command, auto_generated)
        return code

    async def validate_and_consume(self, code: str, user_id: str) -> Optional[OverrideCode]:
        """Mark an unused code as used by ``user_id``.

        Returns:
            The code as it was before consumption, or None if the code is
            unknown or already used.
        """
        async with self._store.mutate(OVERRIDE_CODES_DOCUMENT, _EMPTY_DOCUMENT) as document:
            for entry in document.get("codes", []):
                if entry.get("code") == code and not entry.get("used"):
                    original = OverrideCode.from_dict(entry)
                    entry["used"] = True
                    entry["usedBy"] = str(user_id)
                    entry["usedAt"] = self._clock()
                    break
            else:
                return None

        logger.info("[OVERRIDE CODES] Code generated by %s consumed by %s", original.generated_by, user_id)
        return original

    async def all_codes(self) -> List[OverrideCode]:
        document = await self._store.load(OVERRIDE_CODES_DOCUMENT, _EMPTY_DOCUMENT)
        return [OverrideCode.from_dict(entry) for entry in document.get("codes", [])]

    async def find_unused(self, command: str = "ban") -> Optional[OverrideCode]:
        """Oldest unused code for ``command``, if any."""
        for code in await self.all_codes():
            if not code.used and code.command == command:
                return code
        return None

    async def mark_sent(self, code: str) -> bool:
        """Flag an unused, not yet sent code as sent.

        Returns:
            False when the code is unknown, already used or already sent.
        """
        async with self._store.mutate(OVERRIDE_CODES_DOCUMENT, _EMPTY_DOCUMENT) as document:
            for entry in document.get("codes", []):
                if entry.get("code") == code:
                    if entry.get("used") or entry.get("sentToChannel"):
                        return False
                    entry["sentToChannel"] = True
                    return True
        return False

    async def _unmark_sent(self, code: str) -> None:
        async with self._store.mutate(OVERRIDE_CODES_DOCUMENT, _EMPTY_DOCUMENT) as document:
            for entry in document.get("codes", []):
                if entry.get("code") == code:
                    entry["sentToChannel"] = False
                    return

    async def check_and_disclose_pending(
        self,
        now: int,
        publish: Callable[[OverrideCode], Awaitable[None]],
        is_invisible: Callable[[OverrideCode], Awaitable[bool]],
    ) -> List[str]:
        """Disclose auto-generated codes that have aged past the delay.

        Codes whose generator ``is_invisible`` stay pending. A code whose
        ``publish`` raises also stays pending and is retried on the next sweep.

        Returns:
            The codes that were disclosed.
        """
        pending = [
            code
            for code in await self.all_codes()
            if code.auto_generated and not code.sent_to_channel and not code.used
        ]

        disclosed: List[str] = []
        for code in pending:
            if now - code.generated_at < self.disclosure_delay_ms:
                continue
            if await is_invisible(code):
                logger.debug("[OVERRIDE CODES] Withholding code generated by an invisible actor")
                continue
            # Claimed under the document lock; a code consumed meanwhile is skipped.
            if not await self.mark_sent(code.code):
                logger.debug("[OVERRIDE CODES] Code was used or sent during the sweep; skipping")
                continue
            try:
                await publish(code)
            except Exception as exc:
                logger.error("[OVERRIDE CODES] Failed to disclose code generated by %s: %s", code.generated_by, exc)
                await self._unmark_sent(code.code)
                continue
            disclosed.append(code.code)

        if disclosed:
            logger.info("[OVERRIDE CODES] Disclosed %d pending code(s)", len(disclosed))
        return disclosed

"""
Whole-document JSON persistence on top of the SQLite connection.

Each ledger is one logical document (``warnings.json``, ``cases.json``,
``override-codes.json``) stored as a JSON string in the ``documents`` table.
Every read loads the full document and every write replaces it.

``mutate(name)`` holds a per-document ``asyncio.Lock`` across the whole
load-modify-save cycle, so two concurrent writers to the same document are
serialized and neither update is lost.
"""

from __future__ import annotations

import asyncio
import copy
import json
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

import aiosqlite

from casekeeper.database.db_connection import ConnectionManager
from casekeeper.database.db_schema import SchemaManager
from casekeeper.moderation.errors import StorageFailure
from casekeeper.util.logger import get_logger

logger = get_logger("document_store")

WARNINGS_DOCUMENT = "warnings.json"
CASES_DOCUMENT = "cases.json"
OVERRIDE_CODES_DOCUMENT = "override-codes.json"


class DocumentStore:
    """Loads, saves and atomically mutates named JSON documents."""

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection
        self._locks: Dict[str, asyncio.Lock] = {}

    async def initialize(self) -> None:
        """Create the schema. The connection must already be open."""
        try:
            async with self._connection.transaction() as db:
                await SchemaManager.initialize_schema(db)
        except aiosqlite.Error as exc:
            raise StorageFailure("schema", str(exc)) from exc

    def _lock_for(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        return lock

    async def load(self, name: str, default: Any) -> Any:
        """
        Return the parsed document, or a copy of ``default`` if it was never saved.

        Raises:
            StorageFailure: On a database error or a body that is not valid JSON.
        """
        try:
            async with self._connection.read() as db:
                async with db.execute("SELECT body FROM documents WHERE name = ?", (name,)) as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            logger.error("[DOCUMENT STORE] Failed to read %s: %s", name, exc)
            raise StorageFailure(name, str(exc)) from exc

        if row is None:
            return copy.deepcopy(default)

        try:
            return json.loads(row["body"])
        except json.JSONDecodeError as exc:
            logger.error("[DOCUMENT STORE] Document %s is corrupt: %s", name, exc)
            raise StorageFailure(name, f"invalid JSON ({exc})") from exc

    async def save(self, name: str, data: Any) -> None:
        """
        Replace the stored document with ``data``.

        Raises:
            StorageFailure: If the value cannot be serialized or written.
        """
        try:
            body = json.dumps(data, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as exc:
            raise StorageFailure(name, f"not serializable ({exc})") from exc

        try:
            async with self._connection.transaction() as db:
                await db.execute(
                    """
                    INSERT INTO documents (name, body, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(name) DO UPDATE SET body = excluded.body, updated_at = excluded.updated_at
                    """,
                    (name, body, int(time.time() * 1000)),
                )
        except aiosqlite.Error as exc:
            logger.error("[DOCUMENT STORE] Failed to write %s: %s", name, exc)
            raise StorageFailure(name, str(exc)) from exc
        logger.debug("[DOCUMENT STORE] Saved %s (%d bytes)", name, len(body))

    @asynccontextmanager
    async def mutate(self, name: str, default: Any) -> AsyncIterator[Any]:
        """
        Load a document under its lock, yield it for in-place edits, then save it.

        Nothing is saved if the body of the ``async with`` raises.

        Usage:
            async with store.mutate(CASES_DOCUMENT, {}) as cases:
                cases[guild_id] = ...
        """
        async with self._lock_for(name):
            data = await self.load(name, default)
            yield data
            await self.save(name, data)

"""
Database schema initialization.

The store keeps whole JSON documents, so the schema is a single ``documents``
table keyed by logical file name plus a schema version marker.
"""

import aiosqlite

from casekeeper.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the tables the document store needs."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create missing tables and record the schema version.

        Args:
            db: Open database connection. The caller commits.
        """
        await db.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                name TEXT PRIMARY KEY,
                body TEXT NOT NULL,
                updated_at INTEGER NOT NULL
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await db.execute(
            "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        logger.info("[SCHEMA] Database schema initialized (version %d)", SCHEMA_VERSION)

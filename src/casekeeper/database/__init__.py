"""
Persistence for the moderation ledgers.

- **db_connection.py**: single long-lived aiosqlite connection with a
  serialised write path.
- **db_schema.py**: table creation.
- **document_store.py**: whole-document JSON load/save plus ``mutate()``,
  which serialises read-modify-write cycles per document.
"""

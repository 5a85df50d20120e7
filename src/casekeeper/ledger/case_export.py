"""
Materialized per-user view of the case ledger.

After every case-ledger change the full ``{guild_id: {nextCaseNumber, cases}}``
map is flattened and written to the export directory as one JSON file per
username plus an ``index.json`` summary. Files of users who no longer have any
case are removed.
"""

from __future__ import annotations

import asyncio
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from casekeeper.util.logger import get_logger

logger = get_logger("case_export")

INDEX_FILENAME = "index.json"
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def safe_filename(username: str) -> str:
    """``"Alice.B#1"`` -> ``"Alice_B_1.json"``"""
    return f"{_UNSAFE_FILENAME_CHARS.sub('_', username)}.json"


def flatten_cases(all_cases: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Collect every case dict from a guild-keyed cases document."""
    cases: List[Dict[str, Any]] = []
    for guild_ledger in all_cases.values():
        if isinstance(guild_ledger, dict):
            cases.extend(guild_ledger.get("cases") or [])
    return cases


class CaseExporter:
    """Writes the per-user case files into ``export_dir``."""

    def __init__(self, export_dir: Path) -> None:
        self.export_dir = export_dir

    async def export(self, all_cases: Dict[str, Any]) -> Dict[str, int]:
        """Rewrite the export directory from the full cases document.

        Returns:
            ``{"totalUsers": ..., "totalCases": ...}``

        Raises:
            OSError: If the directory or a file cannot be written.
        """
        return await asyncio.to_thread(self._write_all, all_cases)

    def _write_all(self, all_cases: Dict[str, Any]) -> Dict[str, int]:
        cases = flatten_cases(all_cases)
        self.export_dir.mkdir(parents=True, exist_ok=True)

        by_username: Dict[str, List[Dict[str, Any]]] = {}
        for case in cases:
            by_username.setdefault(case.get("username", ""), []).append(case)

        written: set[str] = set()
        users: List[Dict[str, Any]] = []
        for username, user_cases in by_username.items():
            user_cases.sort(key=lambda case: case["caseNumber"])
            filename = safe_filename(username)
            written.add(filename)

            payload = {
                "username": username,
                "userId": user_cases[0].get("userId"),
                "totalCases": len(user_cases),
                "cases": user_cases,
            }
            (self.export_dir / filename).write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            users.append(
                {
                    "username": username,
                    "userId": user_cases[0].get("userId"),
                    "filename": filename,
                    "totalCases": len(user_cases),
                    "latestCase": user_cases[-1]["caseNumber"],
                }
            )

        for stale in self.export_dir.glob("*.json"):
            if stale.name != INDEX_FILENAME and stale.name not in written:
                stale.unlink()
                logger.debug("[CASE EXPORT] Removed stale file %s", stale.name)

        users.sort(key=lambda user: user["totalCases"], reverse=True)
        index = {
            "totalUsers": len(users),
            "totalCases": len(cases),
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
            "users": users,
        }
        (self.export_dir / INDEX_FILENAME).write_text(json.dumps(index, indent=2, ensure_ascii=False), encoding="utf-8")

        logger.info("[CASE EXPORT] Synced %d cases for %d users to %s", len(cases), len(users), self.export_dir)
        return {"totalUsers": len(users), "totalCases": len(cases)}

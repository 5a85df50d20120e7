"""
discord_utils.py
================

Stateless helpers for Discord-specific values: snowflake parsing, the fixed
timeout duration choices, default avatar URLs, and epoch-millisecond timestamps.

Nothing here talks to the Discord API, so the moderation core can use these
helpers without importing py-cord.
"""

from __future__ import annotations

import re
import time

# ==========================================
# Duration constants and choices
# ==========================================

# Timeouts use a fixed set of choices (minutes); free-form values are rejected.
TIMEOUT_DURATIONS = {
    "60 secs": 1,
    "5 mins": 5,
    "10 mins": 10,
    "30 mins": 30,
    "1 hour": 60,
    "2 hours": 120,
    "1 day": 24 * 60,
    "1 week": 7 * 24 * 60,
}

TIMEOUT_CHOICES = list(TIMEOUT_DURATIONS.keys())
ALLOWED_TIMEOUT_MINUTES = frozenset(TIMEOUT_DURATIONS.values())

# Discord accepts at most seven days of message history deletion on ban.
MAX_BAN_DELETE_DAYS = 7

PURGE_MIN = 1
PURGE_MAX = 1000

_MENTION_PATTERN = re.compile(r"^<@!?(\d+)>$")
_SNOWFLAKE_PATTERN = re.compile(r"^\d+$")

DEFAULT_AVATAR_TEMPLATE = "https://cdn.discordapp.com/embed/avatars/{index}.png"


def now_ms() -> int:
    """Return the current Unix time in milliseconds."""
    return int(time.time() * 1000)


def parse_target_id(raw: str | None) -> str | None:
    """
    Extract a user snowflake from a mention (``<@123>`` / ``<@!123>``) or a raw ID.

    Args:
        raw (str | None): Text typed by the moderator.

    Returns:
        str | None: The snowflake as a string, or None if the input is neither form.
    """
    if not raw:
        return None
    text = raw.strip()
    match = _MENTION_PATTERN.match(text)
    if match:
        return match.group(1)
    if _SNOWFLAKE_PATTERN.match(text):
        return text
    return None


def default_avatar_url(user_id: str | int) -> str:
    """Return Discord's deterministic pseudo-avatar for a user (``id mod 5``)."""
    try:
        index = int(user_id) % 5
    except (TypeError, ValueError):
        index = 0
    return DEFAULT_AVATAR_TEMPLATE.format(index=index)


def parse_duration_to_minutes(label: str) -> int:
    """
    Convert a timeout choice label to minutes.

    Returns 0 when the label is not one of TIMEOUT_CHOICES.
    """
    return TIMEOUT_DURATIONS.get(label, 0)


def format_minutes(minutes: int) -> str:
    """Render a minute count using the choice label when one matches."""
    for label, value in TIMEOUT_DURATIONS.items():
        if value == minutes:
            return label
    return f"{minutes} minute(s)"

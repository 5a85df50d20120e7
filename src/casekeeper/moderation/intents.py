"""
Data passed into and out of the moderation dispatcher.

``ModerationIntent`` is what a slash command turns into, ``ActionOutcome`` is
what the dispatcher hands back for the reply, and ``ModerationEvent`` is what
it sends to a notification channel.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from casekeeper.datatypes.ledger_datatypes import Case
from casekeeper.datatypes.permission_datatypes import CommandName


@dataclass(slots=True)
class Actor:
    """The moderator invoking a command."""

    user_id: str
    display_name: str
    role_ids: Sequence[str] = ()
    avatar_url: Optional[str] = None


@dataclass(slots=True)
class UserRef:
    """A resolved target user."""

    user_id: str
    username: str
    avatar_url: Optional[str] = None


@dataclass(slots=True)
class ModerationIntent:
    """One inbound command invocation."""

    command: CommandName
    actor: Actor
    guild_id: str
    target: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    def option(self, name: str, default: Any = None) -> Any:
        value = self.options.get(name)
        return default if value is None else value


class EventKind(Enum):
    """What a notification event reports."""

    WARN = "warn"
    TIMEOUT = "timeout"
    KICK = "kick"
    BAN = "ban"
    HACKBAN = "hackban"
    UNBAN = "unban"
    CLEAR_WARNINGS = "clearwarnings"
    DELETE_CASE = "deletecase"
    PURGE = "purge"
    CODE_USED = "code_used"
    CODE_GENERATED = "code_generated"
    CODE_DISCLOSED = "code_disclosed"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class ModerationEvent:
    """A structured record for the log or code channel. Rendering is up to the sink."""

    kind: EventKind
    guild_id: Optional[str]
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    target_id: Optional[str] = None
    target_name: Optional[str] = None
    reason: Optional[str] = None
    case_number: Optional[int] = None
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ActionOutcome:
    """Result of a dispatched command, turned into the reply by the cog.

    Replies are ephemeral (visible only to the invoking moderator) unless a
    command explicitly opts out.
    """

    title: str
    message: str
    ephemeral: bool = True
    case_number: Optional[int] = None
    recorded: bool = True
    target: Optional[UserRef] = None
    cases: List[Case] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

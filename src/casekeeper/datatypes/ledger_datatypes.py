"""
Record types for the warning, case and override-code ledgers.

Each type mirrors one entry of a persisted JSON document and converts to and
from that document's wire shape (camelCase keys, epoch-millisecond timestamps)
with ``to_dict`` / ``from_dict``. The wire shape is shared with the case export
files, so key names must not change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CaseType(Enum):
    """Sanction types that produce a case."""

    WARN = "warn"
    TIMEOUT = "timeout"
    KICK = "kick"
    BAN = "ban"
    HACKBAN = "hackban"

    def __str__(self) -> str:
        return self.value


class Severity(Enum):
    """Warning severities offered by ``/warn``. The ledger itself accepts any string."""

    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"

    def __str__(self) -> str:
        return self.value


DEFAULT_SEVERITY = Severity.MODERATE.value


@dataclass(slots=True)
class WarningEvent:
    """One entry in a user's warning history."""

    reason: str
    severity: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {"reason": self.reason, "severity": self.severity, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WarningEvent":
        return cls(
            reason=data.get("reason", ""),
            severity=data.get("severity", DEFAULT_SEVERITY),
            timestamp=int(data.get("timestamp", 0)),
        )


@dataclass(slots=True)
class WarningRecord:
    """Warning state of one user in one guild. ``count`` always equals ``len(history)``."""

    username: str
    count: int = 0
    history: List[WarningEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "count": self.count,
            "history": [event.to_dict() for event in self.history],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WarningRecord":
        history = [WarningEvent.from_dict(item) for item in data.get("history") or []]
        return cls(username=data.get("username", ""), count=len(history), history=history)


@dataclass(slots=True)
class Case:
    """A persisted record of one completed sanction."""

    case_number: int
    type: CaseType
    user_id: str
    username: str
    user_avatar: str
    moderator_id: str
    moderator_name: str
    moderator_avatar: str
    reason: str
    timestamp: int
    guild_id: str
    severity: Optional[str] = None
    # Minutes for timeouts (and warns with a timeout), message-deletion days for bans.
    duration: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caseNumber": self.case_number,
            "type": self.type.value,
            "userId": self.user_id,
            "username": self.username,
            "userAvatar": self.user_avatar,
            "moderatorId": self.moderator_id,
            "moderatorName": self.moderator_name,
            "moderatorAvatar": self.moderator_avatar,
            "reason": self.reason,
            "severity": self.severity,
            "duration": self.duration,
            "timestamp": self.timestamp,
            "guildId": self.guild_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Case":
        return cls(
            case_number=int(data["caseNumber"]),
            type=CaseType(data["type"]),
            user_id=str(data.get("userId", "")),
            username=data.get("username", ""),
            user_avatar=data.get("userAvatar", ""),
            moderator_id=str(data.get("moderatorId", "")),
            moderator_name=data.get("moderatorName", ""),
            moderator_avatar=data.get("moderatorAvatar", ""),
            reason=data.get("reason", ""),
            timestamp=int(data.get("timestamp", 0)),
            guild_id=str(data.get("guildId", "")),
            severity=data.get("severity"),
            duration=data.get("duration"),
        )


@dataclass(slots=True)
class GuildCaseLedger:
    """All cases of one guild plus the next number to hand out."""

    next_case_number: int = 1
    cases: List[Case] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nextCaseNumber": self.next_case_number,
            "cases": [case.to_dict() for case in self.cases],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GuildCaseLedger":
        cases = [Case.from_dict(item) for item in data.get("cases") or []]
        cases.sort(key=lambda case: case.case_number)
        return cls(next_case_number=int(data.get("nextCaseNumber", 1)), cases=cases)


@dataclass(slots=True)
class OverrideCode:
    """A one-time code that authorizes a privileged command for a non-privileged actor."""

    code: str
    command: str
    generated_by: str
    generated_at: int
    generated_by_id: Optional[str] = None
    used: bool = False
    used_by: Optional[str] = None
    used_at: Optional[int] = None
    auto_generated: bool = False
    sent_to_channel: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "command": self.command,
            "generatedBy": self.generated_by,
            "generatedById": self.generated_by_id,
            "generatedAt": self.generated_at,
            "used": self.used,
            "usedBy": self.used_by,
            "usedAt": self.used_at,
            "autoGenerated": self.auto_generated,
            "sentToChannel": self.sent_to_channel,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OverrideCode":
        generated_by_id = data.get("generatedById")
        return cls(
            code=data["code"],
            command=data.get("command", "ban"),
            generated_by=data.get("generatedBy", ""),
            generated_at=int(data.get("generatedAt", 0)),
            generated_by_id=str(generated_by_id) if generated_by_id else None,
            used=bool(data.get("used", False)),
            used_by=data.get("usedBy"),
            used_at=data.get("usedAt"),
            auto_generated=bool(data.get("autoGenerated", False)),
            sent_to_channel=bool(data.get("sentToChannel", False)),
        )

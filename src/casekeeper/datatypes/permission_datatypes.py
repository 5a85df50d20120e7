"""
Permission types shared by the resolver, the slash commands and the dispatcher.

Command names are an enum so that a typo in an authorization check fails
loudly instead of silently denying (or allowing) the wrong command. Role and
override permissions are a tagged variant: either every command, or an
explicit subset.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping


class CommandName(Enum):
    """Every command name an authorization check can be keyed by."""

    WARN = "warn"
    CASE = "case"
    CLEAR_WARNINGS = "clearwarnings"
    PURGE = "purge"
    KICK = "kick"
    TIMEOUT = "timeout"
    BAN = "ban"
    UNBAN = "unban"
    DELETE_CASE = "deletecase"
    GENERATE_BAN_CODE = "generatebancode"
    HELP = "help"
    # Not a slash command of its own: ``/ban hackban:true`` checks this key.
    HACKBAN = "hackban"

    def __str__(self) -> str:
        return self.value


# Commands any staff member may run once past the staff gate.
STAFF_WIDE_COMMANDS = frozenset({CommandName.CASE, CommandName.PURGE, CommandName.HELP})

SLASH_COMMANDS = tuple(command for command in CommandName if command is not CommandName.HACKBAN)


class Permission:
    """Base of the permission variant; see AllPermissions and PermissionSubset."""

    __slots__ = ()

    def allows(self, command: CommandName) -> bool:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class AllPermissions(Permission):
    """The ``"all"`` sentinel: every command is allowed."""

    def allows(self, command: CommandName) -> bool:
        return True

    def __str__(self) -> str:
        return "all"


@dataclass(frozen=True, slots=True)
class PermissionSubset(Permission):
    """An explicit set of allowed commands (possibly empty)."""

    commands: frozenset[CommandName] = frozenset()

    def allows(self, command: CommandName) -> bool:
        return command in self.commands

    def __str__(self) -> str:
        return ", ".join(sorted(command.value for command in self.commands)) or "none"


def parse_permission(raw: Any) -> Permission:
    """Build a Permission from its configuration form.

    Args:
        raw: The literal string ``"all"`` or an iterable of command-name strings.

    Returns:
        Permission: The parsed variant.

    Raises:
        ValueError: If ``raw`` is another string or names an unknown command.
    """
    if isinstance(raw, str):
        if raw.strip().lower() == "all":
            return AllPermissions()
        raise ValueError(f"Permission must be 'all' or a list of command names, got {raw!r}")
    if raw is None:
        return PermissionSubset()
    if isinstance(raw, Iterable):
        return PermissionSubset(frozenset(CommandName(str(item).strip().lower()) for item in raw))
    raise ValueError(f"Unsupported permission value: {raw!r}")


@dataclass(frozen=True, slots=True)
class StaffRole:
    """A configured staff role. Lower ``level`` means more authority (0 is top)."""

    role_id: str
    name: str
    level: int
    permissions: Permission


@dataclass(frozen=True, slots=True)
class OverrideEntry:
    """A per-user permission grant that does not depend on role membership."""

    user_id: str
    name: str
    permissions: Permission
    level: int = -1


OVERRIDE_IDENTITY_ID = "override"


@dataclass(frozen=True, slots=True)
class EffectiveIdentity:
    """Resolved staff identity of an actor. Derived on demand, never stored."""

    identifier: str
    name: str
    level: int
    permissions: Permission


@dataclass(frozen=True)
class PermissionConfig:
    """Immutable staff-role and override tables, built once at startup."""

    staff_roles: Mapping[str, StaffRole] = field(default_factory=dict)
    user_overrides: Mapping[str, OverrideEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "staff_roles", MappingProxyType(dict(self.staff_roles)))
        object.__setattr__(self, "user_overrides", MappingProxyType(dict(self.user_overrides)))

    @property
    def staff_role_ids(self) -> frozenset[str]:
        return frozenset(self.staff_roles)

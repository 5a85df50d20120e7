"""
Pytest configuration and fixtures for Casekeeper tests.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from casekeeper.database.db_connection import ConnectionManager  # noqa: E402
from casekeeper.database.document_store import DocumentStore  # noqa: E402
from casekeeper.datatypes.permission_datatypes import (  # noqa: E402
    AllPermissions,
    CommandName,
    OverrideEntry,
    PermissionConfig,
    PermissionSubset,
    StaffRole,
)
from casekeeper.moderation.errors import ExternalActionFailure  # noqa: E402
from casekeeper.moderation.intents import ModerationEvent, UserRef  # noqa: E402
from casekeeper.permissions.resolver import RoleResolver  # noqa: E402

OWNER_ROLE = "100"
ADMIN_ROLE = "200"
MOD_ROLE = "300"
TRIAL_ROLE = "400"
HELPER_ROLE = "500"
OVERRIDE_USER = "900"


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance_hours(self, hours: float) -> None:
        self.now += int(hours * 60 * 60 * 1000)


class FakePlatform:
    """In-memory ModerationPlatform recording every call."""

    def __init__(self) -> None:
        self.members: Dict[str, List[str]] = {}
        self.users: Dict[str, UserRef] = {}
        self.bans: List[UserRef] = []
        self.calls: List[tuple] = []
        self.dms: List[tuple] = []
        self.fail: Dict[str, str] = {}
        self.dm_blocked: set = set()
        self.purge_result = 0

    def add_user(self, user_id: str, username: str, role_ids: Optional[List[str]] = None, member: bool = True) -> UserRef:
        user = UserRef(user_id=user_id, username=username, avatar_url=f"https://example.test/{user_id}.png")
        self.users[user_id] = user
        if member:
            self.members[user_id] = list(role_ids or [])
        return user

    def _maybe_fail(self, action: str) -> None:
        if action in self.fail:
            raise ExternalActionFailure(action, self.fail[action])

    async def fetch_member_role_ids(self, guild_id, user_id):
        return self.members.get(user_id)

    async def fetch_user(self, user_id):
        return self.users.get(user_id)

    async def timeout(self, guild_id, user_id, minutes, reason):
        self._maybe_fail("timeout")
        self.calls.append(("timeout", user_id, minutes, reason))

    async def kick(self, guild_id, user_id, reason):
        self._maybe_fail("kick")
        self.calls.append(("kick", user_id, reason))

    async def ban(self, guild_id, user_id, reason, delete_days):
        self._maybe_fail("ban")
        self.calls.append(("ban", user_id, reason, delete_days))

    async def unban(self, guild_id, user_id, reason):
        self._maybe_fail("unban")
        self.calls.append(("unban", user_id, reason))

    async def fetch_bans(self, guild_id):
        return list(self.bans)

    async def send_direct_message(self, user_id, event: ModerationEvent) -> bool:
        if user_id in self.dm_blocked:
            return False
        self.dms.append((user_id, event))
        return True

    async def purge(self, guild_id, channel_id, amount, user_id=None):
        self._maybe_fail("purge")
        self.calls.append(("purge", channel_id, amount, user_id))
        return self.purge_result or amount


class FakeSink:
    """In-memory NotificationSink."""

    def __init__(self) -> None:
        self.sent: List[tuple] = []
        self.fail = False

    async def send(self, channel_id, event: ModerationEvent) -> None:
        if self.fail:
            raise ExternalActionFailure("post", "channel unavailable")
        if channel_id is None:
            return
        self.sent.append((channel_id, event))


@pytest.fixture()
def permission_config() -> PermissionConfig:
    return PermissionConfig(
        staff_roles={
            OWNER_ROLE: StaffRole(OWNER_ROLE, "Owner", 0, AllPermissions()),
            ADMIN_ROLE: StaffRole(
                ADMIN_ROLE,
                "Admin",
                3,
                PermissionSubset(
                    frozenset(
                        {
                            CommandName.WARN,
                            CommandName.KICK,
                            CommandName.TIMEOUT,
                            CommandName.BAN,
                            CommandName.HACKBAN,
                            CommandName.UNBAN,
                            CommandName.CLEAR_WARNINGS,
                            CommandName.DELETE_CASE,
                        }
                    )
                ),
            ),
            MOD_ROLE: StaffRole(
                MOD_ROLE,
                "Moderator",
                6,
                PermissionSubset(frozenset({CommandName.WARN, CommandName.KICK, CommandName.TIMEOUT})),
            ),
            TRIAL_ROLE: StaffRole(TRIAL_ROLE, "Trial Moderator", 7, PermissionSubset(frozenset({CommandName.WARN}))),
            HELPER_ROLE: StaffRole(HELPER_ROLE, "Helper", 9, PermissionSubset()),
        },
        user_overrides={
            OVERRIDE_USER: OverrideEntry(OVERRIDE_USER, "Override", AllPermissions()),
        },
    )


@pytest.fixture()
def resolver(permission_config: PermissionConfig) -> RoleResolver:
    return RoleResolver(permission_config)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture()
async def store(tmp_path: Path):
    connection = ConnectionManager()
    await connection.open(tmp_path / "casekeeper.db")
    document_store = DocumentStore(connection)
    await document_store.initialize()
    yield document_store
    await connection.close()


@pytest.fixture()
def fake_platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture()
def fake_sink() -> FakeSink:
    return FakeSink()

"""
Role and override resolution.

Staff status comes from two independent sources: membership in a configured
staff role, or an entry in the user-override table. An actor who is overridden
but holds no staff role is *invisible*: their actions execute but leave no case,
warning, log message or code disclosure behind.
"""

from __future__ import annotations

from typing import Iterable, Optional

from casekeeper.datatypes.permission_datatypes import (
    OVERRIDE_IDENTITY_ID,
    CommandName,
    EffectiveIdentity,
    PermissionConfig,
    StaffRole,
)


def _normalize(role_ids: Iterable[object]) -> set[str]:
    return {str(role_id) for role_id in role_ids}


class RoleResolver:
    """Answers permission questions against an immutable PermissionConfig."""

    def __init__(self, config: PermissionConfig) -> None:
        self._config = config

    @property
    def config(self) -> PermissionConfig:
        return self._config

    def highest_staff_role(self, role_ids: Iterable[object]) -> Optional[StaffRole]:
        """Most senior (lowest level) configured staff role among ``role_ids``."""
        matches = [self._config.staff_roles[r] for r in _normalize(role_ids) if r in self._config.staff_roles]
        if not matches:
            return None
        return min(matches, key=lambda role: role.level)

    def resolve_identity(self, role_ids: Iterable[object], user_id: object) -> Optional[EffectiveIdentity]:
        """Return the actor's effective identity.

        A staff role wins over an override entry; the override entry is returned
        as a synthetic identity with identifier ``"override"``.
        """
        role = self.highest_staff_role(role_ids)
        if role is not None:
            return EffectiveIdentity(role.role_id, role.name, role.level, role.permissions)

        entry = self._config.user_overrides.get(str(user_id))
        if entry is not None:
            return EffectiveIdentity(OVERRIDE_IDENTITY_ID, entry.name, entry.level, entry.permissions)
        return None

    def is_overridden(self, user_id: object) -> bool:
        return str(user_id) in self._config.user_overrides

    def has_staff_role(self, role_ids: Iterable[object]) -> bool:
        return not self._config.staff_role_ids.isdisjoint(_normalize(role_ids))

    def is_staff(self, role_ids: Iterable[object], user_id: object) -> bool:
        """Gate for every command: a staff role or an override entry."""
        return self.is_overridden(user_id) or self.has_staff_role(role_ids)

    def has_command_permission(self, role_ids: Iterable[object], user_id: object, command: CommandName) -> bool:
        entry = self._config.user_overrides.get(str(user_id))
        if entry is not None and entry.permissions.allows(command):
            return True

        identity = self.resolve_identity(role_ids, user_id)
        if identity is None:
            return False
        return identity.permissions.allows(command)

    def is_recordable(self, role_ids: Iterable[object], user_id: object) -> bool:
        """Whether the actor's actions may leave cases, warnings, logs or disclosures."""
        return not self.is_overridden(user_id) or self.has_staff_role(role_ids)

    def is_invisible(self, role_ids: Iterable[object], user_id: object) -> bool:
        return not self.is_recordable(role_ids, user_id)

    def is_target_immune(
        self,
        actor_id: object,
        target_role_ids: Iterable[object],
    ) -> bool:
        """A staff-role target is immune unless the actor is overridden."""
        if self.is_overridden(actor_id):
            return False
        return self.has_staff_role(target_role_ids)

    def can_view_override_codes(self, role_ids: Iterable[object], user_id: object, max_level: int) -> bool:
        """Staff at ``max_level`` or more senior, and every overridden actor."""
        if self.is_overridden(user_id):
            return True
        role = self.highest_staff_role(role_ids)
        return role is not None and role.level <= max_level

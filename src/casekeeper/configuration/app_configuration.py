from __future__ import annotations

import fcntl
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from casekeeper.datatypes.permission_datatypes import (
    OverrideEntry,
    PermissionConfig,
    StaffRole,
    parse_permission,
)
from casekeeper.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path(os.getenv("CASEKEEPER_CONFIG", "./config/app_config.yml")).resolve()

_ENV_REFERENCE = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")


def _expand_key(raw: Any) -> str:
    """Resolve a ``${ENV_VAR}`` key to the variable's value; plain keys pass through."""
    text = str(raw).strip() if raw is not None else ""
    match = _ENV_REFERENCE.match(text)
    if match:
        return os.getenv(match.group(1), "").strip()
    return text


def _optional_int(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    return int(value)


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml``, exposes
    dictionary-like access helpers, and builds the immutable
    :class:`PermissionConfig` the resolver is constructed with.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key)
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """The cached configuration mapping. Callers should not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def log_channel_id(self) -> Optional[int]:
        """Channel receiving moderation log embeds, or None when unset."""
        value = self._section("channels").get("log_channel_id") or os.getenv("DISCORD_LOG_CHANNEL")
        return _optional_int(value)

    @property
    def override_code_channel_id(self) -> Optional[int]:
        """Channel where override codes are disclosed to eligible staff."""
        value = self._section("channels").get("override_code_channel_id") or os.getenv("DISCORD_CODE_CHANNEL")
        return _optional_int(value)

    @property
    def home_guild_id(self) -> Optional[int]:
        return _optional_int(self._section("bot").get("home_guild_id"))

    @property
    def presence(self) -> str:
        return str(self._section("bot").get("presence") or "Watching the server")

    @property
    def database_path(self) -> Path:
        return Path(self._section("storage").get("database_path") or "./data/casekeeper.db").resolve()

    @property
    def case_export_dir(self) -> Path:
        return Path(self._section("storage").get("case_export_dir") or "./cases").resolve()

    @property
    def disclosure_delay_hours(self) -> float:
        """Age an auto-generated code must reach before the sweep discloses it."""
        return float(self._section("override_codes").get("disclosure_delay_hours", 24))

    @property
    def sweep_interval_seconds(self) -> float:
        return float(self._section("override_codes").get("sweep_interval_seconds", 3600))

    @property
    def max_viewer_level(self) -> int:
        """Most junior staff level that may view or generate override codes."""
        return int(self._section("override_codes").get("max_viewer_level", 7))

    @property
    def permission_config(self) -> PermissionConfig:
        """Build the immutable staff-role and override tables.

        Keys written as ``${ENV_VAR}`` are expanded; entries whose key resolves
        to an empty string are dropped with a warning.

        Raises:
            ValueError: If an entry names an unknown command or has a bad level.
        """
        staff_roles: Dict[str, StaffRole] = {}
        for raw_key, entry in self._section("staff_roles").items():
            role_id = _expand_key(raw_key)
            if not role_id:
                logger.warning("[APP CONFIGURATION] Skipping staff role %s: no role id", raw_key)
                continue
            entry = entry or {}
            staff_roles[role_id] = StaffRole(
                role_id=role_id,
                name=str(entry.get("name", role_id)),
                level=int(entry.get("level", 0)),
                permissions=parse_permission(entry.get("permissions")),
            )

        user_overrides: Dict[str, OverrideEntry] = {}
        for raw_key, entry in self._section("user_overrides").items():
            user_id = _expand_key(raw_key)
            if not user_id:
                logger.warning("[APP CONFIGURATION] Skipping user override %s: no user id", raw_key)
                continue
            entry = entry or {}
            user_overrides[user_id] = OverrideEntry(
                user_id=user_id,
                name=str(entry.get("name", user_id)),
                level=int(entry.get("level", -1)),
                permissions=parse_permission(entry.get("permissions")),
            )

        logger.info(
            "[APP CONFIGURATION] Loaded %d staff roles and %d user overrides",
            len(staff_roles),
            len(user_overrides),
        )
        return PermissionConfig(staff_roles=staff_roles, user_overrides=user_overrides)

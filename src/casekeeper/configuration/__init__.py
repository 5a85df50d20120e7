"""
Configuration management for Casekeeper.

- **app_configuration.py**: YAML configuration loader (shared file lock on
  read). Exposes channel ids, storage locations, override-code timing and the
  immutable staff-role / user-override tables used by the permission resolver.
  Falls back to empty settings on a missing or malformed file.
"""

"""
Exception types raised by the ledgers and the action dispatcher.

Every subclass of :class:`ModerationError` carries a message that is safe to
show to the invoking moderator. Anything else reaching the cog layer is a bug
and is reported as a generic failure.
"""

from __future__ import annotations


class ModerationError(Exception):
    """Base class for failures reported back to the invoking moderator."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthorizationDenied(ModerationError):
    """Actor is not staff, lacks the command permission, or gave a bad override code."""


class StaffImmunityError(AuthorizationDenied):
    """Target holds a staff role and the actor may not sanction staff."""


class NotFound(ModerationError):
    """The case, warning record or ban entry does not exist."""


class ExternalActionFailure(ModerationError):
    """The platform rejected a sanction or notification."""

    def __init__(self, action: str, reason: str) -> None:
        super().__init__(f"Failed to {action}: {reason}")
        self.action = action
        self.reason = reason


class StorageFailure(ModerationError):
    """Reading or writing a persisted document failed."""

    def __init__(self, document: str, reason: str) -> None:
        super().__init__(f"Storage error on {document}: {reason}")
        self.document = document
        self.reason = reason


class InvalidInput(ModerationError):
    """Malformed target, out-of-range option or invalid duration."""

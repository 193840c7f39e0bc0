"""Policy rejections raised by the reward paths.

Each error carries a machine-readable ``code``, an HTTP status and enough
context for a client to explain the rejection without a second round trip.
They are expected outcomes: the API layer logs them at INFO.
"""

from __future__ import annotations

from typing import Any


class EconomyError(Exception):
    code = "InternalError"
    status_code = 500
    message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.detail = message or self.message

    def context(self) -> dict[str, Any]:
        return {}


class AccountBanned(EconomyError):
    code = "Banned"
    status_code = 403
    message = "Account suspended"


class SessionConflict(EconomyError):
    """Another live session holds the account's single session slot."""

    code = "Conflict"
    status_code = 409
    message = "Another game session is already active"

    def __init__(self, activity_id: str, expires_in_seconds: int) -> None:
        super().__init__()
        self.activity_id = activity_id
        self.expires_in_seconds = expires_in_seconds

    def context(self) -> dict[str, Any]:
        return {"active_activity": self.activity_id, "expires_in_seconds": self.expires_in_seconds}


class SessionNotFound(EconomyError):
    """The session expired or was superseded. Clients should stop reporting it."""

    code = "SessionNotFound"
    status_code = 404
    message = "Session not found or expired"


class NotCompleted(EconomyError):
    code = "NotCompleted"
    status_code = 400
    message = "Not completed yet"

    def __init__(self, progress: int, target: int) -> None:
        super().__init__()
        self.progress = progress
        self.target = target

    def context(self) -> dict[str, Any]:
        return {"progress": self.progress, "target": self.target}


class AlreadyClaimed(EconomyError):
    code = "AlreadyClaimed"
    status_code = 409
    message = "Reward already claimed"


class InsufficientFunds(EconomyError):
    code = "InsufficientFunds"
    status_code = 400
    message = "Insufficient funds"

    def __init__(self, currency: str, required: int, available: int) -> None:
        super().__init__(f"Insufficient {currency}")
        self.currency = currency
        self.required = required
        self.available = available

    def context(self) -> dict[str, Any]:
        return {"currency": self.currency, "required": self.required, "available": self.available}


class InvalidGift(EconomyError):
    code = "InvalidGift"
    status_code = 400
    message = "Gift not allowed"

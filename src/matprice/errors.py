from __future__ import annotations

import threading

AUTH_FAILED_MESSAGE = "Could not connect to the authentication service."
SUBSCRIPTION_FAILED_MESSAGE = (
    "You do not have permission to view this data or there was a connection error."
)
SAVE_FAILED_MESSAGE = "Error saving the material."
DELETE_FAILED_MESSAGE = "Could not delete the record."
INVALID_PRICE_MESSAGE = "Enter a valid non-negative price."


class MatpriceError(RuntimeError):
    pass


class AuthError(MatpriceError):
    """Sign-in failed."""


class SubscriptionError(MatpriceError):
    """Live read failed (permissions or connectivity)."""


class StoreWriteError(MatpriceError):
    """Create or delete failed."""


class InvalidDraftError(ValueError):
    pass


class ErrorSlot:
    """One-slot holder for the message shown in the dismissible error banner.

    A newer error overwrites an older one; nothing is queued.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._message: str | None = None

    @property
    def message(self) -> str | None:
        with self._lock:
            return self._message

    def set(self, message: str) -> None:
        with self._lock:
            self._message = message

    def clear(self) -> None:
        with self._lock:
            self._message = None

    def __bool__(self) -> bool:
        return self.message is not None

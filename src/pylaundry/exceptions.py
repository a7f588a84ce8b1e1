"""Custom exception hierarchy for pylaundry."""

from __future__ import annotations


class LaundryError(Exception):
    """Base exception for all pylaundry errors."""


class LaundryConfigError(LaundryError):
    """Invalid or missing configuration."""


class LaundryTransportError(LaundryError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class LaundryFeedError(LaundryError):
    """The status feed answered with something that is not a machine list."""


class MalformedMachineError(LaundryError):
    """A single machine record could not be decoded.

    Raised by the per-record parser and caught by the batch parser, which
    skips the record for the current poll cycle.
    """

    def __init__(self, message: str, *, machine_id: str = "") -> None:
        self.machine_id = machine_id
        super().__init__(message)


class NotificationError(LaundryError):
    """A notification could not be delivered."""

    def __init__(self, message: str, *, reason: str = "") -> None:
        self.reason = reason
        super().__init__(message)

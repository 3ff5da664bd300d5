"""Error classes for the intake pipeline.

Every error a caller can act on derives from IntakeError so the HTTP layer
can map the whole family with one handler per class.
"""

from __future__ import annotations


class IntakeError(Exception):
    """Base exception for intake pipeline errors."""

    pass


class ValidationError(IntakeError):
    """Raised when submission fields are missing, malformed, or look like spam."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid submission")


class RateLimitedError(IntakeError):
    """Raised when the same identity submitted inside the anti-spam window."""

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        minutes = max(1, round(retry_after_seconds / 60))
        super().__init__(f"You have already submitted a request recently. Please try again in about {minutes} minutes.")


class AuthorizationError(IntakeError):
    """Raised when a privileged action is attempted without a valid admin session."""

    pass


class PersistenceError(IntakeError):
    """Raised when neither the remote store nor the local cache accepted an operation."""

    pass


class NotificationError(IntakeError):
    """Delivery failed after the triggering operation was persisted.

    Never raised to the submitter; attached to the outcome as a warning.
    """

    pass


class OrdersClosedError(IntakeError):
    """Raised when a submission arrives while order intake is closed."""

    pass


class ConfigurationError(IntakeError):
    """Raised when a runtime configuration value is rejected."""

    pass

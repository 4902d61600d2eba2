"""Domain errors raised by the calendar services."""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for caller-facing service errors."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    status_code = 404

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource


class UnauthorizedError(ServiceError):
    """Insufficient role. The message never says which role was missing."""

    status_code = 403

    def __init__(self) -> None:
        super().__init__("Not authorized")


class ValidationError(ServiceError):
    status_code = 400

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class TransientDispatchFailure(Exception):
    """Email delivery failed for one recipient. Logged, never surfaced."""

    def __init__(self, recipient: str, reason: str) -> None:
        super().__init__(f"Email to {recipient} failed: {reason}")
        self.recipient = recipient
        self.reason = reason

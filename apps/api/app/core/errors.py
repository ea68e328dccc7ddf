"""Error taxonomy shared by the Twilio wrappers, the coordinator, and the API layer."""
from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Stable error identifiers surfaced to API callers."""

    INVALID_ARGUMENT = "InvalidArgument"
    NOT_FOUND = "NotFound"
    PROVISIONING_FAILED = "ProvisioningFailed"
    UNAUTHORIZED = "Unauthorized"
    INTERNAL = "Internal"


class EscalationError(Exception):
    """Base class for every failure the escalation service anticipates."""

    error_kind: ErrorKind = ErrorKind.PROVISIONING_FAILED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgumentError(EscalationError):
    """Caller supplied a malformed argument. Never retried."""

    error_kind = ErrorKind.INVALID_ARGUMENT


class TransientError(EscalationError):
    """Network failure, timeout, rate limit or 5xx. Safe to retry."""

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class RetryExhaustedError(TransientError):
    """A transient failure persisted after every permitted attempt."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"{operation} failed after {attempts} attempt(s): {last_error}")
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class PermanentError(EscalationError):
    """4xx-class failure (validation, auth, not found). Never retried."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        twilio_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.twilio_code = twilio_code


class NotFoundError(PermanentError):
    """The addressed resource does not exist."""

    error_kind = ErrorKind.NOT_FOUND


class ConflictError(PermanentError):
    """A conditional write was rejected because the resource changed."""


class UnauthorizedError(PermanentError):
    """The inbound agent token could not be validated."""

    error_kind = ErrorKind.UNAUTHORIZED


class CreationError(EscalationError):
    """A coordination document could not be created."""


class UpdateError(EscalationError):
    """A coordination document could not be updated."""


class ProvisioningError(EscalationError):
    """A video session could not be created or could not be recorded."""


class ConfigurationError(EscalationError):
    """Required Twilio settings are absent."""

    error_kind = ErrorKind.INTERNAL

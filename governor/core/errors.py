"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


# Error code the remote store uses when it runs out of connections/capacity.
RESOURCE_EXHAUSTED_CODE = "INSUFFICIENT_RESOURCES"


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: float
    resource_type: str
    endpoint_key: str
    attempts: int
    provider: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class RemoteStoreAppError(AppError):
    """Raised when the remote data store call fails."""


class AdmissionDeniedAppError(AppError):
    """Raised when a write cannot be admitted by the limiter."""


def is_resource_exhaustion(exc: BaseException) -> bool:
    """Return True when a failure signals upstream resource exhaustion.

    Matches either a structured ``code`` or the code appearing anywhere in
    the message, since some drivers only surface the text.
    """

    code = getattr(exc, "code", None)
    if code == RESOURCE_EXHAUSTED_CODE:
        return True
    message = getattr(exc, "message", None) or str(exc)
    return RESOURCE_EXHAUSTED_CODE in message


def as_remote_error(exc: BaseException) -> RemoteStoreAppError:
    """Coerce any remote-call failure into a RemoteStoreAppError.

    The original message is preserved so it can be surfaced to callers.
    """

    if isinstance(exc, RemoteStoreAppError):
        return exc
    if isinstance(exc, AppError):
        return RemoteStoreAppError(code=exc.code, message=exc.message, details=exc.details)
    return RemoteStoreAppError(
        code=str(getattr(exc, "code", None) or "remote_call_failed"),
        message=str(exc) or type(exc).__name__,
    )

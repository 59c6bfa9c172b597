"""Closed error taxonomy surfaced to callers of the conversation pipeline."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from enum import StrEnum


class ErrorKind(StrEnum):
    rate_limited = "rate_limited"
    auth_error = "auth_error"
    service_unavailable = "service_unavailable"
    malformed_response = "malformed_response"
    storage_error = "storage_error"
    general = "general"


class ChatError(Exception):
    kind: ErrorKind = ErrorKind.general

    def __init__(self, message: str = "", *, kind: ErrorKind | None = None) -> None:
        if kind is not None:
            self.kind = kind
        super().__init__(message or self.kind.value)


class RateLimitedError(ChatError):
    kind = ErrorKind.rate_limited


class AuthError(ChatError):
    kind = ErrorKind.auth_error


class ServiceUnavailableError(ChatError):
    kind = ErrorKind.service_unavailable


class MalformedResponseError(ChatError):
    kind = ErrorKind.malformed_response


class StorageError(ChatError):
    kind = ErrorKind.storage_error


class GeneralError(ChatError):
    kind = ErrorKind.general


_BY_KIND: dict[ErrorKind, type[ChatError]] = {
    ErrorKind.rate_limited: RateLimitedError,
    ErrorKind.auth_error: AuthError,
    ErrorKind.service_unavailable: ServiceUnavailableError,
    ErrorKind.malformed_response: MalformedResponseError,
    ErrorKind.storage_error: StorageError,
    ErrorKind.general: GeneralError,
}


def error_for(kind: ErrorKind, message: str = "") -> ChatError:
    return _BY_KIND[kind](message)


def as_chat_error(exc: BaseException, default: ErrorKind = ErrorKind.general) -> ChatError:
    """Map any exception into the taxonomy; taxonomy errors pass through unchanged."""
    if isinstance(exc, ChatError):
        return exc
    mapped = error_for(default, f"{type(exc).__name__}: {exc}")
    mapped.__cause__ = exc
    return mapped


@contextmanager
def error_boundary(operation: str, kind: ErrorKind) -> Iterator[None]:
    """Re-raise raw failures inside the block as the taxonomy error for ``kind``."""
    try:
        yield
    except ChatError:
        raise
    except Exception as exc:
        raise error_for(kind, f"{operation} failed: {exc}") from exc


def storage_boundary(operation: str) -> AbstractContextManager[None]:
    return error_boundary(operation, ErrorKind.storage_error)


def service_boundary(operation: str) -> AbstractContextManager[None]:
    """Configuration and provider reads fail as ``ServiceUnavailableError``."""
    return error_boundary(operation, ErrorKind.service_unavailable)


__all__ = [
    "AuthError",
    "ChatError",
    "ErrorKind",
    "GeneralError",
    "MalformedResponseError",
    "RateLimitedError",
    "ServiceUnavailableError",
    "StorageError",
    "as_chat_error",
    "error_boundary",
    "error_for",
    "service_boundary",
    "storage_boundary",
]

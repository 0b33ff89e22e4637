"""
Error taxonomy for the librarian core.

Every failure the core raises derives from LibrarianError, so API layers
can catch one base class and still branch on the concrete type:

- EmptyInputError: caller error, surfaced immediately, never retried
- AuthError: missing/invalid credentials, fatal, never retried
- RateLimitError / EmbeddingTimeoutError: transient, retried with backoff
- InvalidEmbeddingError: backend returned a malformed vector, retried up to the cap
- EmbeddingBackendError: passthrough for anything the backend raised that
  we don't recognize (keeps the original status/code)
"""

from __future__ import annotations


class LibrarianError(Exception):
    """Base class for all librarian errors."""


class InvalidVectorError(LibrarianError, ValueError):
    """Vectors are empty or of mismatched length."""


class EmptyInputError(LibrarianError, ValueError):
    """Text to embed is empty after trimming."""


class DocumentNotFoundError(LibrarianError, LookupError):
    """A store write targeted a document id that does not exist."""


# ---------------------------------------------------------------------------
# EMBEDDING BACKEND ERRORS
# ---------------------------------------------------------------------------


class EmbeddingBackendError(LibrarianError):
    """
    Generic embedding backend failure.

    Carries the backend's own status/code so API layers can map it
    to an HTTP response without parsing the message.
    """

    default_code: str | None = None
    default_status: int | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status: int | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code
        self.status = status if status is not None else self.default_status
        self.cause = cause

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, code={self.code!r}, "
            f"status={self.status!r})"
        )


class AuthError(EmbeddingBackendError):
    """Backend credentials are missing or were rejected."""

    default_code = "AUTH_ERROR"
    default_status = 401


class RateLimitError(EmbeddingBackendError):
    """Backend asked us to slow down."""

    default_code = "RATE_LIMIT"
    default_status = 429


class EmbeddingTimeoutError(EmbeddingBackendError):
    """Backend call exceeded the per-call deadline."""

    default_code = "TIMEOUT"
    default_status = 408


class InvalidEmbeddingError(EmbeddingBackendError):
    """Backend returned a vector with NaN/Infinity or the wrong dimensionality."""

    default_code = "INVALID_EMBEDDING"


# Errors worth another attempt after a backoff delay
RETRYABLE_ERRORS: tuple[type[EmbeddingBackendError], ...] = (
    RateLimitError,
    EmbeddingTimeoutError,
    InvalidEmbeddingError,
)


def is_retryable(error: BaseException) -> bool:
    """True if the error is transient and the call may be retried."""
    return isinstance(error, RETRYABLE_ERRORS)

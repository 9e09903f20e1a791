"""Custom exceptions for Bergizi-ID.

All modules should raise these exceptions instead of generic ones.
The FastAPI exception handlers in main.py map them to structured JSON
error responses with an appropriate HTTP status.
"""

from __future__ import annotations


class BergiziBaseException(Exception):
    """Base exception for all Bergizi-ID errors.

    Args:
        message: Human-readable error description.
        context: Optional dict of structured data for logging/debugging.
    """

    def __init__(self, message: str, context: dict | None = None) -> None:
        super().__init__(message)
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            safe_context = {
                k: "[REDACTED]" if _is_secret_key(k) else v for k, v in self.context.items()
            }
            return f"{super().__str__()} | context={safe_context}"
        return super().__str__()


class NotFoundError(BergiziBaseException):
    """A requested record does not exist (or is outside the caller's tenant)."""


class PermissionDeniedError(BergiziBaseException):
    """The caller's role may not use this endpoint."""


class TenantAccessError(PermissionDeniedError):
    """The caller is not bound to an SPPG, or the resource belongs to another SPPG."""


class RealtimeError(BergiziBaseException):
    """Publishing to the real-time broker failed."""


def _is_secret_key(key: str) -> bool:
    """Check if a dict key name suggests it contains secret data."""
    secret_words = {"key", "secret", "password", "token", "private", "credential"}
    key_lower = key.lower()
    return any(word in key_lower for word in secret_words)

"""
Exception hierarchy for concertsync.

    ConcertSyncError
    +-- ConfigurationError   (provider credential missing)
    +-- ProviderError        (non-2xx, timeout, malformed payload)
    +-- StorageError         (concert store write/delete failed)
    +-- ValidationError      (one provider record cannot be normalised)

Every error may carry the provider name it belongs to; str() prefixes it
in brackets, e.g. "[ticketmaster] HTTP 401: Unauthorized".
"""

from typing import Optional


class ConcertSyncError(Exception):
    def __init__(self, message: str, provider: Optional[str] = None):
        self.message = message
        self.provider = provider
        super().__init__(message)

    def __str__(self) -> str:
        if self.provider:
            return f"[{self.provider}] {self.message}"
        return self.message


class ConfigurationError(ConcertSyncError):
    """A provider's credential is not configured."""


class ProviderError(ConcertSyncError):
    """An external API call failed or returned something unusable."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, provider=provider)
        self.status_code = status_code


class StorageError(ConcertSyncError):
    """The concert store rejected a write or delete."""


class ValidationError(ConcertSyncError):
    """A provider record lacks a field the canonical Concert cannot do without."""

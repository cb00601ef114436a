"""Exception hierarchy shared by the Sheet Mirror sync engine."""
from __future__ import annotations

from typing import Optional


class SheetSyncError(RuntimeError):
    """Base class for every failure raised by the sync engine."""


class ConfigurationError(SheetSyncError):
    """Raised when required configuration or credentials are missing."""


class FormatError(SheetSyncError):
    """Raised when the service-account private key is not a usable PEM."""


class CryptoError(SheetSyncError):
    """Raised when the private key cannot be imported or signing fails."""


class AuthError(SheetSyncError):
    """Raised when the OAuth token endpoint rejects the bearer assertion."""


class SheetsAPIError(SheetSyncError):
    """Raised when a Sheets API read returns an error response."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class SheetNotFoundError(SheetSyncError):
    """Raised when a sheet title cannot be resolved to a grid id."""


class WriteError(SheetSyncError):
    """Raised when a mutating Sheets API call does not succeed."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ValidationError(SheetSyncError):
    """Raised when a sync request is malformed."""


class UnsupportedTableError(ValidationError):
    """Raised when a sync request names a table without a sheet layout."""


__all__ = [
    "SheetSyncError",
    "ConfigurationError",
    "FormatError",
    "CryptoError",
    "AuthError",
    "SheetsAPIError",
    "SheetNotFoundError",
    "WriteError",
    "ValidationError",
    "UnsupportedTableError",
]

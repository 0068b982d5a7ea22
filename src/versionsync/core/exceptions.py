"""
Exceptions - Centralized exception hierarchy for versionsync.

Hierarchy:

    VersionSyncError
    ├── ParseError
    ├── ConfigError
    │   ├── MissingConfigError
    │   └── ConfigFileError
    ├── DescriptorError
    │   ├── DescriptorNotFoundError
    │   ├── VersionNotFoundError
    │   └── WriteError
    ├── SigningKeyError
    ├── StoreError
    │   ├── NetworkError
    │   │   └── ProviderTimeoutError
    │   ├── AuthenticationError
    │   ├── NotFoundError
    │   ├── RateLimitError
    │   └── TransientError
    └── ReconciliationError
        ├── NoStoreVersionError
        ├── ConflictError
        └── LockError

Provider- and target-scoped errors are folded into the reconciliation result
by the engine. Only the fatal ones (manifest missing, lock failure, no store
version under a store-only policy, unreadable key under a store-only policy,
store conflict without arbitration) reach the caller.
"""

from __future__ import annotations

from pathlib import Path


class VersionSyncError(Exception):
    """
    Base exception for all versionsync errors.

    Attributes:
        message: Human-readable error message.
        cause: The underlying exception, if any.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        self.message = message
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


# =============================================================================
# Parsing
# =============================================================================


class ParseError(VersionSyncError):
    """A version string does not have the X.Y.Z or X.Y.Z+B shape."""

    def __init__(self, message: str, value: str | None = None, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.value = value


# =============================================================================
# Configuration
# =============================================================================


class ConfigError(VersionSyncError):
    """Invalid or incomplete configuration."""


class MissingConfigError(ConfigError):
    """A required configuration value is not set."""

    def __init__(self, key: str, message: str | None = None):
        super().__init__(message or f"Missing configuration value: {key}")
        self.key = key


class ConfigFileError(ConfigError):
    """A configuration file could not be read or parsed."""

    def __init__(self, message: str, path: Path | str | None = None, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.path = Path(path) if path is not None else None


# =============================================================================
# Local descriptors
# =============================================================================


class DescriptorError(VersionSyncError):
    """Base for errors reading or writing a local version descriptor."""

    def __init__(self, message: str, path: Path | str | None = None, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.path = Path(path) if path is not None else None


class DescriptorNotFoundError(DescriptorError):
    """The descriptor file does not exist."""


class VersionNotFoundError(DescriptorError):
    """The descriptor exists but carries no literal version."""


class WriteError(DescriptorError):
    """The descriptor could not be written."""


# =============================================================================
# Signing
# =============================================================================


class SigningKeyError(VersionSyncError):
    """The store signing key is missing or cannot be parsed."""

    def __init__(self, message: str, key_path: Path | str | None = None, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.key_path = Path(key_path) if key_path is not None else None


# =============================================================================
# Remote stores
# =============================================================================


class StoreError(VersionSyncError):
    """Base for errors talking to a remote distribution store."""

    def __init__(self, message: str, store: str | None = None, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.store = store


class NetworkError(StoreError):
    """Connection-level failure."""


class ProviderTimeoutError(NetworkError):
    """The store did not answer within the provider's time budget."""


class AuthenticationError(StoreError):
    """The store rejected our credentials."""


class NotFoundError(StoreError):
    """The requested app or resource does not exist (or is ambiguous)."""


class RateLimitError(StoreError):
    """The store is throttling requests."""

    def __init__(
        self,
        message: str,
        store: str | None = None,
        retry_after: float | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, store=store, cause=cause)
        self.retry_after = retry_after


class TransientError(StoreError):
    """Server-side error that may succeed on retry."""


# =============================================================================
# Reconciliation
# =============================================================================


class ReconciliationError(VersionSyncError):
    """Base for errors that abort a reconciliation run."""


class NoStoreVersionError(ReconciliationError):
    """A store-only policy ran but no store reported a version."""


class ConflictError(ReconciliationError):
    """Stores disagree and the policy forbids picking the maximum."""

    def __init__(self, message: str, candidates: dict[str, str] | None = None):
        super().__init__(message)
        self.candidates = candidates or {}


class LockError(ReconciliationError):
    """Another reconciliation holds the project lock."""

    def __init__(self, message: str, lock_path: Path | str | None = None, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.lock_path = Path(lock_path) if lock_path is not None else None


__all__ = [
    "AuthenticationError",
    "ConfigError",
    "ConfigFileError",
    "ConflictError",
    "DescriptorError",
    "DescriptorNotFoundError",
    "LockError",
    "MissingConfigError",
    "NetworkError",
    "NoStoreVersionError",
    "NotFoundError",
    "ParseError",
    "ProviderTimeoutError",
    "RateLimitError",
    "ReconciliationError",
    "SigningKeyError",
    "StoreError",
    "TransientError",
    "VersionNotFoundError",
    "VersionSyncError",
    "WriteError",
]

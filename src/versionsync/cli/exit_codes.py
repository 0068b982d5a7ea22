"""
Exit Codes - Process exit status for the versionsync CLI.

Codes are stable so CI pipelines can branch on them.
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING

from versionsync.core.exceptions import (
    ConfigError,
    ConflictError,
    DescriptorNotFoundError,
    LockError,
    NoStoreVersionError,
    ParseError,
    SigningKeyError,
    StoreError,
    VersionNotFoundError,
)


if TYPE_CHECKING:
    from versionsync.application.sync import DriftReport, ReconciliationResult


class ExitCode(IntEnum):
    """Exit codes returned by ``versionsync``."""

    SUCCESS = 0
    ERROR = 1
    CONFIG_ERROR = 2
    FILE_NOT_FOUND = 3
    CONNECTION_ERROR = 4
    VALIDATION_ERROR = 5
    PARTIAL_SUCCESS = 6
    DRIFT_DETECTED = 7
    LOCK_ERROR = 8
    NO_STORE_VERSION = 9
    CONFLICT = 10
    CANCELLED = 80
    SIGINT = 130

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @classmethod
    def from_exception(cls, exc: BaseException) -> ExitCode:
        """Map an exception to the exit code the CLI reports for it."""
        if isinstance(exc, KeyboardInterrupt):
            return cls.SIGINT
        # Order matters: subclasses before their bases
        mapping: tuple[tuple[type[BaseException], ExitCode], ...] = (
            (DescriptorNotFoundError, cls.FILE_NOT_FOUND),
            (VersionNotFoundError, cls.VALIDATION_ERROR),
            (ParseError, cls.VALIDATION_ERROR),
            (SigningKeyError, cls.CONFIG_ERROR),
            (ConfigError, cls.CONFIG_ERROR),
            (LockError, cls.LOCK_ERROR),
            (NoStoreVersionError, cls.NO_STORE_VERSION),
            (ConflictError, cls.CONFLICT),
            (StoreError, cls.CONNECTION_ERROR),
            (FileNotFoundError, cls.FILE_NOT_FOUND),
        )
        for exc_type, code in mapping:
            if isinstance(exc, exc_type):
                return code
        return cls.ERROR

    @classmethod
    def from_result(cls, result: ReconciliationResult) -> ExitCode:
        """Exit code for a finished engine operation."""
        if result.interrupted:
            return cls.CANCELLED
        if result.success:
            return cls.SUCCESS
        return cls.PARTIAL_SUCCESS

    @classmethod
    def from_drift(cls, report: DriftReport) -> ExitCode:
        return cls.SUCCESS if report.in_sync else cls.DRIFT_DETECTED


_DESCRIPTIONS = {
    ExitCode.SUCCESS: "Success",
    ExitCode.ERROR: "Unexpected error",
    ExitCode.CONFIG_ERROR: "Configuration or signing key error",
    ExitCode.FILE_NOT_FOUND: "Manifest or required file not found",
    ExitCode.CONNECTION_ERROR: "Store connection failed",
    ExitCode.VALIDATION_ERROR: "Version could not be parsed",
    ExitCode.PARTIAL_SUCCESS: "Some targets were not written",
    ExitCode.DRIFT_DETECTED: "Local descriptors disagree",
    ExitCode.LOCK_ERROR: "Another run holds the project lock",
    ExitCode.NO_STORE_VERSION: "No store reported a version",
    ExitCode.CONFLICT: "Stores disagree and arbitration is off",
    ExitCode.CANCELLED: "Interrupted before all targets were written",
    ExitCode.SIGINT: "Interrupted by user",
}

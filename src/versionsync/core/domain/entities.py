"""
Domain Entities - Observations and outcomes recorded during reconciliation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .enums import Confidence, Target, VersionSource, WriteStatus
from .value_objects import VersionTag


@dataclass
class ObservedVersion:
    """
    A version read from one source, or the reason it could not be read.

    An observation with no version is "unknown". Unknown is a normal
    outcome for remote stores, not an error condition of the run.
    """

    source: VersionSource
    version: VersionTag | None = None
    error: BaseException | None = None
    confidence: Confidence = Confidence.HIGH
    detail: str = ""

    @classmethod
    def known(
        cls,
        source: VersionSource,
        version: VersionTag,
        confidence: Confidence = Confidence.HIGH,
        detail: str = "",
    ) -> ObservedVersion:
        return cls(source=source, version=version, confidence=confidence, detail=detail)

    @classmethod
    def unknown(
        cls,
        source: VersionSource,
        error: BaseException | None = None,
        confidence: Confidence = Confidence.HIGH,
        detail: str = "",
    ) -> ObservedVersion:
        return cls(source=source, error=error, confidence=confidence, detail=detail)

    @property
    def is_known(self) -> bool:
        return self.version is not None

    @property
    def is_cached(self) -> bool:
        return self.detail == "cached"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source": self.source.value,
            "version": str(self.version) if self.version else None,
            "error": str(self.error) if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
            "confidence": self.confidence.value,
            "detail": self.detail,
        }


@dataclass
class WriteOutcome:
    """Result of writing the chosen version into one target."""

    target: Target
    status: WriteStatus
    paths: list[Path] = field(default_factory=list)
    message: str = ""

    @property
    def is_success(self) -> bool:
        return self.status.is_success

    @property
    def failed(self) -> bool:
        return self.status is WriteStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "target": self.target.value,
            "status": self.status.value,
            "paths": [str(p) for p in self.paths],
            "message": self.message,
        }

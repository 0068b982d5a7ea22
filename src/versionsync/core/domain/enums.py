"""
Domain enums - Sources, targets, policy choices and outcome states.
"""

from __future__ import annotations

from enum import Enum


class Ordering(Enum):
    """Result of comparing two versions."""

    LESS = -1
    EQUAL = 0
    GREATER = 1

    def mirror(self) -> Ordering:
        """Return the ordering seen from the other operand."""
        return Ordering(-self.value)


class VersionSource(Enum):
    """Where an observed or chosen version came from."""

    MANIFEST = "manifest"
    ANDROID_DESCRIPTOR = "android"
    IOS_DESCRIPTOR = "ios"
    STORE_A = "app_store"
    STORE_B = "play_store"
    FALLBACK = "fallback"
    LOCAL_MAX = "local_max"
    EXPLICIT = "explicit"

    @property
    def is_store(self) -> bool:
        """Check if this source is a remote store."""
        return self in (VersionSource.STORE_A, VersionSource.STORE_B)

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return {
            VersionSource.MANIFEST: "pubspec.yaml",
            VersionSource.ANDROID_DESCRIPTOR: "Android",
            VersionSource.IOS_DESCRIPTOR: "iOS",
            VersionSource.STORE_A: "App Store Connect",
            VersionSource.STORE_B: "Google Play",
            VersionSource.FALLBACK: "Fallback",
            VersionSource.LOCAL_MAX: "Local maximum",
            VersionSource.EXPLICIT: "Explicit",
        }[self]


class Target(Enum):
    """A local descriptor the engine writes the chosen version into."""

    MANIFEST = "manifest"
    ANDROID_DESCRIPTOR = "android"
    IOS_DESCRIPTOR = "ios"

    @property
    def source(self) -> VersionSource:
        """The source tag used when this target is read."""
        return VersionSource(self.value)


class SyncStrategy(Enum):
    """How remote store data is used when deciding the next version."""

    STORE_OR_FALLBACK = "store_or_fallback"
    FALLBACK_ONLY = "fallback_only"
    STORE_ONLY = "store_only"

    @classmethod
    def from_string(cls, value: str) -> SyncStrategy:
        """
        Parse a strategy name.

        Accepts ``StoreOrFallback``, ``store-or-fallback``, ``store_or_fallback``
        and similar spellings.
        """
        normalized = _normalize(value)
        for member in cls:
            if _normalize(member.value) == normalized:
                return member
        raise ValueError(f"Unknown sync strategy: {value!r}")

    @property
    def uses_stores(self) -> bool:
        """Check if remote stores are queried under this strategy."""
        return self is not SyncStrategy.FALLBACK_ONLY


class BumpKind(Enum):
    """Which component of a version to increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    BUILD = "build"
    AUTO = "auto"

    @classmethod
    def from_string(cls, value: str) -> BumpKind:
        """Parse a bump kind name (case-insensitive)."""
        normalized = _normalize(value)
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown bump kind: {value!r}")


class WriteStatus(Enum):
    """Outcome of writing a version into one target."""

    WRITTEN = "written"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def is_success(self) -> bool:
        """Written and unchanged both leave the target at the chosen version."""
        return self in (WriteStatus.WRITTEN, WriteStatus.UNCHANGED)


class EngineState(Enum):
    """Reconciliation state machine."""

    IDLE = "idle"
    GATHERING = "gathering"
    DECIDING = "deciding"
    WRITING = "writing"
    DONE = "done"
    PARTIALLY_FAILED = "partially_failed"

    @property
    def is_terminal(self) -> bool:
        return self in (EngineState.DONE, EngineState.PARTIALLY_FAILED)


class Confidence(Enum):
    """How much a store lookup can be trusted."""

    HIGH = "high"
    LOW = "low"


def _normalize(value: str) -> str:
    return value.strip().lower().replace("-", "").replace("_", "").replace(" ", "")

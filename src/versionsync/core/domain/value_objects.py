"""
Value Objects - Immutable objects defined by their attributes.

Value objects have no identity - two value objects with the same
attributes are considered equal.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from versionsync.core.exceptions import ParseError

from .enums import BumpKind, Ordering, SyncStrategy


_VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:\+(\d+))?$")
_NAME_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")

DEFAULT_BUILD = 1


@dataclass(frozen=True)
class VersionTag:
    """
    A release identifier: ``major.minor.patch+build``.

    Ordering is by ``(major, minor, patch)`` and then by ``build``.
    Bumping never mutates; it returns a new tag.
    """

    major: int
    minor: int
    patch: int
    build: int = DEFAULT_BUILD

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch", "build"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ParseError(f"Version component {name} must be a non-negative integer, got {value!r}")

    @classmethod
    def parse(cls, value: str) -> VersionTag:
        """
        Parse ``X.Y.Z`` or ``X.Y.Z+B``.

        The build defaults to 1 when absent. Surrounding whitespace is ignored.

        Raises:
            ParseError: If the string has any other shape.
        """
        if not isinstance(value, str):
            raise ParseError(f"Expected a version string, got {type(value).__name__}", value=None)

        match = _VERSION_PATTERN.match(value.strip())
        if not match:
            raise ParseError(f"Invalid version: {value!r} (expected X.Y.Z or X.Y.Z+B)", value=value)

        major, minor, patch, build = match.groups()
        return cls(
            major=int(major),
            minor=int(minor),
            patch=int(patch),
            build=int(build) if build is not None else DEFAULT_BUILD,
        )

    @classmethod
    def from_parts(cls, name: str, code: int | str | None) -> VersionTag:
        """
        Build a tag from a version name (``X.Y.Z``) and a separate build code.

        Native descriptors store the two halves under different keys.
        """
        match = _NAME_PATTERN.match(name.strip())
        if not match:
            raise ParseError(f"Invalid version name: {name!r} (expected X.Y.Z)", value=name)

        if code is None:
            build = DEFAULT_BUILD
        else:
            text = str(code).strip()
            if not text.isdigit():
                raise ParseError(f"Invalid build number: {code!r}", value=str(code))
            build = int(text)

        major, minor, patch = (int(part) for part in match.groups())
        return cls(major=major, minor=minor, patch=patch, build=build)

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if a string parses as a version."""
        try:
            cls.parse(value)
        except ParseError:
            return False
        return True

    @property
    def name(self) -> str:
        """The ``X.Y.Z`` part without the build."""
        return f"{self.major}.{self.minor}.{self.patch}"

    @property
    def sort_key(self) -> tuple[int, int, int, int]:
        return (self.major, self.minor, self.patch, self.build)

    def format(self) -> str:
        """Canonical ``X.Y.Z+B`` form."""
        return f"{self.name}+{self.build}"

    def bump(self, kind: BumpKind) -> VersionTag:
        """
        Return the next version for the given bump kind.

        Every kind also increments the build number, so a bumped tag is
        always strictly greater than the original.
        """
        build = self.build + 1
        if kind is BumpKind.MAJOR:
            return VersionTag(self.major + 1, 0, 0, build)
        if kind is BumpKind.MINOR:
            return VersionTag(self.major, self.minor + 1, 0, build)
        if kind is BumpKind.PATCH:
            return VersionTag(self.major, self.minor, self.patch + 1, build)
        return VersionTag(self.major, self.minor, self.patch, build)

    def compare(self, other: VersionTag) -> Ordering:
        return compare_versions(self, other)

    def __str__(self) -> str:
        return self.format()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VersionTag):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __le__(self, other: object) -> bool:
        if not isinstance(other, VersionTag):
            return NotImplemented
        return self.sort_key <= other.sort_key

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, VersionTag):
            return NotImplemented
        return self.sort_key > other.sort_key

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, VersionTag):
            return NotImplemented
        return self.sort_key >= other.sort_key


def compare_versions(a: VersionTag, b: VersionTag) -> Ordering:
    """Total order over version tags: name first, build as tie-break."""
    if a.sort_key < b.sort_key:
        return Ordering.LESS
    if a.sort_key > b.sort_key:
        return Ordering.GREATER
    return Ordering.EQUAL


def max_version(versions: Iterable[VersionTag | None]) -> VersionTag | None:
    """Return the greatest tag, ignoring ``None`` entries, or None if empty."""
    best: VersionTag | None = None
    for version in versions:
        if version is None:
            continue
        if best is None or compare_versions(version, best) is Ordering.GREATER:
            best = version
    return best


@dataclass(frozen=True)
class SyncPolicy:
    """
    How the next version is decided for one reconciliation.

    Attributes:
        strategy: Whether stores are consulted.
        bump_kind: Component bumped when a store version is caught up with.
        auto_increment: Bump the fallback version too (fallback branch only).
        arbitrate: Take the maximum when stores disagree. When False,
            disagreement is a conflict.
    """

    strategy: SyncStrategy = SyncStrategy.STORE_OR_FALLBACK
    bump_kind: BumpKind = BumpKind.BUILD
    auto_increment: bool = False
    arbitrate: bool = True

    @classmethod
    def from_string(cls, value: str, auto_increment: bool = False, arbitrate: bool = True) -> SyncPolicy:
        """
        Parse ``<strategy>:<bumpKind>``, e.g. ``StoreOrFallback:Build``.

        The bump kind may be omitted (``store-only``) and defaults to Build.
        """
        strategy_text, _, bump_text = value.partition(":")
        try:
            strategy = SyncStrategy.from_string(strategy_text)
            bump_kind = BumpKind.from_string(bump_text) if bump_text.strip() else BumpKind.BUILD
        except ValueError as e:
            raise ParseError(f"Invalid policy {value!r}: {e}", value=value) from e
        return cls(
            strategy=strategy,
            bump_kind=bump_kind,
            auto_increment=auto_increment,
            arbitrate=arbitrate,
        )

    def __str__(self) -> str:
        return f"{self.strategy.value}:{self.bump_kind.value}"

    def to_dict(self) -> dict[str, object]:
        return {
            "strategy": self.strategy.value,
            "bump_kind": self.bump_kind.value,
            "auto_increment": self.auto_increment,
            "arbitrate": self.arbitrate,
        }

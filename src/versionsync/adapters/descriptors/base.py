"""
Descriptor base - Pattern-driven reading and in-place rewriting of version fields.

Each native descriptor file is described by two fields (version name and
build number), each a regex with ``prefix``, ``value`` and ``suffix`` groups.
Rewriting substitutes only the ``value`` group, so every other byte of the
file (line endings included) is preserved.
"""

from __future__ import annotations

import contextlib
import logging
import os
import re
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path

from versionsync.core.domain.entities import WriteOutcome
from versionsync.core.domain.enums import Target, WriteStatus
from versionsync.core.domain.value_objects import VersionTag
from versionsync.core.exceptions import (
    DescriptorNotFoundError,
    ParseError,
    VersionNotFoundError,
    WriteError,
)
from versionsync.core.ports.descriptor import VersionDescriptorPort


# Build-tool variable substitution: $(FLUTTER_BUILD_NAME), ${versionCode}
PLACEHOLDER_PATTERN = re.compile(r"\$\(|\$\{")


def has_placeholder(value: str) -> bool:
    """Check if a value is a build-tool variable rather than a literal."""
    return bool(PLACEHOLDER_PATTERN.search(value))


def read_text(path: Path) -> str:
    """Read a file without newline translation."""
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def atomic_write(path: Path, content: str) -> None:
    """
    Replace a file's content atomically.

    Writes to a temporary file in the same directory and renames it over
    the original, keeping the original permission bits.
    """
    mode = stat.S_IMODE(path.stat().st_mode) if path.exists() else None
    fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


@dataclass(frozen=True)
class VersionField:
    """
    One version-carrying key in a descriptor file.

    Attributes:
        key: Key name, for messages.
        pattern: Regex with ``prefix``, ``value`` and ``suffix`` named groups.
        numeric: Whether a literal value must be all digits.
        replace_all: Rewrite every occurrence instead of only the first.
    """

    key: str
    pattern: re.Pattern[str]
    numeric: bool = False
    replace_all: bool = False

    def values(self, text: str) -> list[str]:
        """Raw values of every occurrence, or only the first for single-occurrence fields."""
        matches = [m.group("value").strip() for m in self.pattern.finditer(text)]
        return matches if self.replace_all else matches[:1]

    def is_literal(self, value: str) -> bool:
        if has_placeholder(value):
            return False
        return value.isdigit() if self.numeric else bool(value)

    def substitute(self, text: str, value: str) -> str:
        return self.pattern.sub(
            lambda m: f"{m.group('prefix')}{value}{m.group('suffix')}",
            text,
            count=0 if self.replace_all else 1,
        )


@dataclass
class FileScan:
    """What was found in one descriptor file."""

    path: Path
    exists: bool
    name_values: list[str]
    build_values: list[str]

    @property
    def found(self) -> bool:
        return bool(self.name_values and self.build_values)

    @property
    def has_placeholder(self) -> bool:
        return any(has_placeholder(v) for v in self.name_values + self.build_values)


@dataclass(frozen=True)
class DescriptorFile:
    """A descriptor file and the two fields it carries."""

    path: Path
    name_field: VersionField
    build_field: VersionField

    def scan(self, text: str | None) -> FileScan:
        if text is None:
            return FileScan(self.path, False, [], [])
        return FileScan(
            self.path,
            True,
            self.name_field.values(text),
            self.build_field.values(text),
        )

    def is_literal(self, scan: FileScan) -> bool:
        """Both fields present and every occurrence a literal value."""
        return (
            scan.found
            and all(self.name_field.is_literal(v) for v in scan.name_values)
            and all(self.build_field.is_literal(v) for v in scan.build_values)
        )

    def version(self, scan: FileScan) -> VersionTag:
        return VersionTag.from_parts(scan.name_values[0].strip("\"'"), scan.build_values[0])

    def render(self, text: str, version: VersionTag) -> str:
        text = self.name_field.substitute(text, version.name)
        return self.build_field.substitute(text, str(version.build))


def combine_statuses(statuses: list[WriteStatus]) -> WriteStatus:
    """Fold per-file statuses into one target status; any failure wins."""
    if WriteStatus.FAILED in statuses:
        return WriteStatus.FAILED
    if WriteStatus.WRITTEN in statuses:
        return WriteStatus.WRITTEN
    if WriteStatus.UNCHANGED in statuses:
        return WriteStatus.UNCHANGED
    return WriteStatus.SKIPPED


class PlatformDescriptorAdapter(VersionDescriptorPort):
    """
    Base for native descriptor adapters.

    Subclasses list their files in priority order. ``read`` returns the
    version of the first file carrying literal keys. ``write`` rewrites
    the files chosen by ``write_candidates``.
    """

    target: Target

    def __init__(self, project_root: Path | str):
        self.project_root = Path(project_root)
        self.logger = logging.getLogger(type(self).__name__)

    def files(self) -> list[DescriptorFile]:
        raise NotImplementedError

    def paths(self) -> list[Path]:
        return [f.path for f in self.files()]

    def _load(self, descriptor: DescriptorFile) -> str | None:
        if not descriptor.path.is_file():
            return None
        try:
            return read_text(descriptor.path)
        except (OSError, UnicodeDecodeError) as e:
            raise VersionNotFoundError(f"Cannot read {descriptor.path}", path=descriptor.path, cause=e)

    def read(self) -> VersionTag:
        files = self.files()
        if not any(f.path.is_file() for f in files):
            raise DescriptorNotFoundError(
                f"No {self.name} descriptor found ({', '.join(str(p) for p in self.paths())})",
                path=files[0].path,
            )

        for descriptor in files:
            scan = descriptor.scan(self._load(descriptor))
            if not scan.exists:
                continue
            if not descriptor.is_literal(scan):
                self.logger.debug(f"{descriptor.path.name}: no literal version keys")
                continue
            try:
                return descriptor.version(scan)
            except ParseError as e:
                raise ParseError(f"{descriptor.path.name}: {e.message}", value=e.value) from e

        raise VersionNotFoundError(f"No literal version in {self.name} descriptors", path=files[0].path)

    def write_candidates(self, scans: list[tuple[DescriptorFile, FileScan]]) -> list[tuple[DescriptorFile, FileScan]]:
        """Files to rewrite: by default every file with literal keys."""
        return [(d, s) for d, s in scans if d.is_literal(s)]

    def write(self, version: VersionTag) -> WriteOutcome:
        files = self.files()
        existing = [f for f in files if f.path.is_file()]
        if not existing:
            return WriteOutcome(self.target, WriteStatus.SKIPPED, message=f"No {self.name} descriptor found")

        scans: list[tuple[DescriptorFile, FileScan]] = []
        texts: dict[Path, str] = {}
        for descriptor in existing:
            try:
                text = read_text(descriptor.path)
            except (OSError, UnicodeDecodeError) as e:
                error = WriteError(f"Cannot read {descriptor.path}", path=descriptor.path, cause=e)
                return WriteOutcome(self.target, WriteStatus.FAILED, [descriptor.path], str(error))
            texts[descriptor.path] = text
            scan = descriptor.scan(text)
            if scan.has_placeholder:
                self.logger.info(f"{descriptor.path.name}: version keys use a build variable, leaving untouched")
            scans.append((descriptor, scan))

        candidates = self.write_candidates(scans)
        if not candidates:
            return WriteOutcome(
                self.target,
                WriteStatus.SKIPPED,
                [d.path for d in existing],
                f"No literal version keys in {self.name} descriptors",
            )

        statuses: list[WriteStatus] = []
        touched: list[Path] = []
        messages: list[str] = []
        for descriptor, _scan in candidates:
            original = texts[descriptor.path]
            updated = descriptor.render(original, version)
            touched.append(descriptor.path)
            if updated == original:
                statuses.append(WriteStatus.UNCHANGED)
                continue
            try:
                atomic_write(descriptor.path, updated)
            except OSError as e:
                error = WriteError(f"Cannot write {descriptor.path}", path=descriptor.path, cause=e)
                self.logger.error(str(error))
                statuses.append(WriteStatus.FAILED)
                messages.append(str(error))
                continue
            self.logger.info(f"Updated {descriptor.path.name} to {version}")
            statuses.append(WriteStatus.WRITTEN)

        status = combine_statuses(statuses)
        candidate_paths = {d.path for d, _ in candidates}
        skipped = [d.path.name for d, _ in scans if d.path not in candidate_paths]
        if skipped and not messages:
            messages.append(f"left untouched: {', '.join(skipped)}")
        return WriteOutcome(self.target, status, touched, "; ".join(messages))

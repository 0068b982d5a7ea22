"""
Manifest store - The ``version:`` line of ``pubspec.yaml``.

The manifest is the canonical local version. Unlike the native
descriptors, a missing manifest is fatal for every operation that reads it.
The file is edited line-wise rather than round-tripped through a YAML
dumper, so comments and key order survive.
"""

from __future__ import annotations

import logging
import re
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

from .base import atomic_write, read_text


MANIFEST_FILENAME = "pubspec.yaml"

# version: 1.2.3+4   /   version: "1.2.3+4"  # comment
VERSION_LINE = re.compile(
    r"^(?P<prefix>version:[ \t]*(?P<quote>[\"']?))(?P<value>[^\s#\"']*)(?P<suffix>(?P=quote))",
    re.MULTILINE,
)
NAME_LINE = re.compile(r"^name:[ \t]*[\"']?(?P<value>[A-Za-z0-9_]+)[\"']?", re.MULTILINE)


class ManifestStore(VersionDescriptorPort):
    """Reads and writes the version in ``pubspec.yaml``."""

    target = Target.MANIFEST

    def __init__(self, project_root: Path | str, filename: str = MANIFEST_FILENAME):
        self.project_root = Path(project_root)
        self.path = self.project_root / filename
        self.logger = logging.getLogger("ManifestStore")

    @property
    def name(self) -> str:
        return self.path.name

    def paths(self) -> list[Path]:
        return [self.path]

    def _read_text(self) -> str:
        if not self.path.is_file():
            raise DescriptorNotFoundError(f"Manifest not found: {self.path}", path=self.path)
        try:
            return read_text(self.path)
        except (OSError, UnicodeDecodeError) as e:
            raise DescriptorNotFoundError(f"Cannot read manifest: {self.path}", path=self.path, cause=e)

    def read_raw(self) -> str:
        """
        Return the raw version value.

        Raises:
            DescriptorNotFoundError: If the manifest is missing.
            VersionNotFoundError: If it has no version line.
        """
        match = VERSION_LINE.search(self._read_text())
        if not match or not match.group("value"):
            raise VersionNotFoundError(f"No version line in {self.path}", path=self.path)
        return match.group("value")

    def read(self) -> VersionTag:
        raw = self.read_raw()
        try:
            return VersionTag.parse(raw)
        except ParseError as e:
            raise ParseError(f"{self.path.name}: {e.message}", value=raw) from e

    def read_project_name(self) -> str | None:
        """The ``name:`` field, or None if absent or the manifest is missing."""
        try:
            text = self._read_text()
        except DescriptorNotFoundError:
            return None
        match = NAME_LINE.search(text)
        return match.group("value") if match else None

    def write(self, version: VersionTag) -> WriteOutcome:
        try:
            original = self._read_text()
        except DescriptorNotFoundError as e:
            return WriteOutcome(self.target, WriteStatus.FAILED, [self.path], str(e))

        if not VERSION_LINE.search(original):
            error = VersionNotFoundError(f"No version line in {self.path}", path=self.path)
            return WriteOutcome(self.target, WriteStatus.FAILED, [self.path], str(error))

        updated = VERSION_LINE.sub(
            lambda m: f"{m.group('prefix')}{version.format()}{m.group('suffix')}",
            original,
            count=1,
        )
        if updated == original:
            return WriteOutcome(self.target, WriteStatus.UNCHANGED, [self.path])

        try:
            atomic_write(self.path, updated)
        except OSError as e:
            error = WriteError(f"Cannot write {self.path}", path=self.path, cause=e)
            self.logger.error(str(error))
            return WriteOutcome(self.target, WriteStatus.FAILED, [self.path], str(error))

        self.logger.info(f"Updated {self.path.name} to {version}")
        return WriteOutcome(self.target, WriteStatus.WRITTEN, [self.path])

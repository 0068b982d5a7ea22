"""
Version Descriptor Port - Abstract interface for files that carry a version.

Implementations:
- ManifestStore: pubspec.yaml
- AndroidDescriptorAdapter: build.gradle.kts / build.gradle
- IOSDescriptorAdapter: Info.plist / project.pbxproj
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from versionsync.core.domain.entities import ObservedVersion, WriteOutcome
from versionsync.core.domain.enums import Target
from versionsync.core.domain.value_objects import VersionTag
from versionsync.core.exceptions import VersionSyncError


class VersionDescriptorPort(ABC):
    """
    Abstract interface for a local version descriptor.

    Each implementation owns the patterns for its file format, so the
    engine never looks inside the files itself.
    """

    target: Target

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable descriptor name."""
        ...

    @abstractmethod
    def paths(self) -> list[Path]:
        """All files this descriptor may read or write, in priority order."""
        ...

    @abstractmethod
    def read(self) -> VersionTag:
        """
        Read the current version.

        Raises:
            DescriptorNotFoundError: No descriptor file exists.
            VersionNotFoundError: Files exist but carry no literal version.
            ParseError: The version text is malformed.
        """
        ...

    @abstractmethod
    def write(self, version: VersionTag) -> WriteOutcome:
        """
        Write a version.

        Never raises for per-target failures; they are reported in the outcome.
        Writing the same version twice leaves the files byte-identical.
        """
        ...

    def exists(self) -> bool:
        """Check if any descriptor file is present."""
        return any(path.is_file() for path in self.paths())

    def observe(self) -> ObservedVersion:
        """Read the version and fold any failure into an observation."""
        try:
            return ObservedVersion.known(self.target.source, self.read())
        except VersionSyncError as e:
            logging.getLogger("VersionDescriptor").debug(f"{self.name}: {e}")
            return ObservedVersion.unknown(self.target.source, error=e)

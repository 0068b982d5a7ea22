"""
Drift Check - Compare local descriptors without touching the network.

Drift is any disagreement between the manifest and the native
descriptors. The check never writes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from versionsync.core.domain.entities import ObservedVersion
from versionsync.core.domain.enums import Target
from versionsync.core.domain.value_objects import VersionTag, max_version
from versionsync.core.ports.descriptor import VersionDescriptorPort


@dataclass
class DriftReport:
    """Versions read from each local descriptor."""

    observed: dict[Target, ObservedVersion] = field(default_factory=dict)

    @property
    def versions(self) -> dict[Target, VersionTag]:
        return {t: o.version for t, o in self.observed.items() if o.version is not None}

    @property
    def missing(self) -> list[Target]:
        """Targets whose version could not be read."""
        return [t for t, o in self.observed.items() if o.version is None]

    @property
    def distinct_versions(self) -> set[VersionTag]:
        return set(self.versions.values())

    @property
    def in_sync(self) -> bool:
        """All descriptors readable and carrying the same version."""
        return not self.missing and len(self.distinct_versions) <= 1

    @property
    def local_max(self) -> VersionTag | None:
        """Highest version found locally."""
        return max_version(self.versions.values())

    def divergent_targets(self) -> list[Target]:
        """Readable targets that are below the local maximum."""
        best = self.local_max
        if best is None:
            return []
        return [t for t, v in self.versions.items() if v != best]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "in_sync": self.in_sync,
            "local_max": str(self.local_max) if self.local_max else None,
            "targets": {t.value: o.to_dict() for t, o in self.observed.items()},
            "missing": [t.value for t in self.missing],
            "divergent": [t.value for t in self.divergent_targets()],
        }


class DriftChecker:
    """Reads every local descriptor and reports drift."""

    def __init__(self, descriptors: Sequence[VersionDescriptorPort]):
        self.descriptors = list(descriptors)
        self.logger = logging.getLogger("DriftChecker")

    def check(self) -> DriftReport:
        report = DriftReport()
        for descriptor in self.descriptors:
            observation = descriptor.observe()
            report.observed[descriptor.target] = observation
            if observation.is_known:
                self.logger.debug(f"{descriptor.name}: {observation.version}")
            else:
                self.logger.info(f"{descriptor.name}: unreadable ({observation.error})")

        if report.in_sync:
            self.logger.info(f"Descriptors in sync at {report.local_max}")
        else:
            self.logger.warning(
                f"Version drift detected: "
                + ", ".join(
                    f"{t.value}={o.version if o.version else 'unknown'}" for t, o in report.observed.items()
                )
            )
        return report

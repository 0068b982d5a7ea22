"""
Android descriptor - versionName / versionCode in the app Gradle script.

Kotlin DSL (``build.gradle.kts``) is the primary format:

    versionName = "1.2.3"
    versionCode = 42

Groovy DSL (``build.gradle``) is the legacy fallback:

    versionName "1.2.3"
    versionCode 42

Values taken from Flutter (``flutter.versionCode``) or from variables
(``"${versionName}"``) are not literals and are left alone.
"""

from __future__ import annotations

import re
from pathlib import Path

from versionsync.core.domain.enums import Target

from .base import DescriptorFile, FileScan, PlatformDescriptorAdapter, VersionField


KTS_VERSION_NAME = VersionField(
    key="versionName",
    pattern=re.compile(r'(?P<prefix>\bversionName\s*=\s*")(?P<value>[^"\n]*)(?P<suffix>")'),
)
KTS_VERSION_CODE = VersionField(
    key="versionCode",
    pattern=re.compile(r"(?P<prefix>\bversionCode\s*=\s*)(?P<value>[^\s;]+)(?P<suffix>)"),
    numeric=True,
)
GROOVY_VERSION_NAME = VersionField(
    key="versionName",
    pattern=re.compile(r'(?P<prefix>\bversionName\s*")(?P<value>[^"\n]*)(?P<suffix>")'),
)
GROOVY_VERSION_CODE = VersionField(
    key="versionCode",
    pattern=re.compile(r"(?P<prefix>\bversionCode[ \t]+)(?P<value>[^\s;]+)(?P<suffix>)"),
    numeric=True,
)


class AndroidDescriptorAdapter(PlatformDescriptorAdapter):
    """Reads and writes the version in ``android/app/build.gradle(.kts)``."""

    target = Target.ANDROID_DESCRIPTOR

    @property
    def name(self) -> str:
        return "Android"

    @property
    def kts_path(self) -> Path:
        return self.project_root / "android" / "app" / "build.gradle.kts"

    @property
    def groovy_path(self) -> Path:
        return self.project_root / "android" / "app" / "build.gradle"

    def files(self) -> list[DescriptorFile]:
        return [
            DescriptorFile(self.kts_path, KTS_VERSION_NAME, KTS_VERSION_CODE),
            DescriptorFile(self.groovy_path, GROOVY_VERSION_NAME, GROOVY_VERSION_CODE),
        ]

    def write_candidates(
        self, scans: list[tuple[DescriptorFile, FileScan]]
    ) -> list[tuple[DescriptorFile, FileScan]]:
        # Only one Gradle script is live; write the first with literal keys
        literal = super().write_candidates(scans)
        return literal[:1]

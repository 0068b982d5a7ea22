"""
iOS descriptor - Info.plist and the Xcode project file.

``ios/Runner/Info.plist``::

    <key>CFBundleShortVersionString</key>
    <string>1.2.3</string>
    <key>CFBundleVersion</key>
    <string>42</string>

``ios/Runner.xcodeproj/project.pbxproj`` (one entry per build configuration)::

    MARKETING_VERSION = 1.2.3;
    CURRENT_PROJECT_VERSION = 42;

Flutter templates put ``$(FLUTTER_BUILD_NAME)`` / ``$(FLUTTER_BUILD_NUMBER)``
in the plist. Such files are never rewritten.
"""

from __future__ import annotations

import re
from pathlib import Path

from versionsync.core.domain.enums import Target

from .base import DescriptorFile, PlatformDescriptorAdapter, VersionField


PLIST_SHORT_VERSION = VersionField(
    key="CFBundleShortVersionString",
    pattern=re.compile(
        r"(?P<prefix><key>CFBundleShortVersionString</key>\s*<string>)(?P<value>[^<]*)(?P<suffix></string>)"
    ),
)
PLIST_BUNDLE_VERSION = VersionField(
    key="CFBundleVersion",
    pattern=re.compile(r"(?P<prefix><key>CFBundleVersion</key>\s*<string>)(?P<value>[^<]*)(?P<suffix></string>)"),
    numeric=True,
)
PBX_MARKETING_VERSION = VersionField(
    key="MARKETING_VERSION",
    pattern=re.compile(r'(?P<prefix>\bMARKETING_VERSION\s*=\s*"?)(?P<value>[^";\n]*)(?P<suffix>"?;)'),
    replace_all=True,
)
PBX_PROJECT_VERSION = VersionField(
    key="CURRENT_PROJECT_VERSION",
    pattern=re.compile(r'(?P<prefix>\bCURRENT_PROJECT_VERSION\s*=\s*"?)(?P<value>[^";\n]*)(?P<suffix>"?;)'),
    numeric=True,
    replace_all=True,
)


class IOSDescriptorAdapter(PlatformDescriptorAdapter):
    """Reads and writes the version in the Runner plist and project file."""

    target = Target.IOS_DESCRIPTOR

    @property
    def name(self) -> str:
        return "iOS"

    @property
    def plist_path(self) -> Path:
        return self.project_root / "ios" / "Runner" / "Info.plist"

    @property
    def pbxproj_path(self) -> Path:
        return self.project_root / "ios" / "Runner.xcodeproj" / "project.pbxproj"

    def files(self) -> list[DescriptorFile]:
        return [
            DescriptorFile(self.plist_path, PLIST_SHORT_VERSION, PLIST_BUNDLE_VERSION),
            DescriptorFile(self.pbxproj_path, PBX_MARKETING_VERSION, PBX_PROJECT_VERSION),
        ]

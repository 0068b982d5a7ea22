"""
Shared pytest fixtures for the versionsync test suite.

Fixture Categories:
- Project: A Flutter project tree with manifest and native descriptors
- Keys: EC P-256 signing keys written as .p8 files
- Stores: Fake store providers with scripted answers
- CLI: Console instances
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path
from textwrap import dedent

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from versionsync.core.domain.enums import Confidence, VersionSource
from versionsync.core.domain.value_objects import VersionTag
from versionsync.core.exceptions import NotFoundError
from versionsync.core.ports.store_provider import StoreProviderPort


# =============================================================================
# Project Fixtures
# =============================================================================


PUBSPEC = dedent(
    """\
    name: my_app
    description: A Flutter application.
    publish_to: 'none'

    # Bumped by versionsync
    version: {version}

    environment:
      sdk: '>=3.0.0 <4.0.0'
    """
)

GRADLE_KTS = dedent(
    """\
    plugins {{
        id("com.android.application")
    }}

    android {{
        namespace = "com.example.my_app"
        defaultConfig {{
            applicationId = "com.example.my_app"
            minSdk = 21
            versionCode = {code}
            versionName = "{name}"
        }}
    }}
    """
)

GRADLE_GROOVY = dedent(
    """\
    android {{
        defaultConfig {{
            applicationId "com.example.my_app"
            versionCode {code}
            versionName "{name}"
        }}
    }}
    """
)

INFO_PLIST = dedent(
    """\
    <?xml version="1.0" encoding="UTF-8"?>
    <plist version="1.0">
    <dict>
    \t<key>CFBundleName</key>
    \t<string>my_app</string>
    \t<key>CFBundleShortVersionString</key>
    \t<string>{name}</string>
    \t<key>CFBundleVersion</key>
    \t<string>{code}</string>
    </dict>
    </plist>
    """
)

PBXPROJ = dedent(
    """\
    // !$*UTF8*$!
    {{
    \t\t97C147061CF9000F007C117D /* Debug */ = {{
    \t\t\tbuildSettings = {{
    \t\t\t\tCURRENT_PROJECT_VERSION = {code};
    \t\t\t\tMARKETING_VERSION = {name};
    \t\t\t}};
    \t\t}};
    \t\t97C147071CF9000F007C117D /* Release */ = {{
    \t\t\tbuildSettings = {{
    \t\t\t\tCURRENT_PROJECT_VERSION = {code};
    \t\t\t\tMARKETING_VERSION = {name};
    \t\t\t}};
    \t\t}};
    }}
    """
)


class FlutterProject:
    """Builder for a throwaway Flutter project tree."""

    def __init__(self, root: Path):
        self.root = root

    @property
    def pubspec(self) -> Path:
        return self.root / "pubspec.yaml"

    @property
    def gradle_kts(self) -> Path:
        return self.root / "android" / "app" / "build.gradle.kts"

    @property
    def gradle_groovy(self) -> Path:
        return self.root / "android" / "app" / "build.gradle"

    @property
    def plist(self) -> Path:
        return self.root / "ios" / "Runner" / "Info.plist"

    @property
    def pbxproj(self) -> Path:
        return self.root / "ios" / "Runner.xcodeproj" / "project.pbxproj"

    def _write(self, path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))
        return path

    def write_pubspec(self, version: str = "1.0.0+1") -> Path:
        return self._write(self.pubspec, PUBSPEC.format(version=version))

    def write_gradle_kts(self, name: str = "1.0.0", code: str = "1") -> Path:
        return self._write(self.gradle_kts, GRADLE_KTS.format(name=name, code=code))

    def write_gradle_groovy(self, name: str = "1.0.0", code: str = "1") -> Path:
        return self._write(self.gradle_groovy, GRADLE_GROOVY.format(name=name, code=code))

    def write_plist(self, name: str = "1.0.0", code: str = "1") -> Path:
        return self._write(self.plist, INFO_PLIST.format(name=name, code=code))

    def write_pbxproj(self, name: str = "1.0.0", code: str = "1") -> Path:
        return self._write(self.pbxproj, PBXPROJ.format(name=name, code=code))

    def write_all(self, version: str = "1.0.0+1") -> FlutterProject:
        tag = VersionTag.parse(version)
        self.write_pubspec(tag.format())
        self.write_gradle_kts(tag.name, str(tag.build))
        self.write_plist(tag.name, str(tag.build))
        self.write_pbxproj(tag.name, str(tag.build))
        return self

    def snapshot(self) -> dict[Path, bytes]:
        """Raw bytes of every file in the tree."""
        return {p: p.read_bytes() for p in sorted(self.root.rglob("*")) if p.is_file()}


@pytest.fixture
def project(tmp_path: Path) -> FlutterProject:
    """An empty project tree; tests write the files they need."""
    return FlutterProject(tmp_path / "my_app")


@pytest.fixture
def synced_project(project: FlutterProject) -> FlutterProject:
    """Every descriptor at 1.0.0+1."""
    return project.write_all("1.0.0+1")


# =============================================================================
# Signing Key Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def ec_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def p8_key_file(tmp_path: Path, ec_private_key: ec.EllipticCurvePrivateKey) -> Path:
    """A PKCS#8 PEM key file like the ones App Store Connect issues."""
    path = tmp_path / "AuthKey_ABC123DEFG.p8"
    path.write_bytes(
        ec_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path


# =============================================================================
# Store Fixtures
# =============================================================================


class FakeStore(StoreProviderPort):
    """
    Scripted store provider.

    ``answer`` may be a version string, a VersionTag, an exception to raise
    or a callable invoked on each lookup.
    """

    def __init__(
        self,
        source: VersionSource,
        answer: str | VersionTag | BaseException | Callable[[], VersionTag] | None = None,
        confidence: Confidence = Confidence.HIGH,
        timeout: float = 5.0,
        configured: bool = True,
    ):
        self.source = source
        self.configured = configured
        self.answer = answer
        self.confidence = confidence
        self.timeout = timeout
        self.calls = 0
        self.cancelled = threading.Event()
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return f"Fake {self.source.display_name}"

    @property
    def is_configured(self) -> bool:
        return self.configured

    def cancel(self) -> None:
        self.cancelled.set()

    def fetch_latest_version(self) -> VersionTag:
        with self._lock:
            self.calls += 1
        answer = self.answer
        if answer is None:
            raise NotFoundError("nothing published", store=self.name)
        if isinstance(answer, BaseException):
            raise answer
        if callable(answer):
            return answer()
        if isinstance(answer, VersionTag):
            return answer
        return VersionTag.parse(answer)


@pytest.fixture
def fake_store() -> Callable[..., FakeStore]:
    """Factory for scripted store providers."""
    return FakeStore

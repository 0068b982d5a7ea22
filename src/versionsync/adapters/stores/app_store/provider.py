"""
App Store Provider - Highest published version from App Store Connect.

Implements the StoreProviderPort on top of AppStoreConnectClient.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from versionsync.core.domain.enums import Confidence, VersionSource
from versionsync.core.domain.value_objects import VersionTag, max_version
from versionsync.core.exceptions import MissingConfigError, NotFoundError, ParseError
from versionsync.core.ports.config_provider import AppStoreConfig
from versionsync.core.ports.store_provider import StoreProviderPort

from .client import STORE_NAME, AppStoreConnectClient
from .token import TokenSigner


ClientFactory = Callable[[TokenSigner], AppStoreConnectClient]


class AppStoreProvider(StoreProviderPort):
    """
    Looks up the highest build uploaded to App Store Connect.

    Every returned build counts, whatever its processing or review state:
    an uploaded build number is taken even if the build never ships.
    """

    source = VersionSource.STORE_A
    confidence = Confidence.HIGH

    def __init__(
        self,
        config: AppStoreConfig,
        project_root: Path,
        client_factory: ClientFactory | None = None,
    ):
        """
        Initialize the provider.

        Args:
            config: App Store Connect credentials and settings
            project_root: Root used to resolve a relative key path
            client_factory: Builds the API client from a signer (for tests)
        """
        self.config = config
        self.project_root = Path(project_root)
        self.timeout = config.timeout
        self._client_factory = client_factory or self._default_client
        self._cancelled = threading.Event()
        self.logger = logging.getLogger("AppStoreProvider")

    @property
    def name(self) -> str:
        return STORE_NAME

    @property
    def is_configured(self) -> bool:
        return self.config.is_valid()

    @property
    def key_path(self) -> Path:
        return self.config.resolve_key_path(self.project_root)

    def signer(self) -> TokenSigner:
        return TokenSigner(
            key_id=self.config.key_id,
            issuer_id=self.config.issuer_id,
            key_path=self.key_path,
            lifetime=self.config.token_lifetime,
        )

    def cancel(self) -> None:
        self._cancelled.set()

    def _default_client(self, signer: TokenSigner) -> AppStoreConnectClient:
        return AppStoreConnectClient(
            signer,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            deadline=time.monotonic() + self.timeout,
            cancel_event=self._cancelled,
        )

    def fetch_latest_version(self) -> VersionTag:
        if not self.config.key_id:
            raise MissingConfigError("KEY_ID", "App Store Connect key id not configured (KEY_ID)")
        if not self.config.issuer_id:
            raise MissingConfigError("ISSUER_ID", "App Store Connect issuer id not configured (ISSUER_ID)")
        if not self.config.bundle_id:
            raise MissingConfigError("BUNDLE_ID", "iOS bundle id not configured (BUNDLE_ID)")

        self._cancelled.clear()
        signer = self.signer()
        # Fail before any network traffic when the key is unusable
        signer.load_key()

        with self._client_factory(signer) as client:
            app_id = client.find_app_id(self.config.bundle_id)
            builds = client.list_builds(app_id, limit=self.config.build_limit)

        best = select_highest_build(builds, self.logger)
        if best is None:
            raise NotFoundError(
                f"No builds with a parseable version for {self.config.bundle_id}", store=STORE_NAME
            )
        return best


def select_highest_build(builds: list[dict[str, Any]], logger: logging.Logger | None = None) -> VersionTag | None:
    """Pick the maximum ``(version, buildNumber)`` among API build records."""
    logger = logger or logging.getLogger("AppStoreProvider")
    candidates: list[VersionTag] = []

    for build in builds:
        attributes = build.get("attributes") or {}
        version = attributes.get("version")
        build_number = attributes.get("buildNumber")
        state = attributes.get("processingState", "UNKNOWN")

        if not version:
            continue
        try:
            if build_number is None:
                tag = VersionTag.parse(str(version))
            else:
                tag = VersionTag.from_parts(str(version), build_number)
        except ParseError as e:
            logger.debug(f"Ignoring build {version}+{build_number}: {e}")
            continue

        logger.debug(f"Build {tag} ({state})")
        candidates.append(tag)

    return max_version(candidates)

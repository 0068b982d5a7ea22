"""
Store Provider Port - Abstract interface for remote distribution stores.

Implementations:
- AppStoreProvider: App Store Connect (signed API, high confidence)
- PlayStoreProvider: Google Play public listing (scrape, low confidence)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from versionsync.core.domain.entities import ObservedVersion
from versionsync.core.domain.enums import Confidence, VersionSource
from versionsync.core.domain.value_objects import VersionTag
from versionsync.core.exceptions import NotFoundError


class StoreProviderPort(ABC):
    """
    Abstract interface for a store that reports the highest published version.

    ``fetch_latest_version`` may raise; ``lookup`` never does. Callers that
    must not abort on store trouble (the reconciliation engine) use ``lookup``.
    """

    source: VersionSource
    confidence: Confidence = Confidence.HIGH
    timeout: float = 30.0

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable store name."""
        ...

    @abstractmethod
    def fetch_latest_version(self) -> VersionTag:
        """
        Return the highest published version.

        Raises:
            StoreError: On any remote failure, including "nothing found".
            ConfigError: If the provider is not configured.
            SigningKeyError: If request signing is impossible.
        """
        ...

    @property
    def is_configured(self) -> bool:
        """Whether the credentials and identifiers a lookup needs are present."""
        return True

    def cancel(self) -> None:
        """
        Ask an in-flight lookup to stop at its next checkpoint.

        Called when the caller stops waiting (timeout or interrupt). Providers
        whose lookup is a single bounded request may ignore it.
        """

    def lookup(self) -> ObservedVersion:
        """Fetch the latest version, reporting failures as an unknown observation."""
        logger = logging.getLogger("StoreProvider")
        try:
            version = self.fetch_latest_version()
        except NotFoundError as e:
            logger.info(f"{self.name}: no published version ({e})")
            return ObservedVersion.unknown(self.source, error=e, confidence=self.confidence)
        except Exception as e:
            logger.warning(f"{self.name}: lookup failed: {e}")
            return ObservedVersion.unknown(self.source, error=e, confidence=self.confidence)

        logger.debug(f"{self.name}: latest version {version}")
        return ObservedVersion.known(self.source, version, confidence=self.confidence)

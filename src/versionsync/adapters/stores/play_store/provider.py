"""
Play Store Provider - Best-effort version lookup from the public Google Play listing.

There is no unauthenticated API for published versions, so the listing
page is fetched and scanned for a version-shaped literal. Results are
reported with LOW confidence.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Any

import requests

from versionsync.core.domain.enums import Confidence, VersionSource
from versionsync.core.domain.value_objects import VersionTag
from versionsync.core.exceptions import (
    MissingConfigError,
    NetworkError,
    NotFoundError,
    ProviderTimeoutError,
    StoreError,
)
from versionsync.core.ports.config_provider import PlayStoreConfig
from versionsync.core.ports.store_provider import StoreProviderPort


STORE_NAME = "Google Play"

_SEMVER = r"(\d+\.\d+\.\d+)"

# Priority order; first match wins. A bare "Version" label also matches
# browser and SDK versions, so it comes after the structured-data field.
VERSION_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("current-version", re.compile(r"Current Version[:\s]*" + _SEMVER, re.IGNORECASE)),
    ("structured-data", re.compile(r'"softwareVersion"\s*:\s*"' + _SEMVER + '"')),
    ("labelled-version", re.compile(r"\bVersion[:\s]*" + _SEMVER, re.IGNORECASE)),
    ("version-field", re.compile(r'"version"\s*:\s*"' + _SEMVER + '"')),
    ("quoted-literal", re.compile(r'"' + _SEMVER + '"')),
    ("generic", re.compile(r"\b" + _SEMVER + r"\b")),
]

_SCRIPT = re.compile(r"<script\b[^>]*>(.*?)</script>", re.IGNORECASE | re.DOTALL)
_STYLE = re.compile(r"<style\b[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]+>")


def extract_version(page: str) -> tuple[str, str] | None:
    """
    Scan a listing page for a version literal.

    Patterns are tried in priority order; for each pattern the visible
    text is searched before embedded scripts.

    Returns:
        ``(version, pattern_name)`` or None if nothing matched
    """
    scripts = _SCRIPT.findall(page)
    text = html.unescape(_TAG.sub(" ", _STYLE.sub(" ", _SCRIPT.sub(" ", page))))

    for pattern_name, pattern in VERSION_PATTERNS:
        for haystack in [text, *scripts]:
            match = pattern.search(haystack)
            if match:
                return match.group(1), pattern_name
    return None


class PlayStoreProvider(StoreProviderPort):
    """
    Scrapes the Google Play listing for the current version.

    The listing carries no build number, so the build defaults to 1.
    """

    source = VersionSource.STORE_B
    confidence = Confidence.LOW

    def __init__(self, config: PlayStoreConfig, session: requests.Session | None = None):
        self.config = config
        self.timeout = config.timeout
        self._session = session
        self.logger = logging.getLogger("PlayStoreProvider")

    @property
    def name(self) -> str:
        return STORE_NAME

    @property
    def is_configured(self) -> bool:
        return self.config.is_valid()

    @property
    def headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.config.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": f"{self.config.language}-US,{self.config.language};q=0.5",
        }

    def listing_url(self) -> str:
        return self.config.base_url

    def params(self) -> dict[str, Any]:
        return {"id": self.config.package_name, "hl": self.config.language}

    def fetch_page(self) -> str:
        """
        Download the listing page.

        Raises:
            NetworkError: On connection failures and timeouts
            NotFoundError: On 404 (the app is not published)
            StoreError: On any other non-200 response
        """
        session = self._session or requests.Session()
        try:
            response = session.get(
                self.listing_url(),
                params=self.params(),
                headers=self.headers,
                timeout=self.config.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise ProviderTimeoutError(f"Request timed out: {e}", store=STORE_NAME, cause=e)
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Connection failed: {e}", store=STORE_NAME, cause=e)
        finally:
            if self._session is None:
                session.close()

        if response.status_code == 404:
            raise NotFoundError(
                f"{self.config.package_name} is not listed on {STORE_NAME}", store=STORE_NAME
            )
        if response.status_code != 200:
            raise StoreError(f"{STORE_NAME} returned HTTP {response.status_code}", store=STORE_NAME)
        return response.text

    def fetch_latest_version(self) -> VersionTag:
        if not self.config.package_name:
            raise MissingConfigError("PACKAGE_NAME", "Android package name not configured (PACKAGE_NAME)")

        page = self.fetch_page()
        found = extract_version(page)
        if found is None:
            raise NotFoundError(f"No version found on the {STORE_NAME} listing", store=STORE_NAME)

        version, pattern_name = found
        self.logger.debug(f"Matched {version} via {pattern_name} pattern")
        return VersionTag.parse(version)

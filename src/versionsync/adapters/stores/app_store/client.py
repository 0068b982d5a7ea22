"""
App Store Connect API Client - Low-level HTTP client for the signed API.

This handles the raw HTTP communication with App Store Connect.
The AppStoreProvider uses this to implement the StoreProviderPort.

App Store Connect API documentation:
https://developer.apple.com/documentation/appstoreconnectapi
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from versionsync.adapters.stores.http import (
    RETRYABLE_STATUS_CODES,
    calculate_delay,
    get_retry_after,
)
from versionsync.core.exceptions import (
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ProviderTimeoutError,
    RateLimitError,
    StoreError,
    TransientError,
)

from .token import TokenSigner


STORE_NAME = "App Store Connect"


class AppStoreConnectClient:
    """
    Low-level App Store Connect REST API client.

    Handles authentication, request/response, retries, and error handling.

    Features:
    - ES256 bearer token, regenerated for every request
    - Automatic retry with exponential backoff for transient failures
    - Connection pooling for performance
    - Optional overall deadline and cancel flag that bound the whole retry loop
    """

    BASE_URL = "https://api.appstoreconnect.apple.com/v1"

    # Default retry configuration
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_INITIAL_DELAY = 1.0
    DEFAULT_MAX_DELAY = 30.0
    DEFAULT_BACKOFF_FACTOR = 2.0
    DEFAULT_JITTER = 0.1

    # Connection pool settings
    DEFAULT_POOL_CONNECTIONS = 2
    DEFAULT_POOL_MAXSIZE = 2
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        signer: TokenSigner,
        base_url: str = BASE_URL,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        jitter: float = DEFAULT_JITTER,
        timeout: float = DEFAULT_TIMEOUT,
        deadline: float | None = None,
        cancel_event: threading.Event | None = None,
    ):
        """
        Initialize the App Store Connect client.

        Args:
            signer: Token signer used to authenticate every request
            base_url: API root (e.g., https://api.appstoreconnect.apple.com/v1)
            max_retries: Maximum retry attempts for transient failures
            initial_delay: Initial retry delay in seconds
            max_delay: Maximum retry delay in seconds
            backoff_factor: Multiplier for exponential backoff
            jitter: Random jitter factor (0.1 = 10%)
            timeout: Request timeout in seconds
            deadline: ``time.monotonic()`` value after which no attempt starts
                and no retry is scheduled
            cancel_event: Set by the caller to stop retrying at the next checkpoint
        """
        self.signer = signer
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.deadline = deadline
        self.cancel_event = cancel_event
        self.logger = logging.getLogger("AppStoreConnectClient")

        # Retry configuration
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter

        # Configure session with connection pooling
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

        adapter = HTTPAdapter(
            pool_connections=self.DEFAULT_POOL_CONNECTIONS,
            pool_maxsize=self.DEFAULT_POOL_MAXSIZE,
        )
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    # -------------------------------------------------------------------------
    # Core Request Methods
    # -------------------------------------------------------------------------

    def request(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        """
        Make a signed request to the API with retry.

        Args:
            method: HTTP method
            endpoint: API endpoint relative to the base URL (e.g., 'apps')
            **kwargs: Additional arguments for requests

        Returns:
            JSON response

        Raises:
            SigningKeyError: If a token cannot be signed
            ProviderTimeoutError: When the deadline passes or the caller cancels
            StoreError: On API errors
        """
        url = endpoint if endpoint.startswith("http") else f"{self.base_url}/{endpoint.lstrip('/')}"
        request_timeout = kwargs.pop("timeout", self.timeout)
        extra_headers = dict(kwargs.pop("headers", None) or {})

        last_exception: Exception | None = None

        for attempt in range(self.max_retries + 1):
            kwargs["timeout"] = self._attempt_timeout(request_timeout, endpoint)
            headers = dict(extra_headers)
            headers["Authorization"] = f"Bearer {self.signer.generate()}"

            try:
                response = self._session.request(method, url, headers=headers, **kwargs)

                if response.status_code in RETRYABLE_STATUS_CODES:
                    retry_after = get_retry_after(response)
                    delay = self._calculate_delay(attempt, retry_after=retry_after)

                    if attempt < self.max_retries:
                        self.logger.warning(
                            f"Retryable error {response.status_code} on {method} {endpoint}, "
                            f"attempt {attempt + 1}/{self.max_retries + 1}, "
                            f"retrying in {delay:.2f}s"
                        )
                        self._backoff(delay, endpoint)
                        continue

                    if response.status_code == 429:
                        raise RateLimitError(
                            f"{STORE_NAME} rate limit exceeded for {endpoint}",
                            store=STORE_NAME,
                            retry_after=retry_after,
                        )
                    raise TransientError(
                        f"{STORE_NAME} server error {response.status_code} for {endpoint}",
                        store=STORE_NAME,
                    )

                return self._handle_response(response, endpoint)

            except requests.exceptions.ConnectionError as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self._calculate_delay(attempt)
                    self.logger.warning(f"Connection error on {method} {endpoint}, retrying in {delay:.2f}s")
                    self._backoff(delay, endpoint)
                    continue
                raise NetworkError(f"Connection failed: {e}", store=STORE_NAME, cause=e)

            except requests.exceptions.Timeout as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self._calculate_delay(attempt)
                    self.logger.warning(f"Timeout on {method} {endpoint}, retrying in {delay:.2f}s")
                    self._backoff(delay, endpoint)
                    continue
                raise ProviderTimeoutError(f"Request timed out: {e}", store=STORE_NAME, cause=e)

        raise StoreError(
            f"Request failed after {self.max_retries + 1} attempts",
            store=STORE_NAME,
            cause=last_exception,
        )

    def get(self, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        """Perform a GET request."""
        return self.request("GET", endpoint, **kwargs)

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when unbounded."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _attempt_timeout(self, request_timeout: float, endpoint: str) -> float:
        """Per-attempt socket timeout, capped at the time left."""
        if self.cancelled:
            raise ProviderTimeoutError(f"Lookup of {endpoint} cancelled", store=STORE_NAME)
        remaining = self.remaining()
        if remaining is None:
            return request_timeout
        if remaining <= 0:
            raise ProviderTimeoutError(f"Deadline passed before requesting {endpoint}", store=STORE_NAME)
        return min(request_timeout, remaining)

    def _backoff(self, delay: float, endpoint: str) -> None:
        """Sleep before a retry unless the deadline or a cancel comes first."""
        remaining = self.remaining()
        if remaining is not None and delay >= remaining:
            raise ProviderTimeoutError(
                f"No time left to retry {endpoint} ({remaining:.1f}s remaining)", store=STORE_NAME
            )
        if self.cancel_event is None:
            time.sleep(delay)
        elif self.cancel_event.wait(delay):
            raise ProviderTimeoutError(f"Lookup of {endpoint} cancelled", store=STORE_NAME)

    def _calculate_delay(self, attempt: int, retry_after: float | None = None) -> float:
        return calculate_delay(
            attempt,
            initial_delay=self.initial_delay,
            max_delay=self.max_delay,
            backoff_factor=self.backoff_factor,
            jitter=self.jitter,
            retry_after=retry_after,
        )

    # -------------------------------------------------------------------------
    # Response Handling
    # -------------------------------------------------------------------------

    def _handle_response(self, response: requests.Response, endpoint: str) -> dict[str, Any]:
        """Handle API response and convert errors to typed exceptions."""
        if response.ok:
            if not response.text:
                return {}
            try:
                data = response.json()
            except ValueError as e:
                raise StoreError(f"Malformed JSON from {endpoint}", store=STORE_NAME, cause=e)
            return data if isinstance(data, dict) else {}

        status = response.status_code
        error_body = response.text[:500] if response.text else ""

        if status == 401:
            raise AuthenticationError(
                f"{STORE_NAME} authentication failed. Check KEY_ID, ISSUER_ID and the signing key.",
                store=STORE_NAME,
            )

        if status == 403:
            raise AuthenticationError(
                f"Permission denied for {endpoint}. Check the API key role.", store=STORE_NAME
            )

        if status == 404:
            raise NotFoundError(f"Not found: {endpoint}", store=STORE_NAME)

        raise StoreError(f"{STORE_NAME} API error {status}: {error_body}", store=STORE_NAME)

    # -------------------------------------------------------------------------
    # Apps and Builds API
    # -------------------------------------------------------------------------

    def find_app_id(self, bundle_id: str) -> str:
        """
        Resolve the App Store Connect app id for a bundle id.

        Raises:
            NotFoundError: If no app, or more than one, matches.
        """
        result = self.get("apps", params={"filter[bundleId]": bundle_id})
        apps = result.get("data") or []

        if not apps:
            raise NotFoundError(f"No app found for bundle id {bundle_id}", store=STORE_NAME)
        if len(apps) > 1:
            raise NotFoundError(
                f"Ambiguous bundle id {bundle_id}: {len(apps)} apps match", store=STORE_NAME
            )

        app = apps[0]
        name = (app.get("attributes") or {}).get("name", "")
        self.logger.debug(f"Bundle {bundle_id} resolved to app {app.get('id')} ({name})")
        return str(app["id"])

    def list_builds(self, app_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """List the app's most recent builds, highest version first."""
        result = self.get(f"apps/{app_id}/builds", params={"limit": limit, "sort": "-version"})
        return list(result.get("data") or [])

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying session."""
        self._session.close()

    def __enter__(self) -> AppStoreConnectClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

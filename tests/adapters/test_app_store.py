"""
Tests for the App Store Connect client and provider.
"""

import threading
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from versionsync.adapters.stores.app_store.client import AppStoreConnectClient
from versionsync.adapters.stores.app_store.provider import AppStoreProvider, select_highest_build
from versionsync.core.domain import Confidence, VersionSource, VersionTag
from versionsync.core.exceptions import (
    AuthenticationError,
    MissingConfigError,
    NetworkError,
    NotFoundError,
    ProviderTimeoutError,
    RateLimitError,
    SigningKeyError,
    StoreError,
    TransientError,
)
from versionsync.core.ports.config_provider import AppStoreConfig


def make_response(status_code=200, json_data=None, text=None, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.headers = headers or {}
    response.json.return_value = json_data if json_data is not None else {}
    response.text = text if text is not None else ("{}" if json_data is None else "data")
    return response


def build(version, build_number, state="VALID"):
    return {
        "type": "builds",
        "id": f"build-{version}-{build_number}",
        "attributes": {"version": version, "buildNumber": build_number, "processingState": state},
    }


# =============================================================================
# API Client Tests
# =============================================================================


class TestAppStoreConnectClient:
    """Tests for AppStoreConnectClient."""

    @pytest.fixture
    def mock_session(self):
        """Create a mock session for testing."""
        with patch("versionsync.adapters.stores.app_store.client.requests.Session") as mock:
            session = MagicMock()
            mock.return_value = session
            yield session

    @pytest.fixture(autouse=True)
    def no_sleep(self):
        with patch("versionsync.adapters.stores.app_store.client.time.sleep") as mock:
            yield mock

    @pytest.fixture
    def signer(self):
        signer = MagicMock()
        signer.generate.side_effect = [f"token-{i}" for i in range(10)]
        return signer

    @pytest.fixture
    def client(self, mock_session, signer):
        return AppStoreConnectClient(signer, base_url="https://asc.test/v1", max_retries=2)

    def test_bearer_token_per_request(self, client, mock_session):
        mock_session.request.return_value = make_response(json_data={"data": []})

        client.get("apps")
        client.get("apps")

        first = mock_session.request.call_args_list[0]
        second = mock_session.request.call_args_list[1]
        assert first.kwargs["headers"]["Authorization"] == "Bearer token-0"
        assert second.kwargs["headers"]["Authorization"] == "Bearer token-1"
        assert first.args == ("GET", "https://asc.test/v1/apps")

    def test_find_app_id(self, client, mock_session):
        mock_session.request.return_value = make_response(
            json_data={"data": [{"id": "1234567890", "attributes": {"name": "My App"}}]}
        )

        assert client.find_app_id("com.example.my_app") == "1234567890"
        params = mock_session.request.call_args.kwargs["params"]
        assert params == {"filter[bundleId]": "com.example.my_app"}

    def test_find_app_id_no_match(self, client, mock_session):
        mock_session.request.return_value = make_response(json_data={"data": []})
        with pytest.raises(NotFoundError):
            client.find_app_id("com.example.none")

    def test_find_app_id_ambiguous(self, client, mock_session):
        mock_session.request.return_value = make_response(json_data={"data": [{"id": "1"}, {"id": "2"}]})
        with pytest.raises(NotFoundError, match="Ambiguous"):
            client.find_app_id("com.example.my_app")

    def test_list_builds_params(self, client, mock_session):
        mock_session.request.return_value = make_response(json_data={"data": [build("1.0.0", "3")]})

        builds = client.list_builds("1234567890", limit=10)

        assert len(builds) == 1
        args = mock_session.request.call_args
        assert args.args[1] == "https://asc.test/v1/apps/1234567890/builds"
        assert args.kwargs["params"] == {"limit": 10, "sort": "-version"}

    def test_timeout_passed(self, client, mock_session):
        mock_session.request.return_value = make_response(json_data={"data": []})
        client.get("apps")
        assert mock_session.request.call_args.kwargs["timeout"] == 30.0

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_errors(self, client, mock_session, status):
        mock_session.request.return_value = make_response(status, text="denied")
        with pytest.raises(AuthenticationError):
            client.get("apps")

    def test_not_found(self, client, mock_session):
        mock_session.request.return_value = make_response(404, text="missing")
        with pytest.raises(NotFoundError):
            client.get("apps/1")

    def test_other_error(self, client, mock_session):
        mock_session.request.return_value = make_response(418, text="teapot")
        with pytest.raises(StoreError, match="418"):
            client.get("apps")

    def test_malformed_json(self, client, mock_session):
        response = make_response(200, text="<html>")
        response.json.side_effect = ValueError("not json")
        mock_session.request.return_value = response
        with pytest.raises(StoreError, match="Malformed"):
            client.get("apps")

    def test_retries_server_errors_then_succeeds(self, client, mock_session, no_sleep):
        mock_session.request.side_effect = [
            make_response(503, text="busy"),
            make_response(200, json_data={"data": []}),
        ]

        assert client.get("apps") == {"data": []}
        assert mock_session.request.call_count == 2
        assert no_sleep.call_count == 1

    def test_rate_limit_exhausted(self, client, mock_session):
        mock_session.request.return_value = make_response(429, text="slow", headers={"Retry-After": "2"})

        with pytest.raises(RateLimitError) as exc_info:
            client.get("apps")

        assert exc_info.value.retry_after == 2.0
        assert mock_session.request.call_count == 3

    def test_server_error_exhausted(self, client, mock_session):
        mock_session.request.return_value = make_response(500, text="oops")
        with pytest.raises(TransientError):
            client.get("apps")

    def test_connection_error(self, client, mock_session):
        mock_session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(NetworkError, match="Connection failed"):
            client.get("apps")
        assert mock_session.request.call_count == 3

    def test_timeout_error(self, client, mock_session):
        mock_session.request.side_effect = requests.exceptions.Timeout("slow")
        with pytest.raises(ProviderTimeoutError):
            client.get("apps")

    def test_extra_headers_kept_on_retry(self, client, mock_session):
        mock_session.request.side_effect = [
            make_response(502, text="bad gateway"),
            make_response(200, json_data={}),
        ]

        client.get("apps", headers={"X-Trace": "abc"})

        for call in mock_session.request.call_args_list:
            assert call.kwargs["headers"]["X-Trace"] == "abc"

    def test_attempt_timeout_capped_by_deadline(self, mock_session, signer):
        mock_session.request.return_value = make_response(json_data={"data": []})
        client = AppStoreConnectClient(signer, timeout=30.0, deadline=time.monotonic() + 2.0)

        client.get("apps")

        assert 0 < mock_session.request.call_args.kwargs["timeout"] <= 2.0

    def test_expired_deadline_sends_nothing(self, mock_session, signer):
        client = AppStoreConnectClient(signer, deadline=time.monotonic() - 1.0)

        with pytest.raises(ProviderTimeoutError, match="Deadline"):
            client.get("apps")

        mock_session.request.assert_not_called()

    def test_no_retry_past_deadline(self, mock_session, signer, no_sleep):
        mock_session.request.side_effect = requests.exceptions.Timeout("slow")
        client = AppStoreConnectClient(signer, initial_delay=5.0, jitter=0, deadline=time.monotonic() + 2.0)

        with pytest.raises(ProviderTimeoutError, match="No time left"):
            client.get("apps")

        assert mock_session.request.call_count == 1
        no_sleep.assert_not_called()

    def test_cancel_stops_retry_loop(self, mock_session, signer):
        cancel = threading.Event()

        def timed_out(*args, **kwargs):
            cancel.set()
            raise requests.exceptions.Timeout("slow")

        mock_session.request.side_effect = timed_out
        client = AppStoreConnectClient(signer, max_retries=3, cancel_event=cancel)

        with pytest.raises(ProviderTimeoutError, match="cancelled"):
            client.get("apps")

        assert mock_session.request.call_count == 1

    def test_context_manager_closes_session(self, mock_session, signer):
        with AppStoreConnectClient(signer):
            pass
        mock_session.close.assert_called_once()


# =============================================================================
# Build Selection Tests
# =============================================================================


class TestSelectHighestBuild:
    """Tests for select_highest_build."""

    def test_highest_by_version_then_build(self):
        builds = [build("1.0.0", "9"), build("1.0.1", "2"), build("1.0.1", "10"), build("0.9.0", "50")]
        assert select_highest_build(builds) == VersionTag(1, 0, 1, 10)

    def test_processing_state_does_not_exclude(self):
        builds = [build("1.0.0", "3", "VALID"), build("1.0.0", "4", "PROCESSING")]
        assert select_highest_build(builds) == VersionTag(1, 0, 0, 4)

    def test_unparseable_builds_ignored(self):
        builds = [build("1.0", "3"), build("1.0.0", "x"), build("1.0.0", "2")]
        assert select_highest_build(builds) == VersionTag(1, 0, 0, 2)

    def test_missing_build_number(self):
        builds = [{"attributes": {"version": "2.0.0"}}]
        assert select_highest_build(builds) == VersionTag(2, 0, 0, 1)

    def test_empty(self):
        assert select_highest_build([]) is None


# =============================================================================
# Provider Tests
# =============================================================================


class TestAppStoreProvider:
    """Tests for AppStoreProvider."""

    @pytest.fixture
    def config(self, p8_key_file):
        return AppStoreConfig(
            key_id="ABC123DEFG",
            issuer_id="69a6de70-0000-0000-0000-000000000000",
            bundle_id="com.example.my_app",
            key_path=str(p8_key_file),
        )

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.__enter__.return_value = client
        client.find_app_id.return_value = "1234567890"
        client.list_builds.return_value = [build("1.0.0", "7"), build("1.0.0", "5")]
        return client

    def test_fetch_latest_version(self, config, client, tmp_path):
        provider = AppStoreProvider(config, tmp_path, client_factory=lambda signer: client)

        assert provider.fetch_latest_version() == VersionTag(1, 0, 0, 7)
        client.find_app_id.assert_called_once_with("com.example.my_app")
        client.list_builds.assert_called_once_with("1234567890", limit=10)
        client.close.assert_not_called()
        client.__exit__.assert_called_once()

    def test_lookup_known(self, config, client, tmp_path):
        provider = AppStoreProvider(config, tmp_path, client_factory=lambda signer: client)
        observed = provider.lookup()
        assert observed.source is VersionSource.STORE_A
        assert observed.version == VersionTag(1, 0, 0, 7)
        assert observed.confidence is Confidence.HIGH

    def test_no_parseable_builds(self, config, client, tmp_path):
        client.list_builds.return_value = [build("beta", "1")]
        provider = AppStoreProvider(config, tmp_path, client_factory=lambda signer: client)
        with pytest.raises(NotFoundError):
            provider.fetch_latest_version()

    @pytest.mark.parametrize("field", ["key_id", "issuer_id", "bundle_id"])
    def test_missing_credentials(self, config, tmp_path, field):
        setattr(config, field, "")
        factory = MagicMock()
        provider = AppStoreProvider(config, tmp_path, client_factory=factory)

        with pytest.raises(MissingConfigError):
            provider.fetch_latest_version()

        factory.assert_not_called()
        observed = provider.lookup()
        assert not observed.is_known
        assert isinstance(observed.error, MissingConfigError)

    def test_unreadable_key_fails_before_network(self, config, tmp_path):
        config.key_path = str(tmp_path / "missing.p8")
        factory = MagicMock()
        provider = AppStoreProvider(config, tmp_path, client_factory=factory)

        observed = provider.lookup()

        assert isinstance(observed.error, SigningKeyError)
        factory.assert_not_called()

    def test_store_error_becomes_unknown(self, config, client, tmp_path):
        client.find_app_id.side_effect = AuthenticationError("denied", store="App Store Connect")
        provider = AppStoreProvider(config, tmp_path, client_factory=lambda signer: client)

        observed = provider.lookup()

        assert not observed.is_known
        assert isinstance(observed.error, AuthenticationError)

    def test_default_client_bounded_by_provider_timeout(self, config, tmp_path):
        config.timeout = 5.0
        provider = AppStoreProvider(config, tmp_path)

        before = time.monotonic()
        client = provider._default_client(provider.signer())

        assert before + 4.0 < client.deadline <= time.monotonic() + 5.0
        assert client.cancel_event is not None
        provider.cancel()
        assert client.cancelled
        client.close()

    def test_is_configured(self, config, tmp_path):
        assert AppStoreProvider(config, tmp_path).is_configured
        config.issuer_id = ""
        assert not AppStoreProvider(config, tmp_path).is_configured

    def test_relative_key_path_resolved_from_project(self, tmp_path):
        config = AppStoreConfig(key_id="ABC123DEFG", issuer_id="i", bundle_id="b")
        provider = AppStoreProvider(config, tmp_path)
        assert provider.key_path == tmp_path / "ios" / "private_keys" / "AuthKey_ABC123DEFG.p8"

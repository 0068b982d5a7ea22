"""
Tests for the configuration providers.
"""

from pathlib import Path

import pytest

from versionsync.adapters.config import EnvironmentConfigProvider, FileConfigProvider
from versionsync.adapters.config.environment import is_placeholder_value, parse_env_file
from versionsync.adapters.config.file_config import canonical_key, flatten, to_bool
from versionsync.core.domain import BumpKind, SyncStrategy
from versionsync.core.exceptions import ConfigError, ConfigFileError


YAML_CONFIG = """\
app_store:
  key_id: FILEKEY
  issuer_id: file-issuer
  bundle_id: com.file.app

play_store:
  package_name: com.file.app

sync:
  strategy: store_only
  bump: patch
  fallback_version: 1.0.0+1
  cache_ttl: 30
"""


def make_provider(root: Path, environ=None, **kwargs) -> EnvironmentConfigProvider:
    return EnvironmentConfigProvider(project_root=root, environ=environ or {}, **kwargs)


# =============================================================================
# Helpers
# =============================================================================


class TestHelpers:
    """Tests for parsing helpers."""

    def test_flatten(self):
        assert flatten({"sync": {"bump": "minor", "cache": False}, "fallback": "1.0.0"}) == {
            "sync.bump_kind": "minor",
            "sync.cache_enabled": False,
            "sync.fallback_version": "1.0.0",
        }

    def test_canonical_key(self):
        assert canonical_key("lock_timeout") == "sync.lock_timeout"
        assert canonical_key("app_store.key_id") == "app_store.key_id"

    @pytest.mark.parametrize("value,expected", [("yes", True), ("0", False), (True, True), ("Off", False)])
    def test_to_bool(self, value, expected):
        assert to_bool(value) is expected

    def test_to_bool_rejects(self):
        with pytest.raises(ConfigError):
            to_bool("maybe")

    def test_parse_env_file(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text(
            "# credentials\n"
            "\n"
            "export KEY_ID=ABC\n"
            "ISSUER_ID=\"quoted\"\n"
            "BUNDLE_ID='single'\n"
            "not a pair\n"
        )
        assert parse_env_file(path) == {"KEY_ID": "ABC", "ISSUER_ID": "quoted", "BUNDLE_ID": "single"}

    @pytest.mark.parametrize("value", [None, "", "YOUR_KEY_ID"])
    def test_placeholder_values(self, value):
        assert is_placeholder_value(value)

    def test_real_value(self):
        assert not is_placeholder_value("ABC123")


# =============================================================================
# FileConfigProvider
# =============================================================================


class TestFileConfigProvider:
    """Tests for FileConfigProvider."""

    def test_no_file_gives_defaults(self, tmp_path):
        config = FileConfigProvider(search_dir=tmp_path).load()
        assert config.sync.strategy is SyncStrategy.STORE_OR_FALLBACK
        assert config.sync.bump_kind is BumpKind.BUILD
        assert config.project.root == tmp_path

    def test_loads_yaml(self, tmp_path):
        (tmp_path / ".versionsync.yaml").write_text(YAML_CONFIG)
        provider = FileConfigProvider(search_dir=tmp_path)

        config = provider.load()

        assert config.app_store.key_id == "FILEKEY"
        assert config.sync.strategy is SyncStrategy.STORE_ONLY
        assert config.sync.bump_kind is BumpKind.PATCH
        assert config.sync.cache_ttl == 30.0
        assert provider.get("sync.bump") == "patch"

    def test_cli_overrides_win(self, tmp_path):
        (tmp_path / ".versionsync.yaml").write_text(YAML_CONFIG)
        provider = FileConfigProvider(search_dir=tmp_path, cli_overrides={"bump": "major"})
        assert provider.load().sync.bump_kind is BumpKind.MAJOR

    def test_explicit_missing_file(self, tmp_path):
        provider = FileConfigProvider(config_path=tmp_path / "nope.yaml")
        with pytest.raises(ConfigFileError):
            provider.load()

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / ".versionsync.yaml").write_text("sync: [unclosed\n")
        errors = FileConfigProvider(search_dir=tmp_path).validate()
        assert len(errors) == 1
        assert "Invalid YAML" in errors[0]

    def test_non_mapping(self, tmp_path):
        (tmp_path / ".versionsync.yaml").write_text("- a\n- b\n")
        with pytest.raises(ConfigFileError):
            FileConfigProvider(search_dir=tmp_path).load()

    def test_unknown_strategy(self, tmp_path):
        (tmp_path / ".versionsync.yaml").write_text("sync:\n  strategy: sometimes\n")
        with pytest.raises(ConfigError):
            FileConfigProvider(search_dir=tmp_path).load()

    def test_bad_number(self, tmp_path):
        (tmp_path / ".versionsync.yaml").write_text("sync:\n  cache_ttl: soon\n")
        with pytest.raises(ConfigError, match="sync.cache_ttl"):
            FileConfigProvider(search_dir=tmp_path).load()


# =============================================================================
# EnvironmentConfigProvider
# =============================================================================


class TestEnvironmentConfigProvider:
    """Tests for layered configuration."""

    def test_environment_over_file(self, tmp_path):
        (tmp_path / ".versionsync.yaml").write_text(YAML_CONFIG)
        config = make_provider(tmp_path, environ={"KEY_ID": "ENVKEY", "VERSIONSYNC_BUMP": "minor"}).load()

        assert config.app_store.key_id == "ENVKEY"
        assert config.app_store.issuer_id == "file-issuer"
        assert config.sync.bump_kind is BumpKind.MINOR

    def test_prefixed_names_preferred(self, tmp_path):
        environ = {"APP_STORE_KEY_ID": "PREFIXED", "KEY_ID": "PLAIN"}
        assert make_provider(tmp_path, environ=environ).load().app_store.key_id == "PREFIXED"

    def test_precedence_chain(self, tmp_path):
        (tmp_path / ".versionsync.yaml").write_text(YAML_CONFIG)
        (tmp_path / "project.config").write_text("KEY_ID=PROJECT\nISSUER_ID=project-issuer\nBUNDLE_ID=com.project\n")
        (tmp_path / ".env").write_text("ISSUER_ID=dotenv-issuer\nBUNDLE_ID=com.dotenv\n")
        provider = make_provider(
            tmp_path,
            environ={"BUNDLE_ID": "com.environ"},
            cli_overrides={"sync.fallback_version": "3.0.0+1"},
        )

        config = provider.load()

        assert config.app_store.key_id == "PROJECT"
        assert config.app_store.issuer_id == "dotenv-issuer"
        assert config.app_store.bundle_id == "com.environ"
        assert config.sync.fallback_version == "3.0.0+1"

    def test_template_values_ignored(self, tmp_path):
        (tmp_path / ".versionsync.yaml").write_text(YAML_CONFIG)
        (tmp_path / "project.config").write_text("KEY_ID=YOUR_KEY_ID\nISSUER_ID=YOUR_ISSUER_ID\n")

        config = make_provider(tmp_path).load()

        assert config.app_store.key_id == "FILEKEY"
        assert config.app_store.issuer_id == "file-issuer"

    def test_ids_derived_from_manifest_name(self, synced_project):
        config = make_provider(synced_project.root).load()

        assert config.project.name == "my_app"
        assert config.app_store.bundle_id == "com.example.my_app"
        assert config.play_store.package_name == "com.example.my_app"

    def test_explicit_ids_not_replaced(self, synced_project):
        config = make_provider(synced_project.root, environ={"PACKAGE_NAME": "com.real.app"}).load()
        assert config.play_store.package_name == "com.real.app"
        assert config.app_store.bundle_id == "com.example.my_app"

    def test_no_manifest_no_derivation(self, tmp_path):
        config = make_provider(tmp_path).load()
        assert config.app_store.bundle_id == ""
        assert not config.play_store.is_valid()

    def test_cli_overrides_drop_none(self, tmp_path):
        provider = make_provider(tmp_path, cli_overrides={"dry_run": True, "lock_timeout": None})
        config = provider.load()
        assert config.sync.dry_run is True
        assert config.sync.lock_timeout == 0.0

    def test_state_path(self, tmp_path):
        config = make_provider(tmp_path).load()
        assert config.project.state_path == tmp_path / ".versionsync"

    def test_validate_reports_load_errors(self, tmp_path):
        (tmp_path / ".versionsync.yaml").write_text("sync: [unclosed\n")
        errors = make_provider(tmp_path).validate()
        assert len(errors) == 1
        assert "project.config" in errors[0]

    def test_validate_half_credentials(self, tmp_path):
        errors = make_provider(tmp_path, environ={"KEY_ID": "ABC"}).validate()
        assert any("missing ISSUER_ID" in e for e in errors)

    def test_name(self, tmp_path):
        assert make_provider(tmp_path).name == "Environment"
        (tmp_path / ".versionsync.yaml").write_text(YAML_CONFIG)
        assert make_provider(tmp_path).name == "Environment + .versionsync.yaml"

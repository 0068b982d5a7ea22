"""
File Configuration Provider - Load configuration from ``.versionsync.yaml``.

Example::

    app_store:
      key_id: ABC123DEFG
      issuer_id: 69a6de70-0000-0000-0000-000000000000
      bundle_id: com.example.myapp
      key_path: ios/private_keys/AuthKey_ABC123DEFG.p8

    play_store:
      package_name: com.example.myapp

    sync:
      strategy: store_or_fallback
      bump: build
      fallback_version: 1.0.0+1
      cache_ttl: 60

Values are flattened to dotted keys (``app_store.key_id``) so the
environment provider can layer other sources on top.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from versionsync.core.domain.enums import BumpKind, SyncStrategy
from versionsync.core.exceptions import ConfigError, ConfigFileError
from versionsync.core.ports.config_provider import (
    AppConfig,
    AppStoreConfig,
    ConfigProviderPort,
    PlayStoreConfig,
    ProjectConfig,
    SyncConfig,
)


CONFIG_FILENAMES = (".versionsync.yaml", ".versionsync.yml")

# Shorthand keys accepted in the file and as CLI overrides
KEY_ALIASES: dict[str, str] = {
    "sync.bump": "sync.bump_kind",
    "sync.cache": "sync.cache_enabled",
    "sync.concurrency": "sync.store_concurrency",
    "strategy": "sync.strategy",
    "bump": "sync.bump_kind",
    "bump_kind": "sync.bump_kind",
    "fallback": "sync.fallback_version",
    "fallback_version": "sync.fallback_version",
    "auto_increment": "sync.auto_increment",
    "arbitrate": "sync.arbitrate",
    "cache": "sync.cache_enabled",
    "cache_ttl": "sync.cache_ttl",
    "dry_run": "sync.dry_run",
    "lock_timeout": "sync.lock_timeout",
    "project": "project.root",
    "project_root": "project.root",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def canonical_key(key: str) -> str:
    """Map shorthand keys to their dotted form."""
    return KEY_ALIASES.get(key, key)


def flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted keys."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(flatten(value, prefix=f"{dotted}."))
        else:
            flat[canonical_key(dotted)] = value
    return flat


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Expected a boolean, got {value!r}")


def to_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Expected a number for {key}, got {value!r}", cause=e)


def build_app_config(values: dict[str, Any], project_root: Path | None = None) -> AppConfig:
    """
    Build an AppConfig from flattened values.

    Raises:
        ConfigError: If a value has the wrong type or an unknown enum name.
    """

    def get(key: str, default: Any = None) -> Any:
        value = values.get(key)
        return default if value is None or value == "" else value

    root = Path(get("project.root", project_root or Path.cwd())).expanduser()

    try:
        strategy = SyncStrategy.from_string(str(get("sync.strategy", SyncStrategy.STORE_OR_FALLBACK.value)))
        bump_kind = BumpKind.from_string(str(get("sync.bump_kind", BumpKind.BUILD.value)))
    except ValueError as e:
        raise ConfigError(str(e), cause=e)

    fallback = get("sync.fallback_version")

    return AppConfig(
        project=ProjectConfig(
            root=root,
            name=get("project.name"),
            state_dir=str(get("project.state_dir", ProjectConfig.state_dir)),
        ),
        app_store=AppStoreConfig(
            key_id=str(get("app_store.key_id", "")),
            issuer_id=str(get("app_store.issuer_id", "")),
            bundle_id=str(get("app_store.bundle_id", "")),
            key_path=get("app_store.key_path"),
            base_url=str(get("app_store.base_url", AppStoreConfig.base_url)),
            timeout=to_float(get("app_store.timeout", AppStoreConfig.timeout), "app_store.timeout"),
            build_limit=int(to_float(get("app_store.build_limit", AppStoreConfig.build_limit), "app_store.build_limit")),
        ),
        play_store=PlayStoreConfig(
            package_name=str(get("play_store.package_name", "")),
            base_url=str(get("play_store.base_url", PlayStoreConfig.base_url)),
            language=str(get("play_store.language", PlayStoreConfig.language)),
            timeout=to_float(get("play_store.timeout", PlayStoreConfig.timeout), "play_store.timeout"),
        ),
        sync=SyncConfig(
            strategy=strategy,
            bump_kind=bump_kind,
            fallback_version=str(fallback) if fallback is not None else None,
            auto_increment=to_bool(get("sync.auto_increment", False)),
            arbitrate=to_bool(get("sync.arbitrate", True)),
            dry_run=to_bool(get("sync.dry_run", False)),
            cache_enabled=to_bool(get("sync.cache_enabled", True)),
            cache_ttl=to_float(get("sync.cache_ttl", SyncConfig.cache_ttl), "sync.cache_ttl"),
            store_concurrency=int(
                to_float(get("sync.store_concurrency", SyncConfig.store_concurrency), "sync.store_concurrency")
            ),
            lock_timeout=to_float(get("sync.lock_timeout", SyncConfig.lock_timeout), "sync.lock_timeout"),
        ),
    )


class FileConfigProvider(ConfigProviderPort):
    """
    Configuration provider that loads from a YAML config file.

    Searches for ``.versionsync.yaml`` / ``.versionsync.yml`` in the search
    directory (default: current directory) unless a path is given.
    """

    def __init__(
        self,
        config_path: Path | str | None = None,
        search_dir: Path | str | None = None,
        cli_overrides: dict[str, Any] | None = None,
    ):
        """
        Initialize the file config provider.

        Args:
            config_path: Explicit config file path
            search_dir: Directory searched when no path is given
            cli_overrides: Values that take precedence over the file
        """
        self._explicit_path = Path(config_path) if config_path else None
        self._search_dir = Path(search_dir) if search_dir else None
        self._cli_overrides = {canonical_key(k): v for k, v in (cli_overrides or {}).items()}
        self._values: dict[str, Any] | None = None
        self._errors: list[str] = []
        self.logger = logging.getLogger("FileConfigProvider")

    # -------------------------------------------------------------------------
    # ConfigProviderPort Implementation
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str:
        path = self.config_file_path
        return f"File ({path})" if path else "File (none)"

    @property
    def config_file_path(self) -> Path | None:
        """The config file in use, if any."""
        if self._explicit_path is not None:
            return self._explicit_path
        search_dir = self._search_dir or Path.cwd()
        for filename in CONFIG_FILENAMES:
            candidate = search_dir / filename
            if candidate.is_file():
                return candidate
        return None

    def values(self) -> dict[str, Any]:
        """
        Flattened values from the file (without CLI overrides).

        Raises:
            ConfigFileError: If the file is missing (when explicit) or invalid.
        """
        if self._values is None:
            self._values = self._load_file()
        return self._values

    def load(self) -> AppConfig:
        values = {**self.values(), **self._cli_overrides}
        return build_app_config(values, project_root=self._search_dir)

    def get(self, key: str, default: Any = None) -> Any:
        key = canonical_key(key)
        if key in self._cli_overrides:
            return self._cli_overrides[key]
        return self.values().get(key, default)

    def validate(self) -> list[str]:
        try:
            config = self.load()
        except ConfigError as e:
            return [str(e)]
        return config.validate()

    # -------------------------------------------------------------------------
    # File Loading
    # -------------------------------------------------------------------------

    def _load_file(self) -> dict[str, Any]:
        path = self.config_file_path
        if path is None:
            return {}

        if not path.is_file():
            raise ConfigFileError(f"Config file not found: {path}", path=path)

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigFileError(f"Invalid YAML syntax in {path}", path=path, cause=e)
        except OSError as e:
            raise ConfigFileError(f"Cannot read config file {path}", path=path, cause=e)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigFileError(f"Config file {path} must contain a mapping", path=path)

        self.logger.debug(f"Loaded config from {path}")
        return flatten(data)

"""
Environment Configuration Provider - Layered configuration.

Precedence (highest first):

1. CLI overrides
2. Process environment
3. ``.env`` in the project root
4. ``project.config`` in the project root (``KEY=value`` lines)
5. ``.versionsync.yaml``
6. Defaults

App ids not set anywhere are derived from the manifest ``name:`` as
``com.example.<name>``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from versionsync.adapters.descriptors.manifest import ManifestStore
from versionsync.core.exceptions import ConfigError
from versionsync.core.ports.config_provider import AppConfig, ConfigProviderPort

from .file_config import FileConfigProvider, build_app_config, canonical_key


ENV_FILENAME = ".env"
PROJECT_CONFIG_FILENAME = "project.config"

# Dotted key -> environment names, first match wins
ENV_KEYS: dict[str, tuple[str, ...]] = {
    "app_store.key_id": ("APP_STORE_KEY_ID", "KEY_ID"),
    "app_store.issuer_id": ("APP_STORE_ISSUER_ID", "ISSUER_ID"),
    "app_store.key_path": ("APP_STORE_KEY_PATH",),
    "app_store.bundle_id": ("BUNDLE_ID", "IOS_BUNDLE_ID"),
    "play_store.package_name": ("ANDROID_PACKAGE_ID", "PACKAGE_NAME"),
    "sync.strategy": ("VERSIONSYNC_STRATEGY",),
    "sync.bump_kind": ("VERSIONSYNC_BUMP",),
    "sync.fallback_version": ("VERSIONSYNC_FALLBACK_VERSION",),
    "sync.cache_ttl": ("VERSIONSYNC_CACHE_TTL",),
}

# Unfilled template values shipped in project.config
_TEMPLATE_PREFIX = "YOUR_"


def parse_env_file(path: Path) -> dict[str, str]:
    """
    Parse ``KEY=value`` lines.

    Blank lines and ``#`` comments are skipped, an ``export`` prefix is
    allowed, and surrounding quotes are stripped.
    """
    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export ") :]
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        values[key.strip()] = value
    return values


def is_placeholder_value(value: str | None) -> bool:
    return not value or value.startswith(_TEMPLATE_PREFIX)


class EnvironmentConfigProvider(ConfigProviderPort):
    """
    Configuration provider layering environment sources over the config file.
    """

    def __init__(
        self,
        project_root: Path | str | None = None,
        config_file: Path | str | None = None,
        env_file: Path | str | None = None,
        cli_overrides: dict[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        """
        Initialize the environment config provider.

        Args:
            project_root: Flutter project root (default: current directory)
            config_file: Explicit YAML config file
            env_file: Explicit .env file
            cli_overrides: Values from command line arguments
            environ: Environment mapping (default: os.environ)
        """
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self._env_file = Path(env_file) if env_file else self.project_root / ENV_FILENAME
        self._environ = environ if environ is not None else os.environ
        self._cli_overrides = {
            canonical_key(k): v for k, v in (cli_overrides or {}).items() if v is not None
        }
        self._file_provider = FileConfigProvider(config_path=config_file, search_dir=self.project_root)
        self._config: AppConfig | None = None
        self.logger = logging.getLogger("EnvironmentConfigProvider")

    # -------------------------------------------------------------------------
    # ConfigProviderPort Implementation
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str:
        path = self._file_provider.config_file_path
        if path is not None:
            return f"Environment + {path.name}"
        return "Environment"

    @property
    def config_file_path(self) -> Path | None:
        return self._file_provider.config_file_path

    def layered_values(self) -> dict[str, Any]:
        """All sources merged by precedence, as dotted keys."""
        values: dict[str, Any] = {"project.root": str(self.project_root)}
        values.update(self._file_provider.values())
        values.update(self._keyed(self._read_key_value_file(self.project_root / PROJECT_CONFIG_FILENAME)))
        values.update(self._keyed(self._read_key_value_file(self._env_file)))
        values.update(self._keyed(self._environ))
        values.update(self._cli_overrides)
        return values

    def load(self) -> AppConfig:
        values = self.layered_values()
        config = build_app_config(values, project_root=self.project_root)
        self._apply_derived_defaults(config)
        self._config = config
        return config

    def get(self, key: str, default: Any = None) -> Any:
        return self.layered_values().get(canonical_key(key), default)

    def validate(self) -> list[str]:
        try:
            config = self.load()
        except ConfigError as e:
            return [f"{e} (check the config file, project.config, .env and environment)"]
        return config.validate()

    # -------------------------------------------------------------------------
    # Sources
    # -------------------------------------------------------------------------

    def _read_key_value_file(self, path: Path) -> dict[str, str]:
        if not path.is_file():
            return {}
        try:
            values = parse_env_file(path)
        except (OSError, UnicodeDecodeError) as e:
            self.logger.warning(f"Ignoring unreadable {path}: {e}")
            return {}
        self.logger.debug(f"Loaded {len(values)} values from {path}")
        return values

    def _keyed(self, source: Mapping[str, str]) -> dict[str, str]:
        """Pick known keys out of an environment-style mapping."""
        values: dict[str, str] = {}
        for dotted, names in ENV_KEYS.items():
            for env_name in names:
                value = source.get(env_name)
                if not is_placeholder_value(value):
                    values[dotted] = value
                    break
        return values

    def _apply_derived_defaults(self, config: AppConfig) -> None:
        if config.project.name is None:
            config.project.name = ManifestStore(config.project.root).read_project_name()

        name = config.project.name
        if not name:
            return
        derived = f"com.example.{name}"
        if not config.app_store.bundle_id:
            config.app_store.bundle_id = derived
            self.logger.debug(f"Derived bundle id {derived} from the manifest name")
        if not config.play_store.package_name:
            config.play_store.package_name = derived
            self.logger.debug(f"Derived package name {derived} from the manifest name")

"""
Configuration Provider Port - Abstract interface for configuration.

Implementations:
- FileConfigProvider: Load from .versionsync.yaml
- EnvironmentConfigProvider: Layer env vars, .env and project.config on top
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from versionsync.core.domain.enums import BumpKind, SyncStrategy
from versionsync.core.domain.value_objects import SyncPolicy, VersionTag


DEFAULT_STATE_DIR = ".versionsync"


@dataclass
class ProjectConfig:
    """Where the project lives and what it is called."""

    root: Path = field(default_factory=Path.cwd)
    name: str | None = None  # pubspec "name:", used to derive default app ids
    state_dir: str = DEFAULT_STATE_DIR

    @property
    def state_path(self) -> Path:
        return self.root / self.state_dir


@dataclass
class AppStoreConfig:
    """Configuration for App Store Connect."""

    key_id: str = ""
    issuer_id: str = ""
    bundle_id: str = ""
    key_path: str | None = None  # defaults to ios/private_keys/AuthKey_<key_id>.p8
    base_url: str = "https://api.appstoreconnect.apple.com/v1"
    timeout: float = 30.0
    build_limit: int = 10
    token_lifetime: int = 1200

    def is_valid(self) -> bool:
        """Check if credentials are complete."""
        return bool(self.key_id and self.issuer_id and self.bundle_id)

    def resolve_key_path(self, root: Path) -> Path:
        """Absolute path of the private key file."""
        if self.key_path:
            path = Path(self.key_path).expanduser()
            return path if path.is_absolute() else root / path
        return root / "ios" / "private_keys" / f"AuthKey_{self.key_id}.p8"


@dataclass
class PlayStoreConfig:
    """Configuration for the Google Play listing lookup."""

    package_name: str = ""
    base_url: str = "https://play.google.com/store/apps/details"
    language: str = "en"
    timeout: float = 15.0
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36 versionsync"
    )

    def is_valid(self) -> bool:
        return bool(self.package_name)


@dataclass
class SyncConfig:
    """Configuration for reconciliation runs."""

    strategy: SyncStrategy = SyncStrategy.STORE_OR_FALLBACK
    bump_kind: BumpKind = BumpKind.BUILD
    fallback_version: str | None = None
    auto_increment: bool = False
    arbitrate: bool = True

    dry_run: bool = False

    # Cache settings
    cache_enabled: bool = True
    cache_ttl: float = 60.0

    # Concurrency
    store_concurrency: int = 2
    lock_timeout: float = 0.0  # 0 = fail fast

    def policy(self) -> SyncPolicy:
        """Build the immutable per-run policy."""
        return SyncPolicy(
            strategy=self.strategy,
            bump_kind=self.bump_kind,
            auto_increment=self.auto_increment,
            arbitrate=self.arbitrate,
        )

    def fallback(self) -> VersionTag | None:
        """Parsed fallback version, if one is configured."""
        if not self.fallback_version:
            return None
        return VersionTag.parse(self.fallback_version)


@dataclass
class AppConfig:
    """Complete application configuration."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    app_store: AppStoreConfig = field(default_factory=AppStoreConfig)
    play_store: PlayStoreConfig = field(default_factory=PlayStoreConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)

    def validate(self) -> list[str]:
        """
        Validate configuration.

        Missing store credentials are not errors by themselves; the store
        is simply reported as unknown. Half-configured credentials are.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.sync.fallback_version and not VersionTag.is_valid(self.sync.fallback_version):
            errors.append(
                f"Invalid fallback version {self.sync.fallback_version!r} "
                "(VERSIONSYNC_FALLBACK_VERSION or sync.fallback_version, expected X.Y.Z+B)"
            )
        if self.sync.cache_ttl < 0:
            errors.append("Cache TTL must not be negative (VERSIONSYNC_CACHE_TTL or sync.cache_ttl)")
        if self.sync.store_concurrency < 1:
            errors.append("Store concurrency must be at least 1 (sync.store_concurrency)")

        has_key = bool(self.app_store.key_id)
        has_issuer = bool(self.app_store.issuer_id)
        if has_key != has_issuer:
            missing = "ISSUER_ID" if has_key else "KEY_ID"
            errors.append(
                f"Incomplete App Store Connect credentials: missing {missing} "
                "(set it in the environment, project.config or app_store section of the config file)"
            )

        if self.sync.strategy is SyncStrategy.STORE_ONLY and not (
            self.app_store.is_valid() or self.play_store.is_valid()
        ):
            errors.append(
                "Store-only strategy needs at least one store configured "
                "(KEY_ID/ISSUER_ID/BUNDLE_ID or PACKAGE_NAME)"
            )

        return errors


class ConfigProviderPort(ABC):
    """
    Abstract interface for configuration providers.

    Configuration can come from various sources:
    - Environment variables
    - .env and project.config files
    - YAML config files
    - Command line arguments
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the provider name."""
        ...

    @abstractmethod
    def load(self) -> AppConfig:
        """
        Load configuration from source.

        Returns:
            Complete application configuration
        """
        ...

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a specific configuration value.

        Args:
            key: Configuration key (dot notation supported)
            default: Default value if not found
        """
        ...

    @abstractmethod
    def validate(self) -> list[str]:
        """
        Validate loaded configuration.

        Returns:
            List of validation errors
        """
        ...

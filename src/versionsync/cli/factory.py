"""
Factory - Wire configuration into a ReconciliationEngine.
"""

from __future__ import annotations

import logging
from typing import Any

from versionsync.adapters.cache import ObservedVersionCache
from versionsync.adapters.config import EnvironmentConfigProvider
from versionsync.adapters.descriptors import AndroidDescriptorAdapter, IOSDescriptorAdapter, ManifestStore
from versionsync.adapters.stores import AppStoreProvider, PlayStoreProvider
from versionsync.application.sync import ProjectLock, ReconciliationEngine
from versionsync.core.ports.config_provider import AppConfig


logger = logging.getLogger("factory")


def cli_overrides(args: Any) -> dict[str, Any]:
    """Configuration values given on the command line (unset flags omitted)."""
    overrides: dict[str, Any] = {
        "sync.fallback_version": getattr(args, "fallback", None),
        "sync.auto_increment": True if getattr(args, "auto_increment", False) else None,
        "sync.arbitrate": False if getattr(args, "strict_stores", False) else None,
        "sync.cache_enabled": False if getattr(args, "no_cache", False) else None,
        "sync.dry_run": True if getattr(args, "dry_run", False) else None,
        "sync.lock_timeout": getattr(args, "lock_timeout", None),
    }
    return {k: v for k, v in overrides.items() if v is not None}


def load_config(args: Any) -> tuple[EnvironmentConfigProvider, AppConfig]:
    """
    Load layered configuration for a CLI invocation.

    Raises:
        ConfigError: If a config source is unreadable or holds a bad value.
    """
    provider = EnvironmentConfigProvider(
        project_root=getattr(args, "project", None),
        config_file=getattr(args, "config", None),
        cli_overrides=cli_overrides(args),
    )
    config = provider.load()
    logger.debug(f"Configuration loaded from {provider.name}")
    return provider, config


def build_engine(config: AppConfig) -> ReconciliationEngine:
    """Build the engine with every local target and both stores."""
    root = config.project.root
    state_path = config.project.state_path

    cache = None
    if config.sync.cache_enabled:
        cache = ObservedVersionCache(state_path, ttl=config.sync.cache_ttl)

    return ReconciliationEngine(
        manifest=ManifestStore(root),
        descriptors=[AndroidDescriptorAdapter(root), IOSDescriptorAdapter(root)],
        providers=[
            AppStoreProvider(config.app_store, root),
            PlayStoreProvider(config.play_store),
        ],
        cache=cache,
        lock=ProjectLock(state_path, timeout=config.sync.lock_timeout),
        fallback=config.sync.fallback(),
        concurrency=config.sync.store_concurrency,
        dry_run=config.sync.dry_run,
    )

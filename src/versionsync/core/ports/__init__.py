"""
Ports - Abstract interfaces for external dependencies.

Ports define the contracts that adapters must implement.
This enables dependency inversion and easy testing.
"""

from .config_provider import (
    AppConfig,
    AppStoreConfig,
    ConfigProviderPort,
    PlayStoreConfig,
    ProjectConfig,
    SyncConfig,
)
from .descriptor import VersionDescriptorPort
from .store_provider import StoreProviderPort


__all__ = [
    "AppConfig",
    "AppStoreConfig",
    "ConfigProviderPort",
    "PlayStoreConfig",
    "ProjectConfig",
    "StoreProviderPort",
    "SyncConfig",
    "VersionDescriptorPort",
]

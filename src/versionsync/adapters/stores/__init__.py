"""
Store adapters - Remote distribution stores implementing StoreProviderPort.
"""

from .app_store import AppStoreConnectClient, AppStoreProvider, TokenSigner
from .play_store import PlayStoreProvider


__all__ = [
    "AppStoreConnectClient",
    "AppStoreProvider",
    "PlayStoreProvider",
    "TokenSigner",
]

"""
App Store Connect - Signed API client, token signer and version provider.
"""

from .client import AppStoreConnectClient
from .provider import AppStoreProvider, select_highest_build
from .token import TokenSigner, decode_claims, decode_segment


__all__ = [
    "AppStoreConnectClient",
    "AppStoreProvider",
    "TokenSigner",
    "decode_claims",
    "decode_segment",
    "select_highest_build",
]

"""
Google Play - Best-effort listing scrape.
"""

from .provider import PlayStoreProvider, extract_version


__all__ = ["PlayStoreProvider", "extract_version"]

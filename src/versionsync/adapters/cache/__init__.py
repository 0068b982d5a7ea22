"""
Cache Module - Last observed store versions.
"""

from .file_cache import ObservedVersionCache


__all__ = ["ObservedVersionCache"]

"""
Descriptor adapters - Local files that carry the app version.
"""

from .android import AndroidDescriptorAdapter
from .base import PlatformDescriptorAdapter, atomic_write, has_placeholder
from .ios import IOSDescriptorAdapter
from .manifest import ManifestStore


__all__ = [
    "AndroidDescriptorAdapter",
    "IOSDescriptorAdapter",
    "ManifestStore",
    "PlatformDescriptorAdapter",
    "atomic_write",
    "has_placeholder",
]

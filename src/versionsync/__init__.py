"""
versionsync - Keep a Flutter app's version consistent across pubspec.yaml,
the Android and iOS build descriptors, App Store Connect and Google Play.

Layers:
- core/: Domain model, exceptions and ports
- adapters/: Descriptor files, store providers, cache and configuration
- application/: The reconciliation engine
- cli/: Command line interface
"""

__version__ = "1.0.0"

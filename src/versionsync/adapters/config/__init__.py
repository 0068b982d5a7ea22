"""
Configuration adapters - YAML file plus environment layering.
"""

from .environment import EnvironmentConfigProvider, parse_env_file
from .file_config import FileConfigProvider, build_app_config


__all__ = [
    "EnvironmentConfigProvider",
    "FileConfigProvider",
    "build_app_config",
    "parse_env_file",
]

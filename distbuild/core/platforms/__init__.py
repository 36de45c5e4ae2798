"""Platforms — pluggable behaviour for each supported operating environment.

Public re-exports for convenient access.
"""

from distbuild.core.platforms.base import PlatformStrategy
from distbuild.core.platforms.builtin import Debian, FreeBSD, MacOSX, Redhat
from distbuild.core.platforms.configured import ConfiguredPlatform, PlatformDefinition
from distbuild.core.platforms.registry import PlatformRegistry, default_registry

__all__ = [
    "ConfiguredPlatform",
    "Debian",
    "FreeBSD",
    "MacOSX",
    "PlatformDefinition",
    "PlatformRegistry",
    "PlatformStrategy",
    "Redhat",
    "default_registry",
]

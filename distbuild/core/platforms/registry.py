"""
Platform registry — discovery and resolution of the active platform.

The registry maps a platform identifier to a factory.  Resolution
happens once at startup; the chosen strategy is then carried in the
BuildContext and never changes for the rest of the process.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from distbuild.core.errors import NoPlatformMatched, StalePlatformRecord, UnknownPlatform
from distbuild.core.models.metadata import BuildMetadata
from distbuild.core.platforms.base import PlatformStrategy, Runner
from distbuild.core.platforms.builtin import BUILTIN_PLATFORMS
from distbuild.core.platforms.configured import (
    ConfiguredPlatform,
    find_platform_files,
    load_platform_definition,
)

logger = logging.getLogger(__name__)

PlatformFactory = Callable[[], PlatformStrategy]


class PlatformRegistry:
    """Central registry of platform strategies.

    Features:
        - Register/unregister platform factories by name
        - Discover data-defined platforms from a platform/ directory
        - Resolve the active platform: explicit name, then the platform
          recorded at build time, then capability probing
    """

    def __init__(self) -> None:
        self._factories: dict[str, PlatformFactory] = {}

    def register(self, name: str, factory: PlatformFactory) -> None:
        """Register a platform factory under ``name``."""
        if name in self._factories:
            logger.warning("Overwriting existing platform: %s", name)
        self._factories[name] = factory
        logger.debug("Registered platform: %s", name)

    def unregister(self, name: str) -> None:
        """Remove a platform from the registry."""
        self._factories.pop(name, None)

    def names(self) -> list[str]:
        """Registered platform names in probe order (lexicographic)."""
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def discover(self, platform_dir: Path, runner: Runner | None = None) -> list[str]:
        """Register every platform/<Name>/platform.yml under ``platform_dir``.

        Returns:
            The names that were registered.
        """
        found = find_platform_files(platform_dir)
        for name, path in found.items():
            self.register(name, _configured_factory(name, path, runner))
        if found:
            logger.info("Discovered %d platform definitions: %s", len(found), list(found))
        return list(found)

    def load(self, name: str) -> PlatformStrategy:
        """Instantiate the platform registered as ``name``.

        Raises:
            UnknownPlatform: If nothing is registered under ``name`` or
                its factory fails.
        """
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownPlatform(name, "no such platform module")
        try:
            strategy = factory()
        except Exception as e:
            raise UnknownPlatform(name, str(e)) from e
        logger.debug("Loaded platform %s", name)
        return strategy

    def resolve(
        self,
        explicit_name: str | None = None,
        force_probe: bool = False,
        metadata: BuildMetadata | None = None,
    ) -> PlatformStrategy:
        """Pick the active platform strategy.

        Precedence:
            1. ``explicit_name`` (UnknownPlatform if it can't be loaded)
            2. the platform recorded in ``metadata``, unless ``force_probe``
               (StalePlatformRecord if it can't be loaded)
            3. the first platform, in lexicographic order, whose
               ``guess_platform`` returns True (NoPlatformMatched if none)

        Resolution has no side effects beyond instantiating strategies.
        """
        if explicit_name:
            logger.info("Using platform %s (explicit)", explicit_name)
            return self.load(explicit_name)

        if not force_probe and metadata is not None and metadata.platform:
            try:
                strategy = self.load(metadata.platform)
            except UnknownPlatform as e:
                raise StalePlatformRecord(metadata.platform, e.reason) from e
            logger.info("Using platform %s (from previous build)", metadata.platform)
            return strategy

        candidates = self.names()
        for name in candidates:
            logger.info("Trying %s", name)
            strategy = self.load(name)
            if strategy.guess_platform():
                logger.info("Platform %s matched this system", name)
                return strategy

        raise NoPlatformMatched(candidates)


def _configured_factory(name: str, path: Path, runner: Runner | None) -> PlatformFactory:
    def factory() -> PlatformStrategy:
        definition = load_platform_definition(path)
        if definition is None:
            raise ValueError(f"invalid platform definition {path}")
        return ConfiguredPlatform(definition, runner=runner, name=name)

    return factory


def default_registry(
    platform_dir: Path | None = None,
    runner: Runner | None = None,
) -> PlatformRegistry:
    """Registry with the built-in platforms plus any found in ``platform_dir``.

    A data-defined platform with the same name as a built-in replaces it.
    """
    registry = PlatformRegistry()
    for cls in BUILTIN_PLATFORMS:
        registry.register(cls.name, lambda cls=cls: cls(runner=runner))
    if platform_dir is not None:
        registry.discover(platform_dir, runner=runner)
    return registry

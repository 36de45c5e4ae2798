"""
Data-defined platforms — loads platform/<Name>/platform.yml.

Lets a distribution ship a platform without writing Python:

    name: Gentoo
    detection:
      files_any_of:
        - /etc/gentoo-release
    skip_packages:
      - BSD-*
    last_packages:
      - DBD-mysql
      - DBD-SQLite
      - DBD-Pg
    module_prompts:
      "Where is libgd installed? [/usr/lib]": /usr/lib64
    library_paths:
      - /usr/lib64

Lists that are left out keep the default behaviour; lists that are
given replace it.  ``module_prompts`` is merged into the defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from distbuild.core.models.metadata import RuntimeInfo
from distbuild.core.models.package import PackageOverride
from distbuild.core.models.prompt import PromptRuleSet
from distbuild.core.platforms.base import PlatformStrategy, Runner

logger = logging.getLogger(__name__)

PLATFORM_FILE = "platform.yml"


class DetectionRule(BaseModel):
    """How to recognise the platform from the filesystem."""

    files_any_of: list[str] = Field(default_factory=list)
    files_all_of: list[str] = Field(default_factory=list)
    content_contains: dict[str, str] = Field(default_factory=dict)
    # e.g. {"/etc/os-release": "ID=gentoo"}: file must contain string

    @property
    def empty(self) -> bool:
        return not (self.files_any_of or self.files_all_of or self.content_contains)


class PlatformDefinition(BaseModel):
    """Schema of platform.yml."""

    name: str
    description: str = ""
    detection: DetectionRule = Field(default_factory=DetectionRule)

    first_packages: list[str] | None = None
    last_packages: list[str] | None = None
    skip_packages: list[str] | None = None
    dev_packages: list[str] | None = None
    non_interactive_packages: list[str] | None = None
    package_overrides: list[PackageOverride] | None = None

    module_prompts: dict[str, str] = Field(default_factory=dict)
    library_paths: list[str] = Field(default_factory=list)
    header_paths: list[str] = Field(default_factory=list)


class ConfiguredPlatform(PlatformStrategy):
    """A PlatformStrategy whose overrides come from a PlatformDefinition."""

    def __init__(
        self,
        definition: PlatformDefinition,
        runner: Runner | None = None,
        fs_root: Path = Path("/"),
        name: str | None = None,
    ) -> None:
        super().__init__(runner)
        self.definition = definition
        self.name = name or definition.name
        self._fs_root = fs_root

    def _host_path(self, path: str) -> Path:
        return self._fs_root / path.lstrip("/")

    def guess_platform(self) -> bool:
        rule = self.definition.detection
        if rule.empty:
            return False
        if rule.files_all_of and not all(self._host_path(f).exists() for f in rule.files_all_of):
            return False
        if rule.files_any_of and not any(self._host_path(f).exists() for f in rule.files_any_of):
            return False
        for file, needle in rule.content_contains.items():
            try:
                if needle not in self._host_path(file).read_text(encoding="utf-8", errors="replace"):
                    return False
            except OSError:
                return False
        return True

    def library_search_paths(self, runtime: RuntimeInfo) -> list[str]:
        paths = super().library_search_paths(runtime)
        return paths + [p for p in self.definition.library_paths if p not in paths]

    def header_search_paths(self, runtime: RuntimeInfo) -> list[str]:
        paths = super().header_search_paths(runtime)
        return paths + [p for p in self.definition.header_paths if p not in paths]

    def first_packages(self) -> list[str]:
        return _pick(self.definition.first_packages, super().first_packages())

    def last_packages(self) -> list[str]:
        return _pick(self.definition.last_packages, super().last_packages())

    def skip_packages(self) -> list[str]:
        return _pick(self.definition.skip_packages, super().skip_packages())

    def dev_packages(self) -> list[str]:
        return _pick(self.definition.dev_packages, super().dev_packages())

    def non_interactive_packages(self) -> list[str]:
        return _pick(self.definition.non_interactive_packages, super().non_interactive_packages())

    def package_overrides(self) -> list[PackageOverride]:
        if self.definition.package_overrides is None:
            return super().package_overrides()
        return [o.model_copy(deep=True) for o in self.definition.package_overrides]

    def module_prompts(self) -> PromptRuleSet:
        return super().module_prompts().merged(self.definition.module_prompts)


def _pick(configured: list[str] | None, default: list[str]) -> list[str]:
    return list(configured) if configured is not None else default


def load_platform_definition(path: Path) -> PlatformDefinition | None:
    """Load a single platform definition from a YAML file.

    Returns:
        PlatformDefinition, or None if loading fails.
    """
    try:
        raw = path.read_text(encoding="utf-8")
        data = yaml.safe_load(raw)
        if not isinstance(data, dict):
            logger.warning("Platform file %s is not a mapping, skipping", path)
            return None
        definition = PlatformDefinition.model_validate(data)
        logger.debug("Loaded platform: %s from %s", definition.name, path)
        return definition
    except Exception as e:
        logger.warning("Failed to load platform from %s: %s", path, e)
        return None


def find_platform_files(platform_dir: Path) -> dict[str, Path]:
    """Walk platform/ and map each platform directory name to its platform.yml.

    Expects structure::

        platform/
            Gentoo/
                platform.yml
            Slackware/
                platform.yml

    Files are not parsed here; a broken one surfaces when the platform
    is loaded.
    """
    found: dict[str, Path] = {}

    if not platform_dir.is_dir():
        logger.debug("Platform directory not found: %s", platform_dir)
        return found

    for child in sorted(platform_dir.iterdir()):
        if not child.is_dir() or child.name.startswith("."):
            continue
        for filename in (PLATFORM_FILE, "platform.yaml"):
            if (child / filename).is_file():
                found[child.name] = child / filename
                break

    return found

"""
Module build orchestrator — builds and installs the bundled CPAN packages.

Packages are unpacked source trees under the distribution's src/
directory.  Each one is configured, compiled and installed into the
distribution's lib/ directory, in an order that puts build-tooling
prerequisites first and database drivers last.

There is no checkpointing: the first failure aborts the run and the
operator reruns from scratch.
"""

from __future__ import annotations

import fnmatch
import logging
import re
import shutil
import tarfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence

from distbuild.core.context import BuildContext
from distbuild.core.errors import AutomationError, BuildError
from distbuild.core.execution.subprocess_runner import run_command
from distbuild.core.models.package import (
    BuildToolKind,
    PackageBuildJob,
    PackageDescriptor,
)
from distbuild.core.models.prompt import PromptRuleSet
from distbuild.core.platforms.base import PlatformStrategy
from distbuild.core.services.automaton import SubprocessAutomaton

logger = logging.getLogger(__name__)

_ARCHIVE_SUFFIXES = (".tar.gz", ".tgz")
_VERSION_SUFFIX = re.compile(r"-v?\d[\w.]*$")


# ── Ordering ────────────────────────────────────────────────────


def matches_pattern(name: str, pattern: str) -> bool:
    """Whether package ``name`` is matched by a platform ``pattern``.

    A pattern matches its exact name, the name followed by a version
    suffix (``IO-Tty`` matches ``IO-Tty-1.07``), or, when it contains
    glob characters, any name the glob matches (``BSD-*``).
    """
    if name == pattern:
        return True
    if _VERSION_SUFFIX.sub("", name) == pattern:
        return True
    return any(c in pattern for c in "*?[") and fnmatch.fnmatchcase(name, pattern)


def _matches_any(name: str, patterns: Iterable[str]) -> bool:
    return any(matches_pattern(name, p) for p in patterns)


def order_packages(names: Iterable[str], platform: PlatformStrategy, dev: bool = False) -> list[str]:
    """Compute the build order for ``names``.

    1. sort lexicographically
    2. drop packages matching a skip pattern (skip beats first/last)
    3. drop dev-only packages unless ``dev``
    4. stable partition: first-pattern packages, the rest, last-pattern
       packages (a package matching both first and last goes first)

    The result is idempotent: ordering an ordered list changes nothing.
    """
    skip = platform.skip_packages()
    dev_only = platform.dev_packages()
    first = platform.first_packages()
    last = platform.last_packages()

    front: list[str] = []
    middle: list[str] = []
    back: list[str] = []

    for name in sorted(names):
        if _matches_any(name, skip):
            logger.debug("Skipping %s on %s", name, platform.name)
            continue
        if not dev and _matches_any(name, dev_only):
            logger.debug("Skipping dev-only package %s", name)
            continue
        if _matches_any(name, first):
            front.append(name)
        elif _matches_any(name, last):
            back.append(name)
        else:
            middle.append(name)

    return front + middle + back


# ── Sources ─────────────────────────────────────────────────────


def prepare_sources(src_dir: Path, work_dir: Path) -> list[PackageDescriptor]:
    """Unpack source archives and list every buildable package.

    ``*.tar.gz``/``*.tgz`` archives in ``src_dir`` are extracted into
    ``work_dir``; directories already in ``src_dir`` are used in place.
    A directory counts as a package if it has a Build.PL or Makefile.PL.
    """
    if not src_dir.is_dir():
        raise BuildError(str(src_dir), "prepare", "source directory does not exist")

    work_dir.mkdir(parents=True, exist_ok=True)
    candidates: dict[str, Path] = {}

    for entry in sorted(src_dir.iterdir()):
        if entry.is_dir():
            candidates[entry.name] = entry
        elif entry.name.endswith(_ARCHIVE_SUFFIXES):
            for unpacked in _extract(entry, work_dir):
                candidates.setdefault(unpacked.name, unpacked)

    packages = [
        PackageDescriptor(name=name, path=path)
        for name, path in sorted(candidates.items())
        if _has_build_script(path)
    ]
    logger.info("Found %d source packages in %s", len(packages), src_dir)
    return packages


def _extract(archive: Path, work_dir: Path) -> list[Path]:
    logger.debug("Extracting %s", archive.name)
    try:
        with tarfile.open(archive, "r:gz") as tar:
            tops = {m.name.split("/", 1)[0] for m in tar.getmembers() if m.name}
            tar.extractall(work_dir, filter="data")
    except (tarfile.TarError, OSError) as e:
        raise BuildError(archive.name, "extract", str(e)) from e
    return [work_dir / t for t in sorted(tops) if (work_dir / t).is_dir()]


def _has_build_script(path: Path) -> bool:
    return (path / "Build.PL").is_file() or (path / "Makefile.PL").is_file()


def detect_build_tool(path: Path) -> BuildToolKind:
    """Build.PL means Module::Build; otherwise Makefile.PL means MakeMaker."""
    if (path / "Build.PL").is_file():
        return BuildToolKind.DECLARATIVE_SCRIPT
    if (path / "Makefile.PL").is_file():
        return BuildToolKind.LEGACY_MAKE
    raise BuildError(path.name, "detect", "no Build.PL or Makefile.PL")


# ── Orchestration ───────────────────────────────────────────────


@dataclass
class BuildReport:
    """What build_all did."""

    order: list[str] = field(default_factory=list)
    built: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"order": self.order, "built": self.built}


class ModuleBuildOrchestrator:
    """Builds packages one after another, stopping at the first failure.

    Args:
        context: The active build context.
        automaton: Drives interactive configure/compile steps.
        runner: Runs non-interactive steps (``run_command``).
        trash_dir: Where docs, scripts and binaries are routed, then
            deleted.  Defaults to ``<root>/tmp/trash``.
    """

    def __init__(
        self,
        context: BuildContext,
        automaton: SubprocessAutomaton | None = None,
        runner: Callable[..., dict] = run_command,
        trash_dir: Path | None = None,
    ) -> None:
        self.context = context
        self.platform = context.platform
        self.automaton = automaton or SubprocessAutomaton(timeout=context.config.prompt_timeout)
        self._run = runner
        self.dest_dir = context.config.lib_path
        self.trash_dir = trash_dir or (context.root / "tmp" / "trash")

    # ── Jobs ────────────────────────────────────────────────────

    def make_job(self, package: PackageDescriptor) -> PackageBuildJob:
        """Compose the build job for one package."""
        kind = detect_build_tool(package.path)
        parameters = self.platform.build_parameters(
            kind,
            dest_dir=str(self.dest_dir),
            trash_dir=str(self.trash_dir),
            archname=self.context.runtime.archname,
        )

        extra_args: list[str] = []
        env: dict[str, str] = {"PERL_MM_USE_DEFAULT": "1"}
        for override in self.platform.package_overrides():
            if matches_pattern(package.name, override.pattern):
                extra_args.extend(self._substitute(a) for a in override.extra_args)
                env.update({k: self._substitute(v) for k, v in override.env.items()})

        interactive = not _matches_any(package.name, self.platform.non_interactive_packages())

        return PackageBuildJob(
            package_name=package.name,
            build_tool_kind=kind,
            parameters=parameters,
            extra_args=extra_args,
            env=env,
            interactive=interactive,
            work_dir=package.path,
        )

    def _substitute(self, value: str) -> str:
        return value.replace("{root}", str(self.context.root))

    # ── Building ────────────────────────────────────────────────

    def build_all(
        self,
        packages: Sequence[PackageDescriptor],
        prompt_overrides: Mapping[str, str] | None = None,
    ) -> BuildReport:
        """Order and build every package.

        Raises:
            BuildError: The first package that failed; the rest are not built.
        """
        by_name = {p.name: p for p in packages}
        report = BuildReport(
            order=order_packages(by_name, self.platform, dev=self.context.config.dev)
        )
        logger.info("Build order: %s", ", ".join(report.order))

        self.dest_dir.mkdir(parents=True, exist_ok=True)
        self.trash_dir.mkdir(parents=True, exist_ok=True)
        try:
            for name in report.order:
                job = self.make_job(by_name[name])
                self.build_package(job, prompt_overrides)
                report.built.append(name)
        finally:
            shutil.rmtree(self.trash_dir, ignore_errors=True)

        logger.info("Built %d packages", len(report.built))
        return report

    def build_package(
        self,
        job: PackageBuildJob,
        prompt_overrides: Mapping[str, str] | None = None,
    ) -> None:
        """Configure, compile and install one package."""
        logger.info("Building %s (%s)", job.package_name, job.build_tool_kind.value)
        configure = job.configure_command(self.context.config.runtime)

        if job.interactive:
            rules = self.platform.module_prompts().merged(prompt_overrides)
            self._drive(job, "configure", configure, rules)
            self._drive(job, "compile", job.compile_command(), rules)
        else:
            self._plain(job, "configure", configure)
            self._plain(job, "compile", job.compile_command())

        self._plain(job, "install", job.install_command())

    def _drive(
        self,
        job: PackageBuildJob,
        step: str,
        cmd: list[str],
        rules: PromptRuleSet,
    ) -> None:
        try:
            self.automaton.drive(cmd, rules, env=job.env, cwd=str(job.work_dir))
        except AutomationError as e:
            raise BuildError(job.package_name, step, str(e)) from e

    def _plain(self, job: PackageBuildJob, step: str, cmd: list[str]) -> None:
        logger.info("Running %s", " ".join(cmd))
        result = self._run(cmd, env_overrides=job.env, cwd=str(job.work_dir), capture=False)
        if not result["ok"]:
            raise BuildError(job.package_name, step, f"{' '.join(cmd)}: {result.get('error')}")

"""
Apache/mod_perl build — the optional web server bundled with the distribution.

mod_perl is configured first (its Makefile.PL asks questions, so it goes
through the automaton), then Apache is configured with mod_perl linked
in statically and installed under ``<root>/apache``.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable

from distbuild.core.context import BuildContext
from distbuild.core.errors import AutomationError, BuildError
from distbuild.core.execution.subprocess_runner import run_command
from distbuild.core.services.automaton import SubprocessAutomaton

logger = logging.getLogger(__name__)

MOD_PERL = "mod_perl"
APACHE = "apache"


class ApacheModPerlBuilder:
    """Builds mod_perl and Apache from their unpacked source trees."""

    def __init__(
        self,
        context: BuildContext,
        automaton: SubprocessAutomaton | None = None,
        runner: Callable[..., dict] = run_command,
        trash_dir: Path | None = None,
    ) -> None:
        self.context = context
        self.settings = context.config.apache
        self.automaton = automaton or SubprocessAutomaton(timeout=context.config.prompt_timeout)
        self._run = runner
        self.trash_dir = trash_dir or (context.root / "tmp" / "trash")

    @property
    def apache_dir(self) -> Path:
        return self.context.config.path(self.settings.apache_dir)

    @property
    def mod_perl_dir(self) -> Path:
        return self.context.config.path(self.settings.mod_perl_dir)

    @property
    def install_dir(self) -> Path:
        return self.context.root / "apache"

    def build(self) -> None:
        """Build mod_perl, then Apache, then drop the parts we don't ship."""
        for label, path in ((MOD_PERL, self.mod_perl_dir), (APACHE, self.apache_dir)):
            if not path.is_dir():
                raise BuildError(label, "prepare", f"source directory {path} does not exist")

        self.build_mod_perl()
        self.build_apache()
        self.clean_install()

    def build_mod_perl(self) -> None:
        platform = self.context.platform
        perl = self.context.config.runtime
        params = platform.mod_perl_build_parameters(
            root=str(self.context.root),
            trash_dir=str(self.trash_dir),
            apache_dir=str(self.apache_dir),
            debug=self.settings.debug,
        )
        cwd = str(self.mod_perl_dir)

        logger.info("Building mod_perl in %s", cwd)
        try:
            self.automaton.drive(
                [perl, "Makefile.PL", *params],
                platform.apache_modperl_prompts(),
                cwd=cwd,
            )
        except AutomationError as e:
            raise BuildError(MOD_PERL, "configure", str(e)) from e

        self._step(MOD_PERL, "compile", ["make", f"PERL={perl}"], cwd)
        self._step(MOD_PERL, "install", ["make", "install", f"PERL={perl}"], cwd)

    def build_apache(self) -> None:
        params = self.context.platform.apache_build_parameters(
            root=str(self.context.root), debug=self.settings.debug,
        )
        cwd = str(self.apache_dir)

        logger.info("Building Apache in %s", cwd)
        self._step(APACHE, "configure", ["./configure", *params], cwd)
        self._step(APACHE, "compile", ["make"], cwd)
        self._step(APACHE, "install", ["make", "install"], cwd)

    def clean_install(self) -> None:
        """Remove apache/man and the contents of apache/htdocs."""
        shutil.rmtree(self.install_dir / "man", ignore_errors=True)
        htdocs = self.install_dir / "htdocs"
        if htdocs.is_dir():
            for entry in htdocs.iterdir():
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry, ignore_errors=True)
                else:
                    entry.unlink(missing_ok=True)

    def _step(self, package: str, step: str, cmd: list[str], cwd: str) -> None:
        logger.info("Running %s", " ".join(cmd))
        result = self._run(cmd, cwd=cwd, capture=False)
        if not result["ok"]:
            raise BuildError(package, step, f"{' '.join(cmd)}: {result.get('error')}")

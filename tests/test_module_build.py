"""
Tests for the module build orchestrator — ordering, job composition, abort-on-failure.
"""

import io
import tarfile
from pathlib import Path

import pytest

from distbuild.core.errors import AutomationError, BuildError
from distbuild.core.models import BuildToolKind, PackageDescriptor
from distbuild.core.platforms.base import PlatformStrategy
from distbuild.core.services.module_build import (
    ModuleBuildOrchestrator,
    detect_build_tool,
    matches_pattern,
    order_packages,
    prepare_sources,
)

from tests.helpers import RecordingAutomaton, RecordingRunner


class ListPlatform(PlatformStrategy):
    name = "Lists"

    def __init__(self, first=(), last=(), skip=(), dev=()):
        super().__init__()
        self._first, self._last, self._skip, self._dev = list(first), list(last), list(skip), list(dev)

    def first_packages(self):
        return self._first

    def last_packages(self):
        return self._last

    def skip_packages(self):
        return self._skip

    def dev_packages(self):
        return self._dev


def _package(root: Path, name: str, script: str = "Makefile.PL") -> PackageDescriptor:
    path = root / name
    path.mkdir(parents=True, exist_ok=True)
    (path / script).write_text("# build script\n")
    return PackageDescriptor(name=name, path=path)


class TestMatchesPattern:
    @pytest.mark.parametrize(
        "name, pattern",
        [
            ("IO-Tty", "IO-Tty"),
            ("IO-Tty-1.07", "IO-Tty"),
            ("DBD-mysql-4.005", "DBD-mysql"),
            ("BSD-Resource-1.28", "BSD-*"),
            ("Net_SSLeay.pm-1.30", "Net_SSLeay*"),
        ],
    )
    def test_matches(self, name, pattern):
        assert matches_pattern(name, pattern)

    @pytest.mark.parametrize(
        "name, pattern",
        [
            ("IO-Tty-Extra-1.0", "IO-Tty"),
            ("Expect-Simple-0.04", "Expect"),
            ("BSD", "BSD-*"),
        ],
    )
    def test_does_not_match(self, name, pattern):
        assert not matches_pattern(name, pattern)


class TestOrderPackages:
    def test_first_middle_last(self):
        platform = ListPlatform(first=["IO-Tty", "Expect"], last=["DBD-mysql"])
        order = order_packages(["DBD-mysql", "IO-Tty", "Expect", "Foo"], platform)
        assert order == ["Expect", "IO-Tty", "Foo", "DBD-mysql"]

    def test_idempotent(self):
        platform = ListPlatform(first=["IO-Tty", "Expect"], last=["DBD-mysql", "DBD-SQLite"])
        names = ["Zed", "DBD-SQLite-1.14", "Expect-1.21", "Alpha", "IO-Tty-1.07", "DBD-mysql-4.005"]
        once = order_packages(names, platform)
        assert order_packages(once, platform) == once

    def test_skip_beats_first_and_last(self):
        platform = ListPlatform(first=["BSD-Resource"], last=["BSD-Other"], skip=["BSD-*"])
        assert order_packages(["BSD-Resource", "BSD-Other", "Foo"], platform) == ["Foo"]

    def test_first_beats_last(self):
        platform = ListPlatform(first=["Both"], last=["Both"])
        assert order_packages(["Aaa", "Both"], platform) == ["Both", "Aaa"]

    def test_dev_packages_only_in_dev(self):
        platform = ListPlatform(dev=["Devel-Cover"])
        assert order_packages(["Devel-Cover-0.64", "Foo"], platform) == ["Foo"]
        assert order_packages(["Devel-Cover-0.64", "Foo"], platform, dev=True) == ["Devel-Cover-0.64", "Foo"]

    def test_default_platform_puts_tooling_first(self):
        order = order_packages(
            ["DBD-SQLite-1.14", "Class-DBI-3.0", "IO-Tty-1.07", "Module-Build-0.28", "Expect-1.21", "BSD-Resource-1.28"],
            PlatformStrategy(),
        )
        assert order == ["Expect-1.21", "IO-Tty-1.07", "Module-Build-0.28", "Class-DBI-3.0", "DBD-SQLite-1.14"]


class TestSources:
    def test_detect_build_tool(self, tmp_path: Path):
        assert detect_build_tool(_package(tmp_path, "A", "Build.PL").path) is BuildToolKind.DECLARATIVE_SCRIPT
        assert detect_build_tool(_package(tmp_path, "B").path) is BuildToolKind.LEGACY_MAKE

    def test_build_pl_preferred(self, tmp_path: Path):
        pkg = _package(tmp_path, "Both", "Build.PL")
        (pkg.path / "Makefile.PL").write_text("")
        assert detect_build_tool(pkg.path) is BuildToolKind.DECLARATIVE_SCRIPT

    def test_detect_nothing(self, tmp_path: Path):
        (tmp_path / "Empty").mkdir()
        with pytest.raises(BuildError):
            detect_build_tool(tmp_path / "Empty")

    def test_prepare_sources_extracts_archives(self, tmp_path: Path):
        src = tmp_path / "src"
        src.mkdir()
        _package(src, "Plain-1.0")
        with tarfile.open(src / "Packed-2.0.tar.gz", "w:gz") as tar:
            data = b"# Build.PL\n"
            info = tarfile.TarInfo("Packed-2.0/Build.PL")
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
        (src / "README").write_text("not a package")

        packages = prepare_sources(src, tmp_path / "work")
        assert [p.name for p in packages] == ["Packed-2.0", "Plain-1.0"]
        assert (tmp_path / "work" / "Packed-2.0" / "Build.PL").is_file()

    def test_prepare_sources_missing_dir(self, tmp_path: Path):
        with pytest.raises(BuildError):
            prepare_sources(tmp_path / "nope", tmp_path / "work")


class TestMakeJob:
    def test_legacy_make_job(self, make_context, tmp_path: Path):
        context = make_context(platform=PlatformStrategy())
        orch = ModuleBuildOrchestrator(context, automaton=RecordingAutomaton(), runner=RecordingRunner())
        job = orch.make_job(_package(tmp_path / "src", "Foo-1.0"))
        assert job.build_tool_kind is BuildToolKind.LEGACY_MAKE
        assert f"LIB={context.config.lib_path}" in job.parameters
        assert job.env["PERL_MM_USE_DEFAULT"] == "1"
        assert job.interactive is True
        assert job.configure_command()[:2] == ["perl", "Makefile.PL"]
        assert job.install_command() == ["make", "install"]

    def test_module_build_job(self, make_context, tmp_path: Path):
        orch = ModuleBuildOrchestrator(make_context(platform=PlatformStrategy()), automaton=RecordingAutomaton())
        job = orch.make_job(_package(tmp_path / "src", "Bar-1.0", "Build.PL"))
        assert job.configure_command()[:2] == ["perl", "Build.PL"]
        assert job.compile_command() == ["./Build"]
        assert job.install_command() == ["./Build", "install"]

    def test_override_substitutes_root(self, make_context, tmp_path: Path):
        context = make_context(platform=PlatformStrategy())
        orch = ModuleBuildOrchestrator(context, automaton=RecordingAutomaton())
        job = orch.make_job(_package(tmp_path / "src", "libapreq-1.33"))
        assert job.env["APXS"] == f"{context.root}/apache/bin/apxs"

    def test_override_extra_args_before_parameters(self, make_context, tmp_path: Path):
        orch = ModuleBuildOrchestrator(make_context(platform=PlatformStrategy()), automaton=RecordingAutomaton())
        job = orch.make_job(_package(tmp_path / "src", "Net_SSLeay.pm-1.30"))
        assert job.configure_command()[2:4] == ["/usr", "--"]

    def test_bootstrap_packages_not_interactive(self, make_context, tmp_path: Path):
        orch = ModuleBuildOrchestrator(make_context(platform=PlatformStrategy()), automaton=RecordingAutomaton())
        assert orch.make_job(_package(tmp_path / "src", "IO-Tty-1.07")).interactive is False


class TestBuildAll:
    def _setup(self, make_context, tmp_path, automaton=None, runner=None):
        src = tmp_path / "pkgs"
        packages = [
            _package(src, "DBD-SQLite-1.14"),
            _package(src, "Foo-1.0"),
            _package(src, "IO-Tty-1.07"),
        ]
        automaton = automaton or RecordingAutomaton()
        runner = runner or RecordingRunner()
        orch = ModuleBuildOrchestrator(
            make_context(platform=PlatformStrategy()), automaton=automaton, runner=runner,
        )
        return orch, packages, automaton, runner

    def test_builds_in_order(self, make_context, tmp_path: Path):
        orch, packages, automaton, runner = self._setup(make_context, tmp_path)
        report = orch.build_all(packages)
        assert report.built == ["IO-Tty-1.07", "Foo-1.0", "DBD-SQLite-1.14"]

        # IO-Tty runs plain; Foo and DBD-SQLite go through the automaton
        driven = [Path(d["cwd"]).name for d in automaton.drives]
        assert driven == ["Foo-1.0", "Foo-1.0", "DBD-SQLite-1.14", "DBD-SQLite-1.14"]
        assert runner.calls[0][:2] == ["perl", "Makefile.PL"]
        assert runner.calls.count(["make", "install"]) == 3

    def test_prompt_overrides_reach_automaton(self, make_context, tmp_path: Path):
        orch, packages, automaton, _ = self._setup(make_context, tmp_path)
        orch.build_all(packages, {"Your name?": "qa"})
        rules = automaton.drives[0]["rules"]
        assert rules.as_mapping()["Your name?"] == "qa"
        assert "ParserDetails.ini?" in rules.triggers

    def test_stops_at_first_failure(self, make_context, tmp_path: Path):
        orch, packages, automaton, runner = self._setup(
            make_context, tmp_path, automaton=RecordingAutomaton(fail_in="Foo-1.0"),
        )
        with pytest.raises(BuildError) as exc:
            orch.build_all(packages)
        assert exc.value.package == "Foo-1.0"
        assert exc.value.step == "configure"
        assert isinstance(exc.value.__cause__, AutomationError)
        assert not any("DBD-SQLite" in (d["cwd"] or "") for d in automaton.drives)
        assert not orch.trash_dir.exists()

    def test_plain_step_failure(self, make_context, tmp_path: Path):
        runner = RecordingRunner({"make install": {"ok": False, "returncode": 2, "error": "Command failed (exit 2)"}})
        orch, packages, _, _ = self._setup(make_context, tmp_path, runner=runner)
        with pytest.raises(BuildError) as exc:
            orch.build_all(packages)
        assert exc.value.package == "IO-Tty-1.07"
        assert exc.value.step == "install"

    def test_skipped_packages_not_built(self, make_context, tmp_path: Path):
        orch, packages, automaton, runner = self._setup(make_context, tmp_path)
        packages.append(_package(tmp_path / "pkgs", "BSD-Resource-1.28"))
        report = orch.build_all(packages)
        assert "BSD-Resource-1.28" not in report.built

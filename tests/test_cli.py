"""
Tests for CLI commands — global options, platform, verify, build and install.
"""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from distbuild.core import context as context_module
from distbuild.core.config.loader import ROOT_ENV_VAR
from distbuild.core.services import dependency_verifier
from distbuild.main import cli


class EverythingProbe:
    def find_shared_object(self, link_name, dirs):
        return Path(f"/fake/lib{link_name}.so")

    def find_header(self, header, dirs):
        return Path(f"/fake/{header}")


@pytest.fixture
def dist(tmp_path: Path, monkeypatch, runtime) -> Path:
    """A distribution root with a config file, a platform/ dir and a fake perl."""
    monkeypatch.delenv(ROOT_ENV_VAR, raising=False)
    monkeypatch.setattr(context_module, "probe_runtime", lambda perl="perl": runtime)
    monkeypatch.setattr(dependency_verifier, "NativeLibraryProbe", EverythingProbe)

    (tmp_path / "src").mkdir()
    (tmp_path / "platform" / "Gentoo").mkdir(parents=True)
    (tmp_path / "platform" / "Gentoo" / "platform.yml").write_text("name: Gentoo\n")
    (tmp_path / "distbuild.yml").write_text(textwrap.dedent("""\
        name: smolder
        install:
          user: qa
          group: qa
          install_path: /opt/smolder
          host_name: qa.example.com
          port: 8080
    """))
    return tmp_path


def _invoke(dist: Path, *args: str):
    return CliRunner().invoke(cli, ["--config", str(dist / "distbuild.yml"), *args])


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "build" in result.output
        assert "install" in result.output
        assert "platform" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_bad_config(self, tmp_path: Path):
        bad = tmp_path / "distbuild.yml"
        bad.write_text("- nope\n")
        result = CliRunner().invoke(cli, ["--config", str(bad), "verify"])
        assert result.exit_code == 1
        assert "mapping" in result.output


class TestPlatformCommands:
    def test_list(self, dist: Path):
        result = _invoke(dist, "platform", "list", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output)["platforms"] == ["Debian", "FreeBSD", "Gentoo", "MacOSX", "Redhat"]

    def test_resolve_explicit(self, dist: Path):
        result = _invoke(dist, "platform", "resolve", "--platform", "Gentoo", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output) == {"platform": "Gentoo"}

    def test_resolve_unknown(self, dist: Path):
        result = _invoke(dist, "platform", "resolve", "--platform", "Plan9")
        assert result.exit_code == 1
        assert "Plan9" in result.output


class TestVerifyCommand:
    def test_build_mode(self, dist: Path):
        result = _invoke(dist, "verify", "--platform", "Debian", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["platform"] == "Debian"
        assert data["checks"][0] == "datastore:mysql"

    def test_install_before_build(self, dist: Path):
        result = _invoke(dist, "verify", "--mode", "install", "--platform", "Debian")
        assert result.exit_code == 1
        assert "has not been built" in result.output


class TestBuildAndInstall:
    def test_build_then_install(self, dist: Path):
        result = _invoke(dist, "build", "--platform", "Gentoo", "--skip-db", "MySQL", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["platform"] == "Gentoo"
        assert data["datastores"] == ["SQLite"]
        assert 'platform "Gentoo"' in (dist / "data" / "build.db").read_text()

        # platform now comes from build.db
        result = _invoke(dist, "install", "--no-provision")
        assert result.exit_code == 0, result.output
        assert "smolder INSTALLATION COMPLETE" in result.output
        assert "http://qa.example.com:8080/" in result.output

        result = _invoke(dist, "upgrade", "--no-provision", "--json")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["upgrade"] is True

    def test_bad_answer_option(self, dist: Path):
        result = _invoke(dist, "build", "--answer", "no-equals-sign")
        assert result.exit_code == 2

    def test_runtime_mismatch_on_install(self, dist: Path):
        (dist / "data").mkdir()
        (dist / "data" / "build.db").write_text('platform "Debian"\nperl "5.8.8"\narch "x86_64-linux"\n')
        result = _invoke(dist, "install", "--no-provision")
        assert result.exit_code == 1
        assert "5.8.8" in result.output

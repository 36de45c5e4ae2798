"""
Tests for process execution — the subprocess runner, runtime probe and logging setup.
"""

import io
import logging
from pathlib import Path

import pytest

from distbuild.core.errors import DependencyError
from distbuild.core.execution.subprocess_runner import run_command
from distbuild.core.observability.logging_config import BuildOutputWriter, build_log_enabled, setup_logging
from distbuild.core.services import runtime_probe
from distbuild.core.services.runtime_probe import parse_runtime_output, probe_runtime

PROBE_OUTPUT = """\
version=5.10.1
archname=x86_64-linux-gnu-thread-multi
libpth=/usr/local/lib /lib /usr/lib
usrinc=/usr/include
archlib=/usr/lib/perl/5.10
install_helper=1.54
"""


class TestRunCommand:
    def test_success(self):
        result = run_command(["/bin/sh", "-c", "echo hello"])
        assert result["ok"] is True
        assert result["returncode"] == 0
        assert result["stdout"].strip() == "hello"

    def test_nonzero_exit(self):
        result = run_command(["/bin/sh", "-c", "echo bad >&2; exit 3"])
        assert result["ok"] is False
        assert result["returncode"] == 3
        assert "bad" in result["stderr"]

    def test_env_and_cwd(self, tmp_path: Path):
        result = run_command(
            ["/bin/sh", "-c", 'echo "$DISTBUILD_TEST:$(pwd)"'],
            env_overrides={"DISTBUILD_TEST": "x"},
            cwd=str(tmp_path),
        )
        assert result["stdout"].strip() == f"x:{tmp_path.resolve()}"

    def test_missing_program(self):
        result = run_command(["/nonexistent/tool"])
        assert result["ok"] is False
        assert result["returncode"] is None
        assert "Cannot execute" in result["error"]

    def test_timeout(self):
        result = run_command(["/bin/sh", "-c", "sleep 5"], timeout=0.2)
        assert result["ok"] is False
        assert "timed out" in result["error"]


class TestRuntimeProbe:
    def test_parse(self):
        info = parse_runtime_output(PROBE_OUTPUT)
        assert info.version == "5.10.1"
        assert info.archname == "x86_64-linux-gnu-thread-multi"
        assert info.libpth == ["/usr/local/lib", "/lib", "/usr/lib"]
        assert info.install_helper_version == "1.54"

    def test_parse_without_install_helper(self):
        info = parse_runtime_output("version=5.8.8\narchname=i386-linux\ninstall_helper=\n")
        assert info.install_helper_version is None
        assert info.usrinc == "/usr/include"

    def test_parse_garbage(self):
        with pytest.raises(DependencyError):
            parse_runtime_output("Can't locate Config.pm\n")

    def test_probe_uses_runner(self, monkeypatch):
        seen = {}

        def fake_run(cmd, **kwargs):
            seen["cmd"] = cmd
            return {"ok": True, "returncode": 0, "stdout": PROBE_OUTPUT}

        monkeypatch.setattr(runtime_probe, "run_command", fake_run)
        assert probe_runtime("/opt/perl/bin/perl").version == "5.10.1"
        assert seen["cmd"][:2] == ["/opt/perl/bin/perl", "-e"]

    def test_probe_failure(self, monkeypatch):
        monkeypatch.setattr(
            runtime_probe,
            "run_command",
            lambda cmd, **kw: {"ok": False, "returncode": None, "error": "Cannot execute perl"},
        )
        with pytest.raises(DependencyError, match="Cannot query"):
            probe_runtime()


@pytest.fixture
def reset_logging():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()


def _flush():
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestSetupLogging:
    def test_levels(self, reset_logging):
        setup_logging(level="INFO")
        assert logging.getLogger().level == logging.INFO
        setup_logging(level="bogus")
        assert logging.getLogger().level == logging.WARNING
        assert build_log_enabled() is False

    def test_log_file(self, tmp_path: Path, reset_logging):
        log_file = tmp_path / "build.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG
        assert build_log_enabled() is True
        logging.getLogger("distbuild.test").debug("compiling")
        _flush()
        assert "compiling" in log_file.read_text()

    def test_build_output_reaches_file_only(self, tmp_path: Path, capsys, reset_logging):
        log_file = tmp_path / "build.log"
        setup_logging(level="DEBUG", log_file=str(log_file), log_file_level="ERROR")

        writer = BuildOutputWriter("make")
        writer.write("cc -c Tty.c\r\nTty.c: warn")
        writer.write("ing: unused\n")
        writer.write("no newline")
        writer.close()
        logging.getLogger("distbuild.test").info("diagnostic below file level")
        _flush()

        text = log_file.read_text()
        assert "[make] cc -c Tty.c" in text
        assert "[make] Tty.c: warning: unused" in text
        assert "[make] no newline" in text
        assert "diagnostic below file level" not in text
        assert "cc -c Tty.c" not in capsys.readouterr().err

    def test_writer_echoes(self):
        echo = io.StringIO()
        writer = BuildOutputWriter("perl Makefile.PL", echo=echo)
        assert writer.write("Checking if your kit is complete...\n") == 36
        writer.close()
        assert echo.getvalue() == "Checking if your kit is complete...\n"

    def test_uncaptured_command_logged(self, tmp_path: Path, reset_logging):
        log_file = tmp_path / "build.log"
        setup_logging(level="WARNING", log_file=str(log_file))
        result = run_command(["/bin/sh", "-c", "echo out; echo err >&2"], capture=False)
        assert result["ok"] is True
        _flush()
        text = log_file.read_text()
        assert "[sh -c] out" in text
        assert "[sh -c] err" in text

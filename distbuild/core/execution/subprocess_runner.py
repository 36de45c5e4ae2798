"""
Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called for non-interactive
build, install and provisioning commands. Interactive commands go
through the SubprocessAutomaton instead.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from typing import Any

from distbuild.core.observability.logging_config import BuildOutputWriter, build_log_enabled

logger = logging.getLogger(__name__)


def run_command(
    cmd: list[str],
    *,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
    timeout: float | None = None,
    capture: bool = True,
) -> dict[str, Any]:
    """Run a command to completion and report how it went.

    Exit code 0 is the sole success signal.  Process failures are
    returned, never raised; callers turn them into typed errors.

    Args:
        cmd: Command list for ``subprocess.run()``.
        env_overrides: Extra env vars layered over ``os.environ``.
        cwd: Working directory for the command.
        timeout: Seconds before giving up (None = wait forever).
        capture: Capture stdout/stderr instead of inheriting them.
            Builds run uncaptured so the operator sees compiler output;
            with a build log configured that output is also written to it.

    Returns:
        ``{"ok": True, "returncode": 0, "stdout": "...", "elapsed_ms": N}``
        on success, ``{"ok": False, "returncode": N, "error": "...", ...}``
        on failure.
    """
    env = os.environ.copy()
    if env_overrides:
        env.update(env_overrides)

    logger.debug("Running: %s (cwd=%s)", " ".join(cmd), cwd)
    log_output = not capture and build_log_enabled()
    start = time.monotonic()
    try:
        if log_output:
            # interleaved stdout+stderr, copied to the terminal and the build log
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=timeout,
                env=env,
                cwd=cwd,
            )
        else:
            result = subprocess.run(
                cmd,
                capture_output=capture,
                text=True,
                timeout=timeout,
                env=env,
                cwd=cwd,
            )
    except subprocess.TimeoutExpired:
        return {"ok": False, "returncode": None, "error": f"Command timed out ({timeout}s)"}
    except OSError as e:
        logger.debug("Cannot execute %s: %s", cmd[0], e)
        return {"ok": False, "returncode": None, "error": f"Cannot execute {cmd[0]}: {e}"}

    if log_output:
        writer = BuildOutputWriter(" ".join([os.path.basename(cmd[0]), *cmd[1:2]]), echo=sys.stdout)
        writer.write(result.stdout or "")
        writer.close()

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout[-2000:] if result.stdout else ""
    stderr = result.stderr[-2000:] if result.stderr else ""

    if result.returncode == 0:
        return {
            "ok": True,
            "returncode": 0,
            "stdout": stdout,
            "elapsed_ms": elapsed_ms,
        }

    return {
        "ok": False,
        "returncode": result.returncode,
        "error": f"Command failed (exit {result.returncode})",
        "stderr": stderr,
        "stdout": stdout,
        "elapsed_ms": elapsed_ms,
    }

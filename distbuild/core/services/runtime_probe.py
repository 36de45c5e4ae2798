"""
Runtime probe — asks the perl interpreter about itself.

One invocation prints ``key=value`` lines for everything the
dependency checks and build parameters need.
"""

from __future__ import annotations

import logging

from distbuild.core.errors import DependencyError
from distbuild.core.execution.subprocess_runner import run_command
from distbuild.core.models.metadata import RuntimeInfo

logger = logging.getLogger(__name__)

_PROBE_SCRIPT = r"""
use Config;
printf "version=%vd\n", $^V;
print "archname=$Config{archname}\n";
print "libpth=$Config{libpth}\n";
print "usrinc=$Config{usrinc}\n";
print "archlib=$Config{archlib}\n";
my $eui = eval { require ExtUtils::Install; $ExtUtils::Install::VERSION };
print "install_helper=", (defined $eui ? $eui : ""), "\n";
"""


def parse_runtime_output(output: str) -> RuntimeInfo:
    """Turn the probe script's output into a RuntimeInfo."""
    values: dict[str, str] = {}
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value.strip()

    if not values.get("version") or not values.get("archname"):
        raise DependencyError(f"Unexpected output from runtime probe: {output[:200]!r}")

    return RuntimeInfo(
        version=values["version"],
        archname=values["archname"],
        libpth=values.get("libpth", "").split(),
        usrinc=values.get("usrinc") or "/usr/include",
        archlib=values.get("archlib", ""),
        install_helper_version=values.get("install_helper") or None,
    )


def probe_runtime(perl: str = "perl") -> RuntimeInfo:
    """Run ``perl`` once and describe it.

    Raises:
        DependencyError: If perl can't be run or its output is unusable.
    """
    result = run_command([perl, "-e", _PROBE_SCRIPT], timeout=60)
    if not result["ok"]:
        raise DependencyError(
            f"Cannot query the perl runtime ({perl}): "
            f"{result.get('stderr') or result.get('error')}"
        )
    info = parse_runtime_output(result["stdout"])
    logger.debug("Runtime: perl %s on %s", info.version, info.archname)
    return info

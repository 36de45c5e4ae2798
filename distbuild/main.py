"""
distbuild — CLI entrypoint.

Usage:
    distbuild --help
    distbuild verify
    distbuild build --platform Debian
    distbuild install
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from distbuild import __version__
from distbuild.core.errors import DistBuildError
from distbuild.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="distbuild")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to distbuild.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """distbuild — build and install a self-contained Perl distribution."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("DISTBUILD_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("DISTBUILD_LOG_FILE"),
        log_file_level=os.environ.get("DISTBUILD_LOG_FILE_LEVEL"),
    )


def fail(error: Exception) -> None:
    """Print ``error`` in red and exit 1."""
    click.secho(f"❌ {error}", fg="red", err=True)
    sys.exit(1)


def load_cli_config(ctx: click.Context):
    """Load distbuild.yml for the current invocation, exiting on error."""
    from distbuild.core.config.loader import load_config

    try:
        return load_config(ctx.obj.get("config_path"))
    except DistBuildError as e:
        fail(e)


def _parse_answers(answers: tuple[str, ...]) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for answer in answers:
        trigger, sep, response = answer.partition("=")
        if not sep or not trigger:
            raise click.BadParameter(f"expected TRIGGER=RESPONSE, got {answer!r}", param_hint="--answer")
        parsed[trigger] = response
    return parsed


# ── Verify ──────────────────────────────────────────────────────


@cli.command()
@click.option(
    "--mode",
    type=click.Choice(["build", "install"]),
    default="build",
    show_default=True,
    help="Which set of checks to run.",
)
@click.option("--platform", "platform_name", default=None, help="Platform name (default: auto-detect).")
@click.option("--probe", "force_probe", is_flag=True, help="Ignore the platform recorded in build.db.")
@click.option("--skip-db", "skip_db", multiple=True, help="Datastore backend to skip (repeatable).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def verify(
    ctx: click.Context,
    mode: str,
    platform_name: str | None,
    force_probe: bool,
    skip_db: tuple[str, ...],
    as_json: bool,
) -> None:
    """Check that this machine has everything needed."""
    from distbuild.core.use_cases.verify import run_verify

    config = load_cli_config(ctx)
    try:
        result = run_verify(config, mode, platform_name, force_probe, skip_db)
    except DistBuildError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.secho(f"✅ All {mode} dependencies present", fg="green", bold=True)
    click.echo(f"   Platform: {result.platform}")
    click.echo(f"   Perl:     {result.runtime_version} ({result.architecture})")
    if ctx.obj.get("verbose"):
        for check in result.checks:
            click.echo(f"     • {check}")


# ── Build ───────────────────────────────────────────────────────


@cli.command()
@click.option("--platform", "platform_name", default=None, help="Platform name (default: auto-detect).")
@click.option("--probe", "force_probe", is_flag=True, help="Ignore the platform recorded in build.db.")
@click.option("--skip-db", "skip_db", multiple=True, help="Datastore backend to skip (repeatable).")
@click.option(
    "--answer",
    "answers",
    multiple=True,
    metavar="TRIGGER=RESPONSE",
    help="Extra prompt answer for module builds (repeatable).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def build(
    ctx: click.Context,
    platform_name: str | None,
    force_probe: bool,
    skip_db: tuple[str, ...],
    answers: tuple[str, ...],
    as_json: bool,
) -> None:
    """Compile the bundled modules (and Apache/mod_perl if enabled)."""
    from distbuild.core.use_cases.build import run_build

    overrides = _parse_answers(answers)
    config = load_cli_config(ctx)
    try:
        result = run_build(
            config,
            explicit_platform=platform_name,
            force_probe=force_probe,
            skip_datastores=skip_db,
            prompt_overrides=overrides,
            echo=not (as_json or ctx.obj.get("quiet")),
        )
    except DistBuildError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.echo()
    click.secho(f"✅ Build complete on {result.platform}", fg="green", bold=True)
    click.echo(f"   Packages:   {len(result.packages)}")
    click.echo(f"   Datastores: {', '.join(result.datastores) or 'none'}")
    if result.apache_built:
        click.echo("   Apache/mod_perl: built")
    click.echo(f"   Metadata:   {result.metadata_path}")
    click.echo()


# ── Install / upgrade ───────────────────────────────────────────


def _install(ctx: click.Context, upgrade: bool, platform_name, skip_db, no_provision, as_json) -> None:
    from distbuild.core.use_cases.install import (
        post_install_message,
        post_upgrade_message,
        run_install,
    )

    config = load_cli_config(ctx)
    try:
        result = run_install(
            config,
            upgrade=upgrade,
            explicit_platform=platform_name,
            skip_datastores=skip_db,
            provision=not no_provision,
        )
    except DistBuildError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.provisioned:
        p = result.provisioned
        click.echo(f"   Group {result.settings.group} (gid {p.gid}), user {result.settings.user} (uid {p.uid})")

    if upgrade:
        click.echo(post_upgrade_message(config.name, result.settings, result.has_sudo))
    else:
        click.echo(post_install_message(config.name, result.settings))


_install_options = [
    click.option("--platform", "platform_name", default=None, help="Platform name (default: from build.db)."),
    click.option("--skip-db", "skip_db", multiple=True, help="Datastore backend to skip (repeatable)."),
    click.option("--no-provision", is_flag=True, help="Don't create the service user/group."),
    click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON."),
]


def _with_install_options(func):
    for option in reversed(_install_options):
        func = option(func)
    return func


@cli.command()
@_with_install_options
@click.pass_context
def install(ctx: click.Context, platform_name, skip_db, no_provision, as_json) -> None:
    """Install a built distribution on this machine."""
    _install(ctx, False, platform_name, skip_db, no_provision, as_json)


@cli.command()
@_with_install_options
@click.pass_context
def upgrade(ctx: click.Context, platform_name, skip_db, no_provision, as_json) -> None:
    """Upgrade an existing installation."""
    _install(ctx, True, platform_name, skip_db, no_provision, as_json)


# ── Register sub-command groups from distbuild/ui/cli/ ──────────

from distbuild.ui.cli.platform import platform  # noqa: E402

cli.add_command(platform)


if __name__ == "__main__":
    cli()

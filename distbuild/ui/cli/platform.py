"""
CLI commands for platform discovery.

Thin wrappers over ``distbuild.core.platforms``.
"""

from __future__ import annotations

import json

import click

from distbuild.core.errors import DistBuildError


@click.group()
def platform() -> None:
    """Platforms — list known platforms, show which one applies."""


@platform.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_platforms(ctx: click.Context, as_json: bool) -> None:
    """List every registered platform in probe order."""
    from distbuild.core.platforms import default_registry
    from distbuild.main import load_cli_config

    config = load_cli_config(ctx)
    names = default_registry(config.platform_path).names()

    if as_json:
        click.echo(json.dumps({"platforms": names}, indent=2))
        return

    click.secho("🖥️  Platforms:", fg="cyan", bold=True)
    for name in names:
        click.echo(f"   • {name}")


@platform.command("resolve")
@click.option("--platform", "platform_name", default=None, help="Platform name to force.")
@click.option("--probe", "force_probe", is_flag=True, help="Ignore the platform recorded in build.db.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def resolve_platform(
    ctx: click.Context,
    platform_name: str | None,
    force_probe: bool,
    as_json: bool,
) -> None:
    """Show the platform a build or install would use."""
    from distbuild.core.persistence.build_metadata import load_build_metadata
    from distbuild.core.platforms import default_registry
    from distbuild.main import fail, load_cli_config

    config = load_cli_config(ctx)
    metadata = load_build_metadata(config.metadata_path)
    try:
        strategy = default_registry(config.platform_path).resolve(
            explicit_name=platform_name,
            force_probe=force_probe,
            metadata=metadata,
        )
    except DistBuildError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps({"platform": strategy.name}, indent=2))
        return

    click.secho(f"✅ {strategy.name}", fg="green", bold=True)

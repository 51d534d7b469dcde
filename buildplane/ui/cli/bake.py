"""
CLI commands for container image builds (docker buildx bake).

Thin wrappers over ``buildplane.core.services.bake``.
"""

from __future__ import annotations

import json
from pathlib import Path

import click

from buildplane.core.errors import BuildPlaneError
from buildplane.ui.cli.helpers import fail


def _parse_overrides(values: tuple[str, ...]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected NAME=VALUE, got {item!r}", param_hint="--set")
        overrides[key] = value
    return overrides


def _resolved(ctx: click.Context, overrides: dict[str, str]):
    """Load and resolve the bake description for the current workspace."""
    from buildplane.core.config.loader import load_workspace
    from buildplane.core.services.bake import resolve_bake

    workspace = load_workspace(ctx.obj.get("config_path"))
    return workspace, resolve_bake(workspace.bake(), workspace.package(), overrides)


@click.group()
def bake() -> None:
    """Container images — validate, render and build bake targets."""


@bake.command("validate")
@click.option("--set", "sets", multiple=True, help="Override a bake variable (NAME=VALUE).")
@click.pass_context
def validate(ctx: click.Context, sets: tuple[str, ...]) -> None:
    """Check every target resolves to concrete images."""
    try:
        _, resolved = _resolved(ctx, _parse_overrides(sets))
    except BuildPlaneError as e:
        fail(e)
        return

    click.secho(f"✅ {len(resolved.targets)} target(s) valid", fg="green", bold=True)
    for name, target in resolved.targets.items():
        disabled = target.disabled_args
        note = f"  (disabled: {', '.join(disabled)})" if disabled else ""
        click.echo(f"   • {name} → {target.dockerfile}#{target.target}{note}")


@bake.command("print")
@click.option("--set", "sets", multiple=True, help="Override a bake variable (NAME=VALUE).")
@click.pass_context
def print_(ctx: click.Context, sets: tuple[str, ...]) -> None:
    """Print the resolved bake JSON document."""
    from buildplane.core.services.bake import render

    try:
        _, resolved = _resolved(ctx, _parse_overrides(sets))
    except BuildPlaneError as e:
        fail(e, as_json=True)
        return

    click.echo(json.dumps(render(resolved), indent=2))


@bake.command("run")
@click.argument("targets", nargs=-1)
@click.option("--set", "sets", multiple=True, help="Override a bake variable (NAME=VALUE).")
@click.option("--file", "bake_file", type=click.Path(dir_okay=False), default=None,
              help="Where to write the bake JSON (default: <out>/bake.json).")
@click.option("--dry-run", is_flag=True, help="Validate and write the file, don't build.")
@click.pass_context
def run(
    ctx: click.Context,
    targets: tuple[str, ...],
    sets: tuple[str, ...],
    bake_file: str | None,
    dry_run: bool,
) -> None:
    """Build images with docker buildx bake (default group if no TARGETS)."""
    from buildplane.adapters.registry import AdapterRegistry
    from buildplane.core.services.bake import run_bake

    try:
        workspace, resolved = _resolved(ctx, _parse_overrides(sets))
        path = Path(bake_file) if bake_file else workspace.root / workspace.config.build.out_dir / "bake.json"
        receipt = run_bake(
            resolved,
            AdapterRegistry.default(),
            path,
            targets=list(targets) or None,
            workspace=workspace.root,
            dry_run=dry_run,
        )
    except BuildPlaneError as e:
        fail(e)
        return

    if receipt.status == "skipped":
        click.secho(receipt.stdout, fg="yellow")
        return

    click.echo(receipt.stdout, nl=False)
    click.secho("✅ Bake finished", fg="green", bold=True)

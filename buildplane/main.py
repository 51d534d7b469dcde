"""
buildplane — CLI entrypoint.

Usage:
    buildplane --help
    buildplane check
    buildplane build --out result
    buildplane bake print
    eval "$(buildplane devshell env)"
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click
from click.shell_completion import get_completion_class

from buildplane import __version__
from buildplane.core.errors import BuildPlaneError
from buildplane.core.models.completion import ShellKind
from buildplane.core.observability.logging_config import setup_logging
from buildplane.ui.cli.helpers import EXIT_ERROR, EXIT_PARTIAL, fail

SHELL_CHOICES = [s.value for s in ShellKind]


@click.group()
@click.version_option(version=__version__, prog_name="buildplane")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to buildplane.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """buildplane — reproducible builds, completions, images and dev shells."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("BUILDPLANE_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("BUILDPLANE_LOG_FILE"),
        log_file_level=os.environ.get("BUILDPLANE_LOG_FILE_LEVEL"),
    )


# ── Validate ────────────────────────────────────────────────────


@cli.command()
@click.option("--platform", default=None, help="Target platform (default: host).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, platform: str | None, as_json: bool) -> None:
    """Validate config, manifest, toolchain, lock file and bake targets."""
    from buildplane.core.use_cases.check import check_workspace

    result = check_workspace(config_path=ctx.obj.get("config_path"), platform=platform)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else EXIT_ERROR)

    if result.valid:
        click.secho("✅ Workspace is valid", fg="green", bold=True)
        if result.package:
            click.echo(f"   Package:   {result.package.label}")
        if result.toolchain:
            click.echo(f"   Toolchain: {result.toolchain.handle}")
        if result.platform_deps:
            inputs = ", ".join(result.platform_deps.references) or "none"
            click.echo(f"   Platform:  {result.platform_deps.platform.value} (native inputs: {inputs})")
        click.echo(f"   Locked:    {result.locked_packages} packages")
        if result.bake_targets:
            click.echo(f"   Images:    {', '.join(result.bake_targets)}")
    else:
        click.secho("❌ Validation errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • [{err.category}] {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        sys.exit(EXIT_ERROR)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def toolchain(ctx: click.Context, as_json: bool) -> None:
    """Compose and show the pinned toolchain."""
    from buildplane.core.config.loader import load_workspace
    from buildplane.core.services.toolchain import compose

    try:
        workspace = load_workspace(ctx.obj.get("config_path"))
        spec = compose(workspace.config.toolchain.components)
    except BuildPlaneError as e:
        fail(e, as_json)
        return

    if as_json:
        click.echo(json.dumps({"handle": spec.handle, **spec.model_dump(mode="json")}, indent=2))
        return

    click.secho(f"🔧 Toolchain {spec.handle}", fg="cyan", bold=True)
    for component in spec.components:
        click.echo(f"   {component.role:<11} {component.label}")


@cli.command()
@click.option("--platform", default=None, help="Target platform (default: host).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def deps(platform: str | None, as_json: bool) -> None:
    """Show the native dependencies a platform needs."""
    from buildplane.core.services import platform_deps

    try:
        result = platform_deps.resolve(platform or platform_deps.current_platform())
    except BuildPlaneError as e:
        fail(e, as_json)
        return

    if as_json:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    click.secho(f"🖥️  {result.platform.value}", fg="cyan", bold=True)
    if result.empty:
        click.echo("   No extra native dependencies.")
    for ref in result.references:
        click.echo(f"   • {ref}")


# ── Build ───────────────────────────────────────────────────────


@cli.command()
@click.option("--out", "out_dir", type=click.Path(file_okay=False), default=None, help="Install prefix.")
@click.option("--platform", default=None, help="Target platform (default: host).")
@click.option("--shell", "shells", multiple=True, type=click.Choice(SHELL_CHOICES), help="Completion shells.")
@click.option("--no-completions", is_flag=True, help="Skip completion generation.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def build(
    ctx: click.Context,
    out_dir: str | None,
    platform: str | None,
    shells: tuple[str, ...],
    no_completions: bool,
    as_json: bool,
) -> None:
    """Build the binary and install its shell completions."""
    from buildplane.core.use_cases.package import run_package

    try:
        result = run_package(
            config_path=ctx.obj.get("config_path"),
            out_dir=Path(out_dir) if out_dir else None,
            platform=platform,
            shells=[ShellKind(s) for s in shells] if shells else None,
            completions=not no_completions,
        )
    except BuildPlaneError as e:
        fail(e, as_json)
        return

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        artifact = result.artifact
        assert artifact is not None  # run_package raises otherwise
        click.secho(f"📦 {artifact.name} {artifact.version}", fg="green", bold=True)
        click.echo(f"   Binary:    {artifact.path}")
        click.echo(f"   sha256:    {artifact.digest}")
        click.echo(f"   Toolchain: {artifact.toolchain}")
        for shell, completion in result.completions.items():
            click.echo(f"   ✓ {shell.value:<5} {completion.path}")
        for shell, reason in result.completion_failures.items():
            click.secho(f"   ✗ {shell.value:<5} {reason}", fg="yellow")

    if result.completion_failures:
        sys.exit(EXIT_PARTIAL)


@cli.command()
@click.argument("shell", type=click.Choice(SHELL_CHOICES))
def completions(shell: str) -> None:
    """Print the completion script for this tool."""
    comp_cls = get_completion_class(shell)
    assert comp_cls is not None  # all choices are click built-ins
    comp = comp_cls(cli, {}, "buildplane", "_BUILDPLANE_COMPLETE")
    click.echo(comp.source())


# ── Register sub-command groups from buildplane/ui/cli/ ─────────

from buildplane.ui.cli.bake import bake
from buildplane.ui.cli.devshell import devshell

cli.add_command(bake)
cli.add_command(devshell)


if __name__ == "__main__":
    cli()

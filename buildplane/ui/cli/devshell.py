"""
CLI commands for the contributor dev shell.

Thin wrappers over ``buildplane.core.services.devshell``.  Nothing here
triggers a build; ``run`` executes exactly the command it is given.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from buildplane.core.errors import BuildPlaneError
from buildplane.ui.cli.helpers import fail


def _provision(ctx: click.Context, platform: str | None):
    from buildplane.core.config.loader import load_workspace
    from buildplane.core.services import platform_deps
    from buildplane.core.services.devshell import provision_from_config
    from buildplane.core.services.toolchain import compose

    workspace = load_workspace(ctx.obj.get("config_path"))
    toolchain = compose(workspace.config.toolchain.components)
    deps = platform_deps.resolve(platform or platform_deps.current_platform())
    return workspace, provision_from_config(toolchain, deps, workspace.config.devshell, workspace.root)


@click.group()
def devshell() -> None:
    """Dev shell — environment, workspace-wide wrappers, run commands."""


@devshell.command("env")
@click.option("--platform", default=None, help="Target platform (default: host).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def env(ctx: click.Context, platform: str | None, as_json: bool) -> None:
    """Print the environment (eval-able exports, or JSON)."""
    try:
        _, environment = _provision(ctx, platform)
    except BuildPlaneError as e:
        fail(e, as_json)
        return

    if as_json:
        click.echo(json.dumps(environment.model_dump(mode="json"), indent=2))
        return

    click.echo(environment.shell_exports())


@devshell.command("wrappers")
@click.argument("bin_dir", type=click.Path(file_okay=False))
@click.option("--platform", default=None, help="Target platform (default: host).")
@click.pass_context
def wrappers(ctx: click.Context, bin_dir: str, platform: str | None) -> None:
    """Write the cargo-*-all wrapper scripts into BIN_DIR."""
    from buildplane.core.services.devshell import materialize

    try:
        _, environment = _provision(ctx, platform)
    except BuildPlaneError as e:
        fail(e)
        return

    written = materialize(environment, Path(bin_dir))
    click.secho(f"🧰 {len(written)} wrapper(s) in {bin_dir}", fg="cyan", bold=True)
    for path in written:
        click.echo(f"   • {path.name}")


@devshell.command("run", context_settings={"ignore_unknown_options": True})
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--bin-dir", type=click.Path(file_okay=False), default=None,
              help="Wrapper directory to put first on PATH.")
@click.pass_context
def run(ctx: click.Context, command: tuple[str, ...], bin_dir: str | None) -> None:
    """Run COMMAND inside the dev shell environment."""
    from buildplane.core.services.devshell import materialize, run_in_session

    try:
        workspace, environment = _provision(ctx, None)
    except BuildPlaneError as e:
        fail(e)
        return

    wrapper_dir = Path(bin_dir) if bin_dir else None
    if wrapper_dir is not None:
        materialize(environment, wrapper_dir)

    try:
        code = run_in_session(environment, list(command), cwd=workspace.root, bin_dir=wrapper_dir)
    except FileNotFoundError:
        click.secho(f"❌ Command not found: {command[0]}", fg="red", err=True)
        sys.exit(127)
    sys.exit(code)

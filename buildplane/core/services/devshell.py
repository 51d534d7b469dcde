"""
Dev environment provisioner — the contributor shell.

Provisioning only *describes* the environment: toolchain, workspace-wide
command wrappers, native inputs and environment overrides.  A non-stable
channel is selected through ``RUSTUP_TOOLCHAIN`` so the bare ``cargo``
in every wrapper resolves to the composed toolchain.  Nothing is
built.  Overrides take effect inside ``DevEnvironment.activate()`` and
are reverted when it exits.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterable
from pathlib import Path

from buildplane.core.models.config import DevShellConfig
from buildplane.core.models.devenv import CommandWrapper, DevEnvironment
from buildplane.core.models.platform import PlatformDependencySet
from buildplane.core.models.toolchain import ToolchainSpec
from buildplane.core.services.platform_deps import LIBRARY_PATH_VARIABLE

logger = logging.getLogger(__name__)

WORKSPACE_ARGS: tuple[str, ...] = (
    "--workspace",
    "--bins",
    "--examples",
    "--tests",
    "--benches",
    "--all-targets",
)
UNIT_TEST_ARGS: tuple[str, ...] = ("--workspace",)


def default_wrappers(
    workspace_args: Iterable[str] = WORKSPACE_ARGS,
    unit_test_args: Iterable[str] = UNIT_TEST_ARGS,
) -> list[CommandWrapper]:
    """cargo-{build,clippy,doc,fmt,nextest,test}-all with every target pre-filled."""
    ws = list(workspace_args)
    ut = list(unit_test_args)
    return [
        CommandWrapper(name="cargo-build-all", command=["cargo", "build"], args=ws),
        CommandWrapper(name="cargo-clippy-all", command=["cargo", "clippy"], args=ws),
        CommandWrapper(name="cargo-doc-all", command=["cargo", "doc"], args=["--workspace", "--no-deps"]),
        CommandWrapper(name="cargo-fmt-all", command=["cargo", "fmt"], args=["--all"]),
        CommandWrapper(name="cargo-nextest-all", command=["cargo", "nextest", "run"], args=ut),
        CommandWrapper(name="cargo-test-all", command=["cargo", "test"], args=ut),
    ]


def provision(
    toolchain: ToolchainSpec,
    platform_deps: PlatformDependencySet,
    aux_tools: Iterable[CommandWrapper] = (),
    library_path: Iterable[str | Path] = (),
    env: dict[str, str] | None = None,
    workspace_args: Iterable[str] | None = None,
    unit_test_args: Iterable[str] | None = None,
) -> DevEnvironment:
    """Assemble the dev environment description.

    Args:
        toolchain: Composed toolchain.
        platform_deps: Native inputs for the host platform.
        aux_tools: Extra wrappers; a name matching a default replaces it.
        library_path: Native library directories to prepend to the
            platform's loader search path.
        env: Plain variable overrides.
        workspace_args / unit_test_args: Replace the built-in flag sets.
    """
    wrappers: dict[str, CommandWrapper] = {
        w.name: w
        for w in default_wrappers(
            WORKSPACE_ARGS if workspace_args is None else workspace_args,
            UNIT_TEST_ARGS if unit_test_args is None else unit_test_args,
        )
    }
    for tool in aux_tools:
        if tool.name in wrappers:
            logger.debug("Wrapper %s overridden by configuration", tool.name)
        wrappers[tool.name] = tool

    path_var = LIBRARY_PATH_VARIABLE[platform_deps.platform]
    entries = [str(p) for p in library_path]

    set_env = {"BUILDPLANE_TOOLCHAIN": toolchain.handle}
    if toolchain.rustup_toolchain:
        set_env["RUSTUP_TOOLCHAIN"] = toolchain.rustup_toolchain
    set_env.update(env or {})

    environment = DevEnvironment(
        toolchain=toolchain.handle,
        platform=platform_deps.platform.value,
        wrappers=list(wrappers.values()),
        native_inputs=list(platform_deps.references),
        prepend={path_var: entries} if entries else {},
        set_env=set_env,
    )
    logger.info(
        "Provisioned dev shell: %d wrappers, %d native inputs, %d library dirs",
        len(environment.wrappers),
        len(environment.native_inputs),
        len(entries),
    )
    return environment


def provision_from_config(
    toolchain: ToolchainSpec,
    platform_deps: PlatformDependencySet,
    config: DevShellConfig,
    root: Path,
) -> DevEnvironment:
    """``provision`` driven by the ``devshell:`` section of buildplane.yml."""
    tools = [CommandWrapper(name=t.name, command=t.command, args=t.args) for t in config.tools]
    library_path = [(root / p).resolve() if not Path(p).is_absolute() else Path(p) for p in config.library_path]
    return provision(
        toolchain,
        platform_deps,
        aux_tools=tools,
        library_path=library_path,
        env=config.env,
        workspace_args=config.workspace_args,
        unit_test_args=config.unit_test_args,
    )


def materialize(environment: DevEnvironment, bin_dir: Path) -> list[Path]:
    """Write each wrapper as an executable script into ``bin_dir``."""
    bin_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for wrapper in environment.wrappers:
        path = bin_dir / wrapper.name
        path.write_text(wrapper.script(), encoding="utf-8")
        path.chmod(0o755)
        written.append(path)
    logger.debug("Wrote %d wrappers to %s", len(written), bin_dir)
    return written


def run_in_session(
    environment: DevEnvironment,
    argv: list[str],
    cwd: Path | None = None,
    bin_dir: Path | None = None,
) -> int:
    """Run a command inside the dev shell and return its exit code.

    The session's overrides (and ``bin_dir`` on PATH, if given) exist only
    for the lifetime of the command.  Output streams straight through.
    """
    with environment.activate() as applied:
        env = dict(os.environ)
        if bin_dir is not None:
            env["PATH"] = os.pathsep.join([str(bin_dir), env.get("PATH", "")])
        logger.debug("devshell run %s (overrides: %s)", argv, sorted(applied))
        completed = subprocess.run(argv, cwd=cwd, env=env, check=False)
    return completed.returncode

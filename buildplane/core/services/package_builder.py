"""
Package builder — turn workspace source + lock file + toolchain into a binary.

Flow:
    check lock file → cargo build (deterministic env) → install into <out>/bin

The compiler is invoked through the adapter registry.  Its failure is
surfaced as CompileError carrying stderr exactly as emitted.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from buildplane.adapters.registry import AdapterRegistry
from buildplane.core.errors import CompileError
from buildplane.core.models.action import Action
from buildplane.core.models.package import BinaryArtifact, PackageSpec
from buildplane.core.models.platform import PlatformDependencySet
from buildplane.core.models.toolchain import ToolchainSpec
from buildplane.core.services.lockfile import check_lockfile

logger = logging.getLogger(__name__)

NATIVE_INPUTS_VARIABLE = "BUILDPLANE_NATIVE_INPUTS"
REMAPPED_SOURCE = "/build/source"


@dataclass
class BuildOptions:
    """Knobs for one build invocation."""

    out_dir: Path = Path("result")
    profile: str = "release"
    source_date_epoch: int = 0
    offline: bool = False
    extra_args: list[str] = field(default_factory=list)
    target_dir: Path | None = None          # cargo --target-dir; default <source>/target


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(1 << 16), b""):
            digest.update(chunk)
    return digest.hexdigest()


def build_environment(
    pkg: PackageSpec,
    deps: PlatformDependencySet,
    options: BuildOptions,
) -> dict[str, str | None]:
    """Environment overrides that make the build reproducible.

    Timestamps are pinned, incremental compilation is off and the
    source path is remapped so it never ends up in the binary.
    """
    rustflags = os.environ.get("RUSTFLAGS", "")
    remap = f"--remap-path-prefix={pkg.source}={REMAPPED_SOURCE}"
    env: dict[str, str | None] = {
        "SOURCE_DATE_EPOCH": str(options.source_date_epoch),
        "CARGO_INCREMENTAL": "0",
        "RUSTFLAGS": f"{rustflags} {remap}".strip(),
        NATIVE_INPUTS_VARIABLE: " ".join(deps.references),
    }
    return env


def cargo_command(
    pkg: PackageSpec,
    toolchain: ToolchainSpec,
    options: BuildOptions,
) -> list[str]:
    """The cargo invocation for a locked, profile-specific build."""
    argv = ["cargo", *toolchain.cargo_channel_arg, "build", "--locked"]
    if options.profile == "release":
        argv.append("--release")
    else:
        argv.extend(["--profile", options.profile])
    if options.offline:
        argv.append("--offline")
    argv.extend(["--manifest-path", str(pkg.manifest)])
    if options.target_dir is not None:
        argv.extend(["--target-dir", str(options.target_dir)])
    argv.extend(options.extra_args)
    return argv


def built_binary_path(pkg: PackageSpec, options: BuildOptions) -> Path:
    """Where cargo leaves the binary for ``options.profile``."""
    target_dir = options.target_dir or (pkg.source / "target")
    profile_dir = "debug" if options.profile == "dev" else options.profile
    return target_dir / profile_dir / pkg.name


def build(
    pkg: PackageSpec,
    toolchain: ToolchainSpec,
    deps: PlatformDependencySet,
    registry: AdapterRegistry,
    options: BuildOptions | None = None,
) -> BinaryArtifact:
    """Build and install the package binary.

    Args:
        pkg: The package, derived from the workspace manifest.
        toolchain: A composed toolchain.
        deps: Native dependencies for the target platform.
        registry: Dispatch for the cargo invocation.
        options: Output location and build knobs.

    Returns:
        The installed BinaryArtifact; ``digest`` identifies the exact bits.

    Raises:
        LockFileMismatch: The lock file does not pin the declared deps.
        CompileError: cargo failed (stderr is passed through verbatim).
    """
    options = options or BuildOptions()

    check_lockfile(pkg)

    argv = cargo_command(pkg, toolchain, options)
    action = Action(
        id=f"build:{pkg.name}",
        argv=argv,
        cwd=str(pkg.source),
        env=build_environment(pkg, deps, options),
    )

    logger.info("Building %s with toolchain %s", pkg.label, toolchain.handle)
    receipt = registry.execute_action(action, workspace=str(pkg.source))
    if receipt.failed:
        raise CompileError(
            receipt.stderr or receipt.error or "",
            returncode=receipt.returncode,
            command=argv,
        )

    produced = built_binary_path(pkg, options)
    if not produced.is_file():
        raise CompileError(
            f"cargo reported success but {produced} does not exist",
            returncode=receipt.returncode,
            command=argv,
        )

    bin_dir = options.out_dir / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)
    installed = bin_dir / pkg.name
    shutil.copyfile(produced, installed)
    installed.chmod(0o755)
    # Installed file carries the pinned timestamp, not the build time.
    os.utime(installed, (options.source_date_epoch, options.source_date_epoch))

    artifact = BinaryArtifact(
        name=pkg.name,
        version=pkg.version,
        path=installed,
        digest=sha256_file(installed),
        toolchain=toolchain.handle,
        platform=deps.platform.value,
    )
    logger.info("Installed %s → %s (sha256 %s)", pkg.label, installed, artifact.digest[:12])
    return artifact

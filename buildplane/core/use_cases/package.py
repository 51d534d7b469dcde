"""
Package use case — the full build pipeline.

Flow:
    compose toolchain → resolve platform deps → build → generate completions

Validation errors surface before cargo runs.  A completion failure
after a successful build is reported, not fatal: the binary stays
installed and the result carries the per-shell failures.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from buildplane.adapters.registry import AdapterRegistry
from buildplane.core.config.loader import load_workspace
from buildplane.core.errors import ConfigError, PartialCompletionFailure
from buildplane.core.models.completion import ShellCompletionArtifact, ShellKind
from buildplane.core.models.package import BinaryArtifact
from buildplane.core.services import platform_deps
from buildplane.core.services.completions import generate_completions
from buildplane.core.services.package_builder import BuildOptions, build
from buildplane.core.services.toolchain import compose

logger = logging.getLogger(__name__)


@dataclass
class PackageResult:
    """Outcome of one pipeline run."""

    artifact: BinaryArtifact | None = None
    completions: dict[ShellKind, ShellCompletionArtifact] = field(default_factory=dict)
    completion_failures: dict[ShellKind, str] = field(default_factory=dict)

    @property
    def status(self) -> str:
        if self.artifact is None:
            return "failed"
        return "partial" if self.completion_failures else "ok"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "artifact": self.artifact.model_dump(mode="json") if self.artifact else None,
            "completions": {
                s.value: str(a.path) for s, a in self.completions.items()
            },
            "completion_failures": {
                s.value: reason for s, reason in self.completion_failures.items()
            },
        }


def _source_date_epoch(default: int) -> int:
    """SOURCE_DATE_EPOCH from the environment, else the configured value."""
    raw = os.environ.get("SOURCE_DATE_EPOCH")
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"SOURCE_DATE_EPOCH must be an integer, got {raw!r}") from e


def run_package(
    config_path: Path | None = None,
    registry: AdapterRegistry | None = None,
    out_dir: Path | None = None,
    platform: str | None = None,
    shells: list[ShellKind] | None = None,
    completions: bool = True,
) -> PackageResult:
    """Build the workspace binary and install its completions.

    Raises:
        ConfigError, ChannelMismatch, DuplicateComponent,
        UnsupportedPlatform, LockFileMismatch, CompileError
    """
    workspace = load_workspace(config_path)
    config = workspace.config
    registry = registry or AdapterRegistry.default()

    toolchain = compose(config.toolchain.components)
    deps = platform_deps.resolve(platform or platform_deps.current_platform())
    pkg = workspace.package()

    out = out_dir or (workspace.root / config.build.out_dir)
    options = BuildOptions(
        out_dir=out,
        profile=config.build.profile,
        source_date_epoch=_source_date_epoch(config.build.source_date_epoch),
        offline=config.build.offline,
        extra_args=list(config.build.extra_args),
    )

    result = PackageResult(artifact=build(pkg, toolchain, deps, registry, options))

    selected = config.completions if shells is None else shells
    if completions and selected:
        try:
            result.completions = generate_completions(result.artifact, selected, registry, out)
        except PartialCompletionFailure as e:
            result.completions = dict(e.artifacts)
            result.completion_failures = dict(e.failed)

    logger.info("Package %s finished: %s", pkg.label, result.status)
    return result

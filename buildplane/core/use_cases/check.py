"""
Check use case — validate everything before anything expensive runs.

Covers buildplane.yml, the workspace manifest, toolchain composition,
platform resolution, the lock file and the container build description.
No external tool is invoked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from buildplane.core.config.loader import Workspace, load_workspace
from buildplane.core.errors import BuildPlaneError
from buildplane.core.models.package import PackageSpec
from buildplane.core.models.platform import PlatformDependencySet
from buildplane.core.models.toolchain import ToolchainSpec
from buildplane.core.services import bake as bake_service
from buildplane.core.services import platform_deps
from buildplane.core.services.lockfile import check_lockfile
from buildplane.core.services.toolchain import compose

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Result of validating a workspace."""

    config_path: Path | None = None
    package: PackageSpec | None = None
    toolchain: ToolchainSpec | None = None
    platform_deps: PlatformDependencySet | None = None
    bake_targets: list[str] = field(default_factory=list)
    locked_packages: int = 0
    errors: list[BuildPlaneError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "package": (
                {"name": self.package.name, "version": self.package.version}
                if self.package else None
            ),
            "toolchain": self.toolchain.handle if self.toolchain else None,
            "platform": self.platform_deps.platform.value if self.platform_deps else None,
            "native_inputs": list(self.platform_deps.references) if self.platform_deps else [],
            "locked_packages": self.locked_packages,
            "bake_targets": self.bake_targets,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": self.warnings,
        }


def check_workspace(
    config_path: Path | None = None,
    platform: str | None = None,
) -> CheckResult:
    """Run every validation step and collect the outcome.

    A configuration error stops the check (nothing else can be read);
    every later step is attempted independently so one report lists
    all problems.
    """
    result = CheckResult()

    try:
        workspace: Workspace = load_workspace(config_path)
    except BuildPlaneError as e:
        result.errors.append(e)
        return result
    result.config_path = workspace.config_path

    try:
        result.toolchain = compose(workspace.config.toolchain.components)
    except BuildPlaneError as e:
        result.errors.append(e)

    try:
        result.platform_deps = platform_deps.resolve(platform or platform_deps.current_platform())
    except BuildPlaneError as e:
        result.errors.append(e)

    try:
        result.package = workspace.package()
    except BuildPlaneError as e:
        result.errors.append(e)

    if result.package is not None:
        try:
            result.locked_packages = len(check_lockfile(result.package))
        except BuildPlaneError as e:
            result.errors.append(e)

    try:
        bake = workspace.bake()
        if bake.targets:
            resolved = bake_service.resolve_bake(bake, result.package)
            result.bake_targets = list(resolved.targets)
            for context in bake_service.floating_contexts(resolved):
                result.warnings.append(f"Context {context} has no tag or digest and follows :latest.")
        else:
            result.warnings.append("No container targets defined.")
    except BuildPlaneError as e:
        result.errors.append(e)

    if not workspace.config.completions:
        result.warnings.append("No completion shells configured.")

    logger.info("Check finished: %d error(s), %d warning(s)", len(result.errors), len(result.warnings))
    return result

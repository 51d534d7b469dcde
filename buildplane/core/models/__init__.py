"""
Domain models — Pydantic types for the build plane.

All models are re-exported here for convenient access:

    from buildplane.core.models import PackageSpec, ToolchainSpec, BakeFile
"""

from buildplane.core.models.action import Action, Receipt
from buildplane.core.models.completion import ALL_SHELLS, ShellCompletionArtifact, ShellKind
from buildplane.core.models.config import (
    BuildConfig,
    BuildPlaneConfig,
    DevShellConfig,
    ToolchainConfig,
    ToolConfig,
)
from buildplane.core.models.container import BakeFile, BuildGroup, ContainerBuildTarget
from buildplane.core.models.devenv import CommandWrapper, DevEnvironment
from buildplane.core.models.package import (
    BinaryArtifact,
    DeclaredDependency,
    LockedPackage,
    PackageSpec,
)
from buildplane.core.models.platform import PlatformDependencySet, PlatformId
from buildplane.core.models.toolchain import ComponentRef, ToolchainSpec

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # completion.py
    "ALL_SHELLS",
    "ShellCompletionArtifact",
    "ShellKind",
    # config.py
    "BuildConfig",
    "BuildPlaneConfig",
    "DevShellConfig",
    "ToolchainConfig",
    "ToolConfig",
    # container.py
    "BakeFile",
    "BuildGroup",
    "ContainerBuildTarget",
    # devenv.py
    "CommandWrapper",
    "DevEnvironment",
    # package.py
    "BinaryArtifact",
    "DeclaredDependency",
    "LockedPackage",
    "PackageSpec",
    # platform.py
    "PlatformDependencySet",
    "PlatformId",
    # toolchain.py
    "ComponentRef",
    "ToolchainSpec",
]

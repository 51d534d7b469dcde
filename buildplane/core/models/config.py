"""
Build plane configuration — the schema of buildplane.yml.

buildplane.yml says *how* to build; the workspace manifest says *what*
is built.  Package name and version are deliberately absent here.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from buildplane.core.models.completion import ALL_SHELLS, ShellKind
from buildplane.core.models.toolchain import ComponentRef


def _default_components() -> list[ComponentRef]:
    return [
        ComponentRef(role="compiler", name="rustc"),
        ComponentRef(role="build-tool", name="cargo"),
        ComponentRef(role="linter", name="clippy"),
        ComponentRef(role="source", name="rust-src"),
        ComponentRef(role="stdlib", name="rust-std"),
        ComponentRef(role="formatter", name="rustfmt"),
    ]


class ToolchainConfig(BaseModel):
    """The ``toolchain:`` section."""

    components: list[ComponentRef] = Field(default_factory=_default_components)


class ToolConfig(BaseModel):
    """An extra dev-shell wrapper declared by the user."""

    name: str
    command: list[str]
    args: list[str] = Field(default_factory=list)


class DevShellConfig(BaseModel):
    """The ``devshell:`` section."""

    library_path: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    tools: list[ToolConfig] = Field(default_factory=list)
    workspace_args: list[str] | None = None      # None = built-in defaults
    unit_test_args: list[str] | None = None


class BuildConfig(BaseModel):
    """The ``build:`` section."""

    profile: str = "release"
    out_dir: str = "result"
    source_date_epoch: int = 0
    offline: bool = False
    extra_args: list[str] = Field(default_factory=list)


class BuildPlaneConfig(BaseModel):
    """Root of buildplane.yml."""

    workspace: str = "."
    manifest: str = "Cargo.toml"
    lockfile: str = "Cargo.lock"
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    completions: list[ShellKind] = Field(default_factory=lambda: list(ALL_SHELLS))
    devshell: DevShellConfig = Field(default_factory=DevShellConfig)
    containers: dict[str, Any] = Field(default_factory=dict)

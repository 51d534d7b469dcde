"""
Configuration loader — reads buildplane.yml and the workspace manifest.

buildplane.yml is YAML validated against Pydantic schemas.  The workspace
manifest (Cargo.toml) is TOML and is the single authoritative source of
the package name and version: PackageSpec is always derived from it.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from buildplane.core.errors import ConfigError
from buildplane.core.models.config import BuildPlaneConfig
from buildplane.core.models.container import BakeFile
from buildplane.core.models.package import DeclaredDependency, PackageSpec

logger = logging.getLogger(__name__)

CONFIG_FILE = "buildplane.yml"
_CONFIG_ALTERNATES = ("buildplane.yml", "buildplane.yaml")

_DEPENDENCY_SECTIONS = ("dependencies", "build-dependencies")


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for buildplane.yml starting from the given directory, walking up.

    Returns:
        Path to the config file, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        for name in _CONFIG_ALTERNATES:
            candidate = current / name
            if candidate.is_file():
                return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path | None = None) -> BuildPlaneConfig:
    """Load and validate buildplane.yml.

    Args:
        path: Explicit path. If None, searches upward from cwd.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_config_file()

    if path is None:
        raise ConfigError(f"No {CONFIG_FILE} found. Specify one with --config.")

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading build config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = BuildPlaneConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid build configuration in {path}: {e}") from e

    logger.info(
        "Loaded build config: %d toolchain components, %d container targets",
        len(config.toolchain.components),
        len((config.containers or {}).get("targets") or {}),
    )
    return config


def workspace_root(config_path: Path, config: BuildPlaneConfig) -> Path:
    """The workspace directory, relative to the config file's directory."""
    return (config_path.parent / config.workspace).resolve()


def read_toml(path: Path) -> dict[str, Any]:
    """Read a TOML file, mapping every failure to ConfigError."""
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except FileNotFoundError as e:
        raise ConfigError(f"File not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def declared_dependencies(manifest: dict[str, Any]) -> tuple[DeclaredDependency, ...]:
    """Collect every dependency that carries a version requirement.

    Path and git dependencies without a version, and ``{ workspace = true }``
    references, are pinned by the workspace itself and skipped.
    """
    sections: list[tuple[str, dict[str, Any]]] = []
    workspace = manifest.get("workspace") or {}
    if isinstance(workspace.get("dependencies"), dict):
        sections.append(("workspace.dependencies", workspace["dependencies"]))
    for name in _DEPENDENCY_SECTIONS:
        if isinstance(manifest.get(name), dict):
            sections.append((name, manifest[name]))

    deps: list[DeclaredDependency] = []
    for section, entries in sections:
        for dep_name, spec in entries.items():
            requirement: str | None = None
            package = dep_name
            if isinstance(spec, str):
                requirement = spec
            elif isinstance(spec, dict):
                version = spec.get("version")
                if isinstance(version, str):
                    requirement = version
                package = str(spec.get("package", dep_name))
            if requirement:
                deps.append(DeclaredDependency(name=package, requirement=requirement, section=section))
    return tuple(deps)


def load_package(root: Path, config: BuildPlaneConfig) -> PackageSpec:
    """Derive the PackageSpec from the workspace manifest.

    Name:    [workspace.metadata.crane].name, else [package].name
    Version: [workspace.package].version, else [package].version

    Raises:
        ConfigError: If the manifest is missing or lacks a name/version.
    """
    manifest_path = root / config.manifest
    data = read_toml(manifest_path)

    workspace = data.get("workspace") or {}
    package = data.get("package") or {}

    name = ((workspace.get("metadata") or {}).get("crane") or {}).get("name") or package.get("name")
    version = (workspace.get("package") or {}).get("version") or package.get("version")

    if isinstance(version, dict):
        # `version.workspace = true` in a member manifest
        version = None

    if not name:
        raise ConfigError(
            f"{manifest_path} declares no package name "
            "([workspace.metadata.crane].name or [package].name)"
        )
    if not version:
        raise ConfigError(
            f"{manifest_path} declares no version "
            "([workspace.package].version or [package].version)"
        )

    spec = PackageSpec(
        name=str(name),
        version=str(version),
        source=root,
        manifest=manifest_path,
        lockfile=root / config.lockfile,
        dependencies=declared_dependencies(data),
    )
    logger.debug("Package %s from %s (%d declared deps)", spec.label, manifest_path, len(spec.dependencies))
    return spec


@dataclass
class Workspace:
    """A loaded buildplane.yml plus where it lives."""

    config_path: Path
    config: BuildPlaneConfig
    root: Path

    def package(self) -> PackageSpec:
        return load_package(self.root, self.config)

    def bake(self) -> BakeFile:
        return load_bake(self.config)


def load_workspace(config_path: Path | None = None) -> Workspace:
    """Find and load buildplane.yml, resolving the workspace root.

    Raises:
        ConfigError: If no config can be found or it is invalid.
    """
    path = config_path or find_config_file()
    if path is None:
        raise ConfigError(f"No {CONFIG_FILE} found. Specify one with --config.")
    config = load_config(path)
    return Workspace(config_path=path, config=config, root=workspace_root(path, config))


def load_bake(config: BuildPlaneConfig) -> BakeFile:
    """Parse the ``containers:`` section into a BakeFile (unresolved).

    Raises:
        ConfigError: If the section does not fit the schema.
    """
    try:
        return BakeFile.from_mapping(config.containers or {})
    except (ValidationError, AttributeError, TypeError) as e:
        raise ConfigError(f"Invalid containers section: {e}") from e

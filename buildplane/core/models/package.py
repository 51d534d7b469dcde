"""
Package models — what gets built and what comes out.

PackageSpec is derived from the workspace manifest and nowhere else.
Name and version must never be written down a second time.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class DeclaredDependency(BaseModel):
    """A dependency as declared in the workspace manifest."""

    model_config = ConfigDict(frozen=True)

    name: str
    requirement: str             # cargo version requirement, e.g. "1.0", "^0.4", "=2.1.3"
    section: str = "dependencies"


class LockedPackage(BaseModel):
    """One ``[[package]]`` entry of the lock file."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    source: str = ""
    checksum: str = ""


class PackageSpec(BaseModel):
    """The package to build, read from the workspace manifest."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    source: Path                 # workspace root
    manifest: Path
    lockfile: Path
    dependencies: tuple[DeclaredDependency, ...] = Field(default_factory=tuple)

    @property
    def label(self) -> str:
        return f"{self.name} {self.version}"


class BinaryArtifact(BaseModel):
    """A built, installed binary."""

    name: str
    version: str
    path: Path
    digest: str                  # sha256 of the installed file
    toolchain: str               # toolchain handle
    platform: str

    @property
    def exists(self) -> bool:
        return self.path.is_file()

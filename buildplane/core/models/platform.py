"""
Platform models — the supported build platforms and their native inputs.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PlatformId(str, Enum):
    """Supported build platforms."""

    LINUX = "linux"
    MACOS = "macos"


class PlatformDependencySet(BaseModel):
    """Native libraries/frameworks a platform needs at build and run time.

    Empty ``references`` is valid: the platform needs nothing extra.
    """

    model_config = ConfigDict(frozen=True)

    platform: PlatformId
    references: tuple[str, ...] = Field(default_factory=tuple)

    @property
    def empty(self) -> bool:
        return not self.references

"""
Shell completion models.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel


class ShellKind(str, Enum):
    """Shells the produced binary can generate completions for."""

    BASH = "bash"
    FISH = "fish"
    ZSH = "zsh"

    def install_path(self, root: Path, command: str) -> Path:
        """Where a packaged completion script for ``command`` lives under ``root``."""
        if self is ShellKind.BASH:
            return root / "share" / "bash-completion" / "completions" / f"{command}.bash"
        if self is ShellKind.FISH:
            return root / "share" / "fish" / "vendor_completions.d" / f"{command}.fish"
        return root / "share" / "zsh" / "site-functions" / f"_{command}"


ALL_SHELLS: tuple[ShellKind, ...] = (ShellKind.BASH, ShellKind.FISH, ShellKind.ZSH)


class ShellCompletionArtifact(BaseModel):
    """A generated completion script, already written to its install path."""

    shell: ShellKind
    command: str
    content: str
    path: Path

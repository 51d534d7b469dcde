"""
Toolchain models — the components that make up one compiler toolchain.

A toolchain is an ordered set of components (compiler, build tool,
linter, formatter, standard library, sources) that must all come from
one release channel.  Construction goes through
``buildplane.core.services.toolchain.compose`` which enforces that.
"""

from __future__ import annotations

import hashlib
import json
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ComponentRole = Literal["compiler", "build-tool", "linter", "formatter", "stdlib", "source"]


class ComponentRef(BaseModel):
    """One toolchain component pinned to a release channel."""

    model_config = ConfigDict(frozen=True)

    role: ComponentRole
    name: str
    channel: str = "stable"      # "stable", "beta", "nightly-2025-01-01", "1.83.0"
    version: str = ""            # optional exact version within the channel

    @property
    def label(self) -> str:
        suffix = f"@{self.version}" if self.version else ""
        return f"{self.channel}.{self.name}{suffix}"


class ToolchainSpec(BaseModel):
    """A composed, single-channel toolchain.

    The ``handle`` is what downstream steps carry around: a stable
    fingerprint over the ordered components.  Two toolchains with the
    same components in the same order share a handle.
    """

    model_config = ConfigDict(frozen=True)

    channel: str
    components: tuple[ComponentRef, ...] = Field(default_factory=tuple)

    @property
    def handle(self) -> str:
        payload = json.dumps(
            [c.model_dump() for c in self.components],
            sort_keys=True,
            separators=(",", ":"),
        )
        return f"{self.channel}-{hashlib.sha256(payload.encode()).hexdigest()[:16]}"

    @property
    def rustup_toolchain(self) -> str | None:
        """The channel rustup must select, None when the default one does."""
        if self.channel in ("stable", "default"):
            return None
        return self.channel

    @property
    def cargo_channel_arg(self) -> list[str]:
        """``+channel`` override for rustup-style launchers, empty for stable."""
        channel = self.rustup_toolchain
        return [f"+{channel}"] if channel else []

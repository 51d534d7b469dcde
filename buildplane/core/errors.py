"""
Error taxonomy — every failure the build plane can surface.

Validation-class errors (ChannelMismatch, UnsupportedPlatform,
UnresolvedBuildContext, LockFileMismatch, ConfigError) are raised before
any external tool runs.  Execution-class errors (CompileError) carry the
external tool's output unmodified.

Adapters never raise — they return Receipts.  Services translate a
failed Receipt into one of these exceptions.
"""

from __future__ import annotations

from typing import Any


class BuildPlaneError(Exception):
    """Base class for all categorized build plane errors."""

    category = "error"

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "message": str(self)}


class ConfigError(BuildPlaneError):
    """Raised when buildplane.yml or the workspace manifest is invalid or missing."""

    category = "config"


# ── Toolchain ───────────────────────────────────────────────────


class ToolchainError(BuildPlaneError):
    """Raised when a toolchain cannot be composed."""

    category = "toolchain"


class ChannelMismatch(ToolchainError):
    """Toolchain components were drawn from more than one release channel."""

    category = "channel-mismatch"

    def __init__(self, channels: dict[str, list[str]]):
        self.channels = channels
        detail = "; ".join(
            f"{channel}: {', '.join(names)}" for channel, names in channels.items()
        )
        super().__init__(f"Toolchain components span multiple channels ({detail})")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "channels": self.channels}


class DuplicateComponent(ToolchainError):
    """Two components claim the same toolchain role."""

    category = "duplicate-component"

    def __init__(self, role: str, names: list[str]):
        self.role = role
        self.names = names
        super().__init__(
            f"Toolchain role '{role}' is provided more than once: {', '.join(names)}"
        )


# ── Platform ────────────────────────────────────────────────────


class UnsupportedPlatform(BuildPlaneError):
    """Dependency resolution was requested for an unknown platform."""

    category = "unsupported-platform"

    def __init__(self, platform: str, supported: list[str]):
        self.platform = platform
        self.supported = supported
        super().__init__(
            f"Unsupported platform '{platform}' (supported: {', '.join(supported)})"
        )


# ── Build ───────────────────────────────────────────────────────


class LockFileMismatch(BuildPlaneError):
    """Declared dependencies disagree with the versions pinned in the lock file."""

    category = "lockfile-mismatch"

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__(
            "Lock file does not match declared dependencies:\n  "
            + "\n  ".join(problems)
        )

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "problems": self.problems}


class CompileError(BuildPlaneError):
    """The compiler toolchain failed.  The message is its stderr, verbatim."""

    category = "compile"

    def __init__(self, stderr: str, returncode: int | None = None, command: list[str] | None = None):
        self.stderr = stderr
        self.returncode = returncode
        self.command = command or []
        super().__init__(stderr)

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "returncode": self.returncode,
            "command": self.command,
        }


class PartialCompletionFailure(BuildPlaneError):
    """One or more shell completion scripts could not be generated.

    The binary is installed and the successful scripts are in place.
    ``artifacts`` holds what was generated; ``failed`` maps each failing
    shell kind to the reason.
    """

    category = "partial-completion-failure"

    def __init__(self, failed: dict[Any, str], artifacts: dict[Any, Any] | None = None):
        self.failed = failed
        self.artifacts = artifacts or {}
        names = ", ".join(str(getattr(k, "value", k)) for k in failed)
        super().__init__(f"Completion generation failed for: {names}")

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "failed": {str(getattr(k, "value", k)): v for k, v in self.failed.items()},
            "generated": sorted(str(getattr(k, "value", k)) for k in self.artifacts),
        }


# ── Containers ──────────────────────────────────────────────────


class UnresolvedBuildContext(BuildPlaneError):
    """A container build target references a context with no concrete image."""

    category = "unresolved-build-context"

    def __init__(self, target: str, context: str, reference: str, reason: str = ""):
        self.target = target
        self.context = context
        self.reference = reference
        msg = f"Target '{target}' context '{context}' does not resolve to an image: {reference!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class ContainerBuildError(BuildPlaneError):
    """The container build engine failed.  The message is its stderr, verbatim."""

    category = "container-build"

    def __init__(self, stderr: str, returncode: int | None = None):
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(stderr)

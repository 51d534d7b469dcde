"""
Action and Receipt models — the process invocation contract.

Every external tool the build plane drives (cargo, the freshly built
binary, docker buildx) is reached by sending an Action to an adapter.
The adapter answers with a Receipt.  Never an exception.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A single external command to run.

    ``env`` is merged over the current process environment by the
    adapter; ``None`` values remove a variable for the child.
    """

    id: str                                  # e.g. "build:axon", "completions:zsh"
    adapter: str = "shell"
    argv: list[str] = Field(default_factory=list)
    cwd: str | None = None
    env: dict[str, str | None] = Field(default_factory=dict)
    timeout: float | None = None             # seconds; None = wait forever

    @property
    def command_line(self) -> str:
        return " ".join(self.argv)


class Receipt(BaseModel):
    """Result of running an Action.

    stdout is kept exactly as emitted (completion scripts and
    similar payloads are captured through it).
    """

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        stdout: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        kwargs.setdefault("returncode", 0)
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="ok",
            stdout=stdout,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        adapter: str,
        action_id: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt (dry runs)."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="skipped",
            stdout=reason,
            **kwargs,
        )

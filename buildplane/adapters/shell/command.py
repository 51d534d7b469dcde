"""
Shell command adapter — run an argv and capture its output.

Every external tool goes through here: cargo, the built binary,
docker buildx.  Output is captured untouched so compiler diagnostics
and generated scripts reach the caller byte-for-byte.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from buildplane.adapters.base import Adapter, ExecutionContext
from buildplane.core.models.action import Receipt
from buildplane.core.observability.logging_config import log_tool_output

logger = logging.getLogger(__name__)


def child_environment(overrides: dict[str, str | None]) -> dict[str, str]:
    """The current environment with ``overrides`` applied (None removes)."""
    env = dict(os.environ)
    for key, value in overrides.items():
        if value is None:
            env.pop(key, None)
        else:
            env[key] = value
    return env


class ShellCommandAdapter(Adapter):
    """Execute an Action's argv without a shell and capture output."""

    @property
    def name(self) -> str:
        return "shell"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.action.argv
        if not argv:
            return False, "Action has an empty argv"

        cwd = context.working_dir
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        program = argv[0]
        if os.sep not in program and shutil.which(program) is None:
            return False, f"Executable not found on PATH: {program}"
        if os.sep in program and not Path(program).is_file():
            return False, f"Executable not found: {program}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        action = context.action
        cwd = context.working_dir

        logger.debug("Executing: %s (cwd=%s)", action.command_line, cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                action.argv,
                cwd=cwd,
                env=child_environment(action.env),
                capture_output=True,
                text=True,
                timeout=action.timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Command timed out after {action.timeout}s",
                metadata={"command": action.argv},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Command execution error: {e}",
                metadata={"command": action.argv},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        log_tool_output(action.id, "stderr", result.stderr)

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=action.id,
                stdout=result.stdout,
                stderr=result.stderr,
                returncode=0,
                duration_ms=elapsed_ms,
                metadata={"command": action.argv},
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=action.id,
            error=result.stderr or f"Command exited with code {result.returncode}",
            stdout=result.stdout,
            stderr=result.stderr,
            returncode=result.returncode,
            duration_ms=elapsed_ms,
            metadata={"command": action.argv},
        )

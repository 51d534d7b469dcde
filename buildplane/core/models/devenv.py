"""
Dev environment models — the ephemeral contributor shell.

A DevEnvironment is a description: wrappers to put on PATH and
environment overrides to apply.  The overrides only take effect inside
``activate()``; leaving the block restores the previous environment.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager

from pydantic import BaseModel, Field


class CommandWrapper(BaseModel):
    """A "run across the whole workspace" shortcut.

    ``cargo-clippy-all`` is ``cargo clippy`` with every workspace target
    pre-filled; extra arguments given at call time are appended.
    """

    name: str
    command: list[str]
    args: list[str] = Field(default_factory=list)

    @property
    def argv(self) -> list[str]:
        return [*self.command, *self.args]

    def script(self) -> str:
        """POSIX shell script body for this wrapper."""
        return f'#!/bin/sh\nexec {shlex.join(self.argv)} "$@"\n'


class DevEnvironment(BaseModel):
    """Everything the dev shell provides."""

    toolchain: str                                            # toolchain handle
    platform: str
    wrappers: list[CommandWrapper] = Field(default_factory=list)
    native_inputs: list[str] = Field(default_factory=list)
    prepend: dict[str, list[str]] = Field(default_factory=dict)  # VAR → entries in front
    set_env: dict[str, str] = Field(default_factory=dict)

    def get_wrapper(self, name: str) -> CommandWrapper | None:
        for wrapper in self.wrappers:
            if wrapper.name == name:
                return wrapper
        return None

    def overrides(self, base: MutableMapping[str, str] | None = None) -> dict[str, str]:
        """Resolved values for every variable this environment touches.

        Prepended variables keep whatever ``base`` already had after the
        new entries; they are never replaced.
        """
        base = os.environ if base is None else base
        result = dict(self.set_env)
        for var, entries in self.prepend.items():
            if not entries:
                continue
            existing = base.get(var, "")
            parts = [*entries, existing] if existing else list(entries)
            result[var] = os.pathsep.join(parts)
        return result

    @contextmanager
    def activate(self, environ: MutableMapping[str, str] | None = None) -> Iterator[dict[str, str]]:
        """Apply the overrides for the duration of the block.

        The previous values (or their absence) are restored on exit,
        including when the block raises.
        """
        environ = os.environ if environ is None else environ
        applied = self.overrides(environ)
        saved = {var: environ.get(var) for var in applied}
        environ.update(applied)
        try:
            yield applied
        finally:
            for var, previous in saved.items():
                if previous is None:
                    environ.pop(var, None)
                else:
                    environ[var] = previous

    def shell_exports(self) -> str:
        """``export`` lines for ``eval "$(buildplane devshell env)"``.

        Prepended variables reference the caller's own value at eval time.
        """
        lines = [f"export {var}={shlex.quote(value)}" for var, value in sorted(self.set_env.items())]
        for var, entries in sorted(self.prepend.items()):
            if not entries:
                continue
            joined = shlex.quote(os.pathsep.join(entries))
            lines.append(f'export {var}={joined}"${{{var}:+{os.pathsep}${var}}}"')
        return "\n".join(lines)

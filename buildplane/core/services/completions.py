"""
Artifact post-processor — generate and install shell completion scripts.

Runs strictly after a successful build: the freshly built binary is
asked for ``completions <shell>`` and whatever it prints is written
to the shell's packaged completion directory.  Scripts are regenerated
on every call; nothing is cached.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from buildplane.adapters.registry import AdapterRegistry
from buildplane.core.errors import PartialCompletionFailure
from buildplane.core.models.action import Action
from buildplane.core.models.completion import ShellCompletionArtifact, ShellKind
from buildplane.core.models.package import BinaryArtifact

logger = logging.getLogger(__name__)

COMPLETIONS_SUBCOMMAND = "completions"


def completion_action(binary: BinaryArtifact, shell: ShellKind) -> Action:
    return Action(
        id=f"completions:{shell.value}",
        argv=[str(binary.path), COMPLETIONS_SUBCOMMAND, shell.value],
        cwd=str(binary.path.parent),
    )


def generate_completions(
    binary: BinaryArtifact,
    shells: Iterable[ShellKind | str],
    registry: AdapterRegistry,
    install_root: Path | None = None,
) -> dict[ShellKind, ShellCompletionArtifact]:
    """Generate and install a completion script per shell.

    Args:
        binary: The artifact returned by the package builder.
        shells: Shell kinds to generate for.
        registry: Dispatch for running the binary.
        install_root: Prefix holding ``share/``; defaults to the binary's
            ``bin/`` parent.

    Returns:
        One artifact per requested shell.

    Raises:
        FileNotFoundError: The binary is not installed (build did not succeed).
        PartialCompletionFailure: At least one shell failed.  The others
            are installed and available on the exception as ``artifacts``.
    """
    if not binary.exists:
        raise FileNotFoundError(f"Binary not found, build it first: {binary.path}")

    root = install_root or binary.path.parent.parent
    command = binary.name

    artifacts: dict[ShellKind, ShellCompletionArtifact] = {}
    failed: dict[ShellKind, str] = {}

    # dict.fromkeys keeps the caller's order and drops repeats
    for shell in dict.fromkeys(ShellKind(s) for s in shells):
        path = shell.install_path(root, command)
        receipt = registry.execute_action(completion_action(binary, shell))
        if receipt.failed:
            reason = (receipt.stderr or receipt.error or "").strip() or "unknown error"
            logger.warning("Completion generation failed for %s: %s", shell.value, reason)
            failed[shell] = reason
        elif not receipt.stdout.strip():
            logger.warning("Completion generation for %s produced no output", shell.value)
            failed[shell] = "empty output"
        if shell in failed:
            # no script from an earlier build survives a failed shell
            path.unlink(missing_ok=True)
            continue

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(receipt.stdout, encoding="utf-8")
        artifacts[shell] = ShellCompletionArtifact(
            shell=shell,
            command=command,
            content=receipt.stdout,
            path=path,
        )
        logger.debug("Installed %s completions → %s", shell.value, path)

    if failed:
        raise PartialCompletionFailure(failed, artifacts)

    logger.info("Installed completions for %s", ", ".join(s.value for s in artifacts))
    return artifacts

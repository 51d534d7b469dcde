"""
Container build target descriptor — validate and render a buildx bake file.

The description is data.  This module resolves every named build
context to a concrete image reference up front, checks groups, and
renders the JSON document ``docker buildx bake`` consumes.  The engine
itself is only invoked by ``run_bake`` and never before validation passes.

Build-arg nulls survive rendering: a disabled argument is written as
JSON ``null``, an inherited one is simply not written.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from buildplane.adapters.registry import AdapterRegistry
from buildplane.core.errors import ConfigError, ContainerBuildError, UnresolvedBuildContext
from buildplane.core.models.action import Action, Receipt
from buildplane.core.models.container import BakeFile, ContainerBuildTarget
from buildplane.core.models.package import PackageSpec

logger = logging.getLogger(__name__)

IMAGE_PREFIX = "docker-image://"
TARGET_PREFIX = "target:"

_VARIABLE_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# [registry[:port]/]path[/path...][:tag][@digest]
_IMAGE_REF_RE = re.compile(
    r"^(?:(?P<registry>[a-zA-Z0-9.-]+(?::[0-9]+)?)/)?"
    r"(?P<path>[a-z0-9]+(?:[._-][a-z0-9]+)*(?:/[a-z0-9]+(?:[._-][a-z0-9]+)*)*)"
    r"(?::(?P<tag>[\w][\w.-]{0,127}))?"
    r"(?:@(?P<digest>[A-Za-z][A-Za-z0-9]*:[0-9a-fA-F]{32,}))?$"
)


def interpolate(value: str, variables: dict[str, str]) -> tuple[str, list[str]]:
    """Substitute ``${VAR}`` references.

    Returns:
        (result, missing) where ``missing`` lists names with no value.
    """
    missing: list[str] = []

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in variables:
            return variables[name]
        missing.append(name)
        return match.group(0)

    return _VARIABLE_RE.sub(_sub, value), missing


def is_image_reference(ref: str) -> bool:
    """Whether ``ref`` (with or without ``docker-image://``) names a concrete image."""
    if ref.startswith(IMAGE_PREFIX):
        ref = ref[len(IMAGE_PREFIX):]
    return bool(ref) and _IMAGE_REF_RE.match(ref) is not None


def is_pinned(ref: str) -> bool:
    """Whether an image reference carries a tag or a digest (no implicit ``:latest``)."""
    if ref.startswith(IMAGE_PREFIX):
        ref = ref[len(IMAGE_PREFIX):]
    match = _IMAGE_REF_RE.match(ref)
    return match is not None and bool(match["tag"] or match["digest"])


def floating_contexts(bake: BakeFile) -> list[str]:
    """``target.context`` of every image context with neither tag nor digest."""
    return [
        f"{name}.{context}"
        for name, target in bake.targets.items()
        for context, ref in target.contexts.items()
        if ref.startswith(IMAGE_PREFIX) and not is_pinned(ref)
    ]


def _resolve_context(
    target: ContainerBuildTarget,
    context_name: str,
    reference: str,
    variables: dict[str, str],
    known_targets: set[str],
) -> str:
    resolved, missing = interpolate(reference, variables)
    if missing:
        raise UnresolvedBuildContext(
            target.name, context_name, reference, f"undefined variable(s): {', '.join(missing)}"
        )
    resolved = resolved.strip()
    if not resolved:
        raise UnresolvedBuildContext(target.name, context_name, reference, "empty reference")

    if resolved.startswith(TARGET_PREFIX):
        other = resolved[len(TARGET_PREFIX):]
        if other == target.name:
            raise UnresolvedBuildContext(target.name, context_name, reference, "target refers to itself")
        if other not in known_targets:
            raise UnresolvedBuildContext(target.name, context_name, reference, f"unknown target '{other}'")
        return resolved

    if not is_image_reference(resolved):
        raise UnresolvedBuildContext(target.name, context_name, reference, "not an image reference")

    return resolved if resolved.startswith(IMAGE_PREFIX) else f"{IMAGE_PREFIX}{resolved}"


def package_labels(pkg: PackageSpec) -> dict[str, str]:
    """OCI labels taken from the workspace manifest."""
    return {
        "org.opencontainers.image.title": pkg.name,
        "org.opencontainers.image.version": pkg.version,
    }


def resolve_bake(
    bake: BakeFile,
    pkg: PackageSpec | None = None,
    overrides: dict[str, str] | None = None,
) -> BakeFile:
    """Validate ``bake`` and return a copy with every context made concrete.

    Variables come from the description, then ``overrides``, then the
    package name/version (``PACKAGE_NAME``/``PACKAGE_VERSION``) when a
    package is given.

    Raises:
        UnresolvedBuildContext: A context cannot be resolved.
        ConfigError: A group names an unknown target, or a target has
            no platforms in a form bake accepts.
    """
    variables = dict(bake.variables)
    variables.update(overrides or {})
    if pkg is not None:
        variables.setdefault("PACKAGE_NAME", pkg.name)
        variables.setdefault("PACKAGE_VERSION", pkg.version)

    known = set(bake.targets)

    for group in bake.groups.values():
        unknown = [t for t in group.targets if t not in known]
        if unknown:
            raise ConfigError(f"Group '{group.name}' references unknown target(s): {', '.join(unknown)}")

    resolved_targets: dict[str, ContainerBuildTarget] = {}
    for name, target in bake.targets.items():
        contexts = {
            ctx_name: _resolve_context(target, ctx_name, ref, variables, known)
            for ctx_name, ref in target.contexts.items()
        }
        labels = {**package_labels(pkg), **target.labels} if pkg is not None else dict(target.labels)
        args = {
            key: (interpolate(value, variables)[0] if value is not None else None)
            for key, value in target.args.items()
        }
        tags = [interpolate(tag, variables)[0] for tag in target.tags]
        for platform in target.platforms:
            if "/" not in platform:
                raise ConfigError(f"Target '{name}' platform '{platform}' must look like os/arch")
        resolved_targets[name] = target.model_copy(
            update={"contexts": contexts, "labels": labels, "args": args, "tags": tags}
        )

    logger.debug("Resolved bake description: %d targets, %d groups", len(resolved_targets), len(bake.groups))
    return BakeFile(variables=variables, groups=dict(bake.groups), targets=resolved_targets)


def render_target(target: ContainerBuildTarget) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "context": target.context,
        "dockerfile": target.dockerfile,
        "target": target.target,
    }
    if target.platforms:
        doc["platforms"] = list(target.platforms)
    if target.contexts:
        doc["contexts"] = dict(target.contexts)
    if target.args:
        doc["args"] = dict(target.args)          # None → null: explicitly disabled
    if target.labels:
        doc["labels"] = dict(target.labels)
    if target.tags:
        doc["tags"] = list(target.tags)
    return doc


def render(bake: BakeFile) -> dict[str, Any]:
    """The bake JSON document for a resolved description."""
    doc: dict[str, Any] = {}
    if bake.groups:
        doc["group"] = {name: {"targets": list(g.targets)} for name, g in bake.groups.items()}
    doc["target"] = {name: render_target(t) for name, t in bake.targets.items()}
    return doc


def write_bake_file(bake: BakeFile, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(render(bake), indent=2, sort_keys=False) + "\n", encoding="utf-8")
    return path


def run_bake(
    bake: BakeFile,
    registry: AdapterRegistry,
    bake_path: Path,
    targets: list[str] | None = None,
    workspace: Path | None = None,
    dry_run: bool = False,
) -> Receipt:
    """Hand a resolved description to ``docker buildx bake``.

    Raises:
        ConfigError: A requested target does not exist.
        ContainerBuildError: The engine failed.
    """
    selected = targets or bake.default_targets()
    unknown = [t for t in selected if t not in bake.targets and t not in bake.groups]
    if unknown:
        raise ConfigError(f"Unknown bake target(s): {', '.join(unknown)}")

    write_bake_file(bake, bake_path)
    argv = ["docker", "buildx", "bake", "-f", str(bake_path), *selected]
    action = Action(id="bake:" + ",".join(selected), argv=argv, cwd=str(workspace) if workspace else None)

    logger.info("Baking %s", ", ".join(selected))
    receipt = registry.execute_action(action, workspace=str(workspace or Path.cwd()), dry_run=dry_run)
    if receipt.failed:
        raise ContainerBuildError(receipt.stderr or receipt.error or "", returncode=receipt.returncode)
    return receipt

"""
Toolchain composer — merge independently versioned components into one toolchain.

Pure validation, no I/O.  The composed ToolchainSpec is the handle the
package builder and the dev shell both consume.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from buildplane.core.errors import ChannelMismatch, DuplicateComponent, ToolchainError
from buildplane.core.models.toolchain import ComponentRef, ToolchainSpec

logger = logging.getLogger(__name__)


def _as_component(item: ComponentRef | Mapping[str, Any]) -> ComponentRef:
    if isinstance(item, ComponentRef):
        return item
    try:
        return ComponentRef.model_validate(dict(item))
    except ValidationError as e:
        raise ToolchainError(f"Invalid toolchain component {dict(item)!r}: {e}") from e


def compose(components: Iterable[ComponentRef | Mapping[str, Any]]) -> ToolchainSpec:
    """Compose an ordered list of components into a single-channel toolchain.

    Args:
        components: Component references, in the order they should be merged.

    Returns:
        The composed ToolchainSpec.

    Raises:
        ToolchainError: No components were given, or one is malformed.
        DuplicateComponent: Two components fill the same role.
        ChannelMismatch: Components come from more than one release channel.
    """
    refs = [_as_component(c) for c in components]
    if not refs:
        raise ToolchainError("A toolchain needs at least one component")

    by_role: dict[str, list[str]] = {}
    for ref in refs:
        by_role.setdefault(ref.role, []).append(ref.name)
    for role, names in by_role.items():
        if len(names) > 1:
            raise DuplicateComponent(role, names)

    by_channel: dict[str, list[str]] = {}
    for ref in refs:
        by_channel.setdefault(ref.channel, []).append(ref.name)
    if len(by_channel) > 1:
        raise ChannelMismatch(by_channel)

    channel = refs[0].channel
    toolchain = ToolchainSpec(channel=channel, components=tuple(refs))
    logger.debug(
        "Composed toolchain %s: %s",
        toolchain.handle,
        ", ".join(r.label for r in refs),
    )
    return toolchain

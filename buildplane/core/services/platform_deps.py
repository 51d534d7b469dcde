"""
Platform dependency resolver — the one place platform knowledge lives.

Build scripts on macOS look up system frameworks transitively; on Linux
nothing extra is needed.  Everything that needs to know this asks here
instead of branching on the platform itself.
"""

from __future__ import annotations

import sys

from buildplane.core.errors import UnsupportedPlatform
from buildplane.core.models.platform import PlatformDependencySet, PlatformId

_PLATFORM_DEPENDENCIES: dict[PlatformId, tuple[str, ...]] = {
    PlatformId.LINUX: (),
    PlatformId.MACOS: (
        "darwin.apple_sdk.frameworks.Cocoa",
        "darwin.apple_sdk.frameworks.Security",
        "darwin.apple_sdk.frameworks.SystemConfiguration",
    ),
}

# Spellings seen in the wild (platform.system(), sys.platform, nix systems).
_ALIASES: dict[str, PlatformId] = {
    "linux": PlatformId.LINUX,
    "macos": PlatformId.MACOS,
    "darwin": PlatformId.MACOS,
    "osx": PlatformId.MACOS,
}

# Search-path variable the dynamic loader honours on each platform.
LIBRARY_PATH_VARIABLE: dict[PlatformId, str] = {
    PlatformId.LINUX: "LD_LIBRARY_PATH",
    PlatformId.MACOS: "DYLD_FALLBACK_LIBRARY_PATH",
}


def supported_platforms() -> list[str]:
    return [p.value for p in PlatformId]


def parse_platform(value: str | PlatformId) -> PlatformId:
    """Map a platform identifier to the enumeration.

    Raises:
        UnsupportedPlatform: The identifier is not one we know.
    """
    if isinstance(value, PlatformId):
        return value
    key = str(value).strip().lower()
    # "aarch64-darwin", "x86_64-linux"
    if "-" in key:
        key = key.rsplit("-", 1)[-1]
    try:
        return _ALIASES[key]
    except KeyError:
        raise UnsupportedPlatform(str(value), supported_platforms()) from None


def current_platform() -> PlatformId:
    """The host platform."""
    return parse_platform(sys.platform)


def resolve(platform: str | PlatformId) -> PlatformDependencySet:
    """Native libraries/frameworks that ``platform`` needs at build and run time.

    Pure and total over PlatformId.

    Raises:
        UnsupportedPlatform: ``platform`` is outside the enumeration.
    """
    platform_id = parse_platform(platform)
    return PlatformDependencySet(
        platform=platform_id,
        references=_PLATFORM_DEPENDENCIES[platform_id],
    )

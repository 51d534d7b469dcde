"""
Lock file reader and checker — declared dependencies vs. pinned versions.

Pure reading and comparison; the lock file is never written.  Version
requirements follow cargo's rules: a bare version is a caret
requirement, ``~`` allows patch updates, ``=`` pins, comparators and
``*`` wildcards combine with commas.  A pinned pre-release only
satisfies a requirement that names a pre-release of the same
``major.minor.patch``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import semver

from buildplane.core.config.loader import read_toml
from buildplane.core.errors import ConfigError, LockFileMismatch
from buildplane.core.models.package import LockedPackage, PackageSpec

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(
    r"^\s*v?(?P<major>\d+)(?:\.(?P<minor>\d+|\*|x))?(?:\.(?P<patch>\d+|\*|x))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?\s*$"
)
_COMPARATOR_RE = re.compile(r"^\s*(?P<op>\^|~|=|>=|<=|>|<)?\s*(?P<version>.+?)\s*$")


# ── Version parsing ─────────────────────────────────────────────


def _parse_partial(text: str) -> tuple[list[int], str]:
    """'1.2' → ([1, 2], ''); '1.*' → ([1], ''); '0.3.0-rc.1' → ([0, 3, 0], 'rc.1')."""
    match = _VERSION_RE.match(text)
    if not match:
        raise ValueError(f"Invalid version: {text!r}")
    parts = [int(match["major"])]
    for name in ("minor", "patch"):
        value = match[name]
        if value is None or value in ("*", "x"):
            break
        parts.append(int(value))
    return parts, match["pre"] or ""


def parse_version(version: str) -> semver.Version:
    """A concrete version as pinned in the lock file."""
    try:
        return semver.Version.parse(version.strip())
    except ValueError as e:
        raise ValueError(f"Not a full version: {version!r}") from e


def _bound(parts: list[int], pre: str = "") -> semver.Version:
    padded = parts + [0] * (3 - len(parts))
    return semver.Version(*padded, prerelease=pre or None)


def _bump(parts: list[int]) -> semver.Version:
    """Smallest release above every version matching the partial ``parts``."""
    bumped = list(parts)
    bumped[-1] += 1
    return _bound(bumped)


def _caret_upper(parts: list[int]) -> semver.Version:
    major = parts[0]
    if len(parts) == 1 or major > 0:
        return _bound([major + 1])
    minor = parts[1]
    if len(parts) == 2 or minor > 0:
        return _bound([0, minor + 1])
    return _bound([0, 0, parts[2] + 1])


def _split(comparator: str) -> tuple[str, list[int], str, bool]:
    """(operator, numeric parts, pre-release, wildcard) of one comparator."""
    match = _COMPARATOR_RE.match(comparator)
    if not match:
        raise ValueError(f"Invalid version requirement: {comparator!r}")
    text = match["version"]
    parts, pre = _parse_partial(text)
    wildcard = "*" in text or "x" in text.split("-")[0]
    op = match["op"] or ("=" if wildcard else "^")
    return op, parts, pre, wildcard


def _comparator_matches(version: semver.Version, comparator: str) -> bool:
    comparator = comparator.strip()
    if comparator in ("*", ""):
        return True

    op, parts, pre, _ = _split(comparator)
    lower = _bound(parts, pre)

    if op == "^":
        return lower <= version < _caret_upper(parts)
    if op == "~":
        upper = _bump(parts[:2]) if len(parts) > 1 else _bump(parts)
        return lower <= version < upper
    if op == "=":
        if len(parts) == 3:
            return version == lower
        return lower <= version < _bump(parts)
    if op == ">=":
        return version >= lower
    if op == ">":
        return version >= _bump(parts) if len(parts) < 3 else version > lower
    if op == "<":
        return version < lower
    if op == "<=":
        return version < _bump(parts) if len(parts) < 3 else version <= lower
    raise ValueError(f"Unknown operator in {comparator!r}")


def _names_prerelease_of(version: semver.Version, comparator: str) -> bool:
    comparator = comparator.strip()
    if comparator in ("*", ""):
        return False
    _, parts, pre, _ = _split(comparator)
    return bool(pre) and parts == [version.major, version.minor, version.patch]


def satisfies(version: str, requirement: str) -> bool:
    """Whether a concrete ``version`` meets a cargo ``requirement``."""
    parsed = parse_version(version)
    comparators = requirement.split(",")
    if not all(_comparator_matches(parsed, c) for c in comparators):
        return False
    if parsed.prerelease:
        return any(_names_prerelease_of(parsed, c) for c in comparators)
    return True


# ── Lock file ───────────────────────────────────────────────────


def read_lockfile(path: Path) -> list[LockedPackage]:
    """Parse the ``[[package]]`` entries of a lock file.

    Raises:
        LockFileMismatch: The lock file does not exist.
        ConfigError: The lock file cannot be parsed.
    """
    if not path.is_file():
        raise LockFileMismatch([f"Lock file not found: {path}"])

    data = read_toml(path)
    entries = data.get("package") or []
    if not isinstance(entries, list):
        raise ConfigError(f"Malformed lock file {path}: 'package' is not an array")

    packages = []
    for entry in entries:
        if not isinstance(entry, dict) or "name" not in entry or "version" not in entry:
            raise ConfigError(f"Malformed lock file {path}: entry without name/version")
        packages.append(
            LockedPackage(
                name=str(entry["name"]),
                version=str(entry["version"]),
                source=str(entry.get("source", "")),
                checksum=str(entry.get("checksum", "")),
            )
        )
    logger.debug("Read %d locked packages from %s", len(packages), path)
    return packages


def find_mismatches(pkg: PackageSpec, locked: list[LockedPackage]) -> list[str]:
    """Every way the declared dependencies diverge from ``locked``."""
    versions: dict[str, list[str]] = {}
    for entry in locked:
        versions.setdefault(entry.name, []).append(entry.version)

    problems: list[str] = []

    own = versions.get(pkg.name)
    if own and pkg.version not in own:
        problems.append(
            f"{pkg.name}: manifest version {pkg.version} but lock file pins {', '.join(own)}"
        )

    for dep in pkg.dependencies:
        pinned = versions.get(dep.name)
        if not pinned:
            problems.append(f"{dep.name} ({dep.requirement}): not in lock file [{dep.section}]")
            continue
        try:
            ok = any(satisfies(v, dep.requirement) for v in pinned)
        except ValueError as e:
            problems.append(f"{dep.name}: {e}")
            continue
        if not ok:
            problems.append(
                f"{dep.name}: requires {dep.requirement} but lock file pins {', '.join(pinned)}"
            )
    return problems


def check_lockfile(pkg: PackageSpec) -> list[LockedPackage]:
    """Verify the lock file pins every declared dependency.

    Returns:
        The locked packages, when everything matches.

    Raises:
        LockFileMismatch: Anything is missing or out of range.
    """
    locked = read_lockfile(pkg.lockfile)
    problems = find_mismatches(pkg, locked)
    if problems:
        raise LockFileMismatch(problems)
    logger.info("Lock file %s pins all %d declared dependencies", pkg.lockfile.name, len(pkg.dependencies))
    return locked

"""
Shared CLI helpers — error reporting and exit codes.
"""

from __future__ import annotations

import json
import sys

import click

from buildplane.core.errors import BuildPlaneError

EXIT_ERROR = 1
EXIT_PARTIAL = 2


def fail(err: BuildPlaneError, as_json: bool = False) -> None:
    """Report a categorized error and exit non-zero."""
    if as_json:
        click.echo(json.dumps({"ok": False, "error": err.to_dict()}, indent=2))
    else:
        click.secho(f"❌ [{err.category}] {err}", fg="red", err=True)
    sys.exit(EXIT_ERROR)

"""buildplane — build, package and dev-shell orchestration for a compiled CLI workspace."""

__version__ = "0.1.0"

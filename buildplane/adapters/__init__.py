"""Adapters — bindings for the external tools the build plane invokes.

Public re-exports for convenient access.
"""

from buildplane.adapters.base import Adapter, ExecutionContext
from buildplane.adapters.mock import MockAdapter
from buildplane.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]

"""
Adapter registry — central dispatch for every external invocation.

Services never talk to adapters directly — always through the registry.
There is no retry and no circuit breaking here: a failed action is
reported once, as-is, and the caller decides what it means.
"""

from __future__ import annotations

import logging
import time

from buildplane.adapters.base import Adapter, ExecutionContext
from buildplane.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Registry and dispatcher for adapters."""

    def __init__(self) -> None:
        self._adapters: dict[str, Adapter] = {}

    @classmethod
    def default(cls) -> AdapterRegistry:
        """A registry with the real shell adapter registered."""
        from buildplane.adapters.shell.command import ShellCommandAdapter

        registry = cls()
        registry.register(ShellCommandAdapter())
        return registry

    def register(self, adapter: Adapter) -> None:
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def execute_action(
        self,
        action: Action,
        workspace: str = ".",
        dry_run: bool = False,
    ) -> Receipt:
        """Resolve the adapter, validate, execute (or dry-run).  Never raises."""
        start_time = time.monotonic()

        context = ExecutionContext(action=action, workspace=workspace, dry_run=dry_run)

        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        try:
            is_valid, error_msg = adapter.validate(context)
        except Exception as e:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation error: {e}",
            )
        if not is_valid:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation failed: {error_msg}",
            )

        if dry_run:
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] Would execute: {action.command_line}",
                metadata={"dry_run": True, "command": action.argv},
            )

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        if receipt.failed:
            logger.info("Action %s failed: %s", action.id, (receipt.error or "").partition("\n")[0])
        return receipt

"""
Mock adapter — test double for the shell adapter.

Simulates cargo, the built binary and docker buildx without running
anything.  Responses are configured per action ID; a handler can be
installed to produce side effects (e.g. writing the "built" binary).
"""

from __future__ import annotations

from collections.abc import Callable

from buildplane.adapters.base import Adapter, ExecutionContext
from buildplane.core.models.action import Receipt

Handler = Callable[[ExecutionContext], Receipt]


class MockAdapter(Adapter):
    """Mock adapter.  Returns success for everything unless told otherwise."""

    def __init__(
        self,
        adapter_name: str = "shell",
        default_stdout: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._default_stdout = default_stdout
        self._responses: dict[str, Receipt] = {}
        self._handlers: dict[str, Handler] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def commands(self) -> list[list[str]]:
        """argv of every executed action, in order."""
        return [ctx.action.argv for ctx in self._call_log]

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a canned response for a specific action ID."""
        self._responses[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure", returncode: int = 1) -> None:
        """Configure a specific action to fail with ``error`` on stderr."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            stderr=error,
            returncode=returncode,
        )

    def set_handler(self, action_id: str, handler: Handler) -> None:
        """Run ``handler`` instead of returning a canned receipt."""
        self._handlers[action_id] = handler

    def reset(self) -> None:
        self._responses.clear()
        self._handlers.clear()
        self._call_log.clear()

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)
        action_id = context.action.id

        if action_id in self._handlers:
            return self._handlers[action_id](context)

        if action_id in self._responses:
            return self._responses[action_id]

        return Receipt.success(
            adapter=self._name,
            action_id=action_id,
            stdout=self._default_stdout,
            metadata={"mock": True},
        )

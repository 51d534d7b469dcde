"""
Adapter base — the protocol contract between services and external tools.

Services never spawn processes themselves.  They build an Action and
hand it to an adapter through the registry, which returns a Receipt.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from buildplane.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to run an action."""

    action: Action
    workspace: str = "."
    dry_run: bool = False

    @property
    def working_dir(self) -> str:
        """The action's own cwd if it set one, else the workspace root."""
        return self.action.cwd or self.workspace


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'shell')."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Execute the action and return a receipt.  MUST never raise."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"

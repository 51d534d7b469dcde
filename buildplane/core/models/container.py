"""
Container build description — targets and groups for docker buildx bake.

This is pure data: it is validated here and by the bake service, then
handed to the external build engine as a bake JSON document.  Nothing in
this module builds anything.

Build arguments follow a three-state model:

    args: {"RUSTC_WRAPPER": "sccache"}   → injected
    args: {"RUSTC_WRAPPER": None}        → explicitly disabled (JSON null)
    (key not present)                    → inherited from the engine default
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

ArgState = Literal["set", "disabled", "absent"]


def _stringify(value: Any) -> Any:
    """YAML hands us ints/bools for things like ``1`` or ``true`` — bake wants strings."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class ContainerBuildTarget(BaseModel):
    """One named, independently buildable image target."""

    name: str
    dockerfile: str
    target: str                               # build stage inside the dockerfile
    context: str = "."
    platforms: list[str] = Field(default_factory=list)
    contexts: dict[str, str] = Field(default_factory=dict)
    args: dict[str, str | None] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)

    @field_validator("args", mode="before")
    @classmethod
    def _coerce_args(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _stringify(v) for k, v in value.items()}
        return value

    @field_validator("labels", "contexts", mode="before")
    @classmethod
    def _coerce_mapping(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _stringify(v) for k, v in value.items()}
        return value

    @field_validator("dockerfile", "target")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    def args_state(self, name: str) -> ArgState:
        """Which of the three argument states ``name`` is in."""
        if name not in self.args:
            return "absent"
        if self.args[name] is None:
            return "disabled"
        return "set"

    @property
    def disabled_args(self) -> list[str]:
        return sorted(k for k, v in self.args.items() if v is None)


class BuildGroup(BaseModel):
    """A named, ordered list of target names.  Used only to pick defaults."""

    name: str
    targets: list[str] = Field(default_factory=list)


class BakeFile(BaseModel):
    """The complete container build description for a workspace."""

    variables: dict[str, str] = Field(default_factory=dict)
    groups: dict[str, BuildGroup] = Field(default_factory=dict)
    targets: dict[str, ContainerBuildTarget] = Field(default_factory=dict)

    @field_validator("variables", mode="before")
    @classmethod
    def _coerce_variables(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _stringify(v) for k, v in value.items()}
        return value

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> BakeFile:
        """Build from the ``containers:`` section, where names are the mapping keys."""
        targets = {
            name: ContainerBuildTarget.model_validate({**(body or {}), "name": name})
            for name, body in (data.get("targets") or {}).items()
        }
        groups = {
            name: BuildGroup(name=name, targets=list(members or []))
            for name, members in (data.get("groups") or {}).items()
        }
        return cls(
            variables=data.get("variables") or {},
            groups=groups,
            targets=targets,
        )

    def get_target(self, name: str) -> ContainerBuildTarget | None:
        return self.targets.get(name)

    def default_targets(self) -> list[str]:
        """Targets in the ``default`` group, or every target if there is none."""
        group = self.groups.get("default")
        if group is not None:
            return list(group.targets)
        return list(self.targets)

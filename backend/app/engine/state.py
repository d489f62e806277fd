"""Single-slot store for the state needed to resume the last failed run."""
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ExecutionState:
    node_outputs: dict[str, dict[str, Any]] = field(default_factory=dict)
    scope_node_ids: set[str] = field(default_factory=set)
    failed_node_ids: set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.node_outputs or self.scope_node_ids or self.failed_node_ids)


class ExecutionStateStore:
    """Holds at most one ExecutionState; each save replaces the previous one."""

    def __init__(self):
        self._state = ExecutionState()

    def get(self) -> ExecutionState:
        return self._state

    def save(self, state: ExecutionState) -> None:
        self._state = state

    def clear(self) -> None:
        self._state = ExecutionState()

    @property
    def is_resumable(self) -> bool:
        return bool(self._state.scope_node_ids)

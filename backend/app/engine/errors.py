"""Exception types raised by the execution engine."""
from typing import Any


class EngineError(Exception):
    """Base class for all engine errors."""


class GraphError(EngineError):
    """The graph cannot be scheduled (cyclic dependency)."""

    def __init__(self, node_ids: list[str]):
        self.node_ids = sorted(node_ids)
        super().__init__(
            f"Cyclic dependency detected. Cannot execute nodes: {', '.join(self.node_ids)}"
        )


class NodeExecutionError(EngineError):
    """A single node's executor raised."""

    def __init__(self, node_id: str, cause: BaseException):
        self.node_id = node_id
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__)


class WorkflowAbortError(EngineError):
    """A node failed and the run was not allowed to continue past it."""

    def __init__(self, message: str, result: Any = None):
        self.result = result
        super().__init__(message)


class WorkflowBusyError(EngineError):
    def __init__(self):
        super().__init__("Workflow is already running")


class NodeNotFoundError(EngineError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node {node_id} not found")

"""Execution engine: layered topological sort, input aggregation and layer dispatch."""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from .errors import GraphError, NodeExecutionError
from .events import EventBus, NODE_OUTPUT, NodeOutputEvent
from .graph import Dependent, Edge, Node, build_dependency_graph

logger = logging.getLogger(__name__)

DEFAULT_HANDLE = "default"

NodeOutputs = dict[str, dict[str, Any]]
NodeInputs = dict[str, dict[str, Any] | list[dict[str, Any]]]
NodeExecutor = Callable[[Node, NodeInputs, dict[str, Any]], Awaitable[NodeOutputs]]


@dataclass
class ProgressData:
    completed: int
    total: int
    percentage: int


@dataclass
class ExecutionCallbacks:
    """Lifecycle hooks, called synchronously from the coordinating task.

    A hook that raises is logged and does not affect the run.
    """
    on_node_start: Callable[[Node], None] | None = None
    on_node_complete: Callable[[Node, NodeOutputs], None] | None = None
    on_node_error: Callable[[Node, Exception], None] | None = None
    on_node_skip: Callable[[Node, str], None] | None = None
    on_progress: Callable[[ProgressData], None] | None = None

    def node_start(self, node: Node) -> None:
        self._call(self.on_node_start, node)

    def node_complete(self, node: Node, output: NodeOutputs) -> None:
        self._call(self.on_node_complete, node, output)

    def node_error(self, node: Node, error: Exception) -> None:
        self._call(self.on_node_error, node, error)

    def node_skip(self, node: Node, reason: str) -> None:
        self._call(self.on_node_skip, node, reason)

    def progress(self, data: ProgressData) -> None:
        self._call(self.on_progress, data)

    @staticmethod
    def _call(hook: Callable[..., None] | None, *args: Any) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception:
            logger.exception("Execution callback %s failed", getattr(hook, "__name__", hook))


@dataclass
class WorkflowExecutionResult:
    success: bool
    workflow_id: str
    duration: int  # ms
    node_outputs: dict[str, NodeOutputs]
    completed_count: int
    node_errors: dict[str, NodeExecutionError] = field(default_factory=dict)
    failed_node_ids: list[str] = field(default_factory=list)
    skipped_nodes: list[str] = field(default_factory=list)
    error: str | None = None


def topological_sort(
    nodes: list[Node],
    graph: dict[str, list[Dependent]],
    in_degree: dict[str, int],
) -> list[list[Node]]:
    """Kahn's algorithm returning execution layers.

    Every node in a layer has all of its dependencies in earlier layers, so
    members of one layer may run concurrently. Raises GraphError naming every
    node that never reaches in-degree zero.
    """
    layers: list[list[Node]] = []
    visited: set[str] = set()
    remaining = dict(in_degree)

    while len(visited) < len(nodes):
        layer = [
            n for n in nodes
            if n.id not in visited and remaining.get(n.id, 0) == 0
        ]
        if not layer:
            raise GraphError([n.id for n in nodes if n.id not in visited])

        layers.append(layer)
        for node in layer:
            visited.add(node.id)
            for dep in graph.get(node.id, []):
                remaining[dep.target_id] = max(0, remaining.get(dep.target_id, 0) - 1)

    return layers


def get_node_inputs(
    node: Node,
    edges: list[Edge],
    nodes: list[Node],
    node_outputs: dict[str, NodeOutputs],
) -> NodeInputs:
    """Collect the payloads arriving on each of ``node``'s input handles.

    A handle fed by one edge gets a single record; a handle fed by several
    edges gets a list in edge order. Edges whose source has no recorded
    output contribute nothing.
    """
    node_ids = {n.id for n in nodes}
    inputs_by_handle: dict[str, list[dict[str, Any]]] = {}

    for edge in edges:
        if edge.target != node.id or edge.source not in node_ids:
            continue
        source_output = node_outputs.get(edge.source)
        if not source_output:
            logger.debug(
                "No output recorded for %s, dropping edge %s into %s",
                edge.source, edge.id, node.id,
            )
            continue

        handle_key = edge.source_handle or DEFAULT_HANDLE
        payload = source_output.get(handle_key) or source_output.get(DEFAULT_HANDLE)
        if not payload:
            continue

        record = {**payload, "sourceNode": edge.source, "sourceHandle": edge.source_handle}
        inputs_by_handle.setdefault(edge.target_handle or DEFAULT_HANDLE, []).append(record)

    inputs: NodeInputs = {}
    for handle, records in inputs_by_handle.items():
        inputs[handle] = records[0] if len(records) == 1 else records
    return inputs


def _percentage(completed: int, total: int) -> int:
    if total == 0:
        return 100
    return round(completed / total * 100)


def dispatch_node_output(
    node_id: str, output: NodeOutputs, edges: list[Edge], events: EventBus,
) -> None:
    """Publish each output handle to the edges leaving it."""
    for handle, payload in output.items():
        for edge in edges:
            if edge.source != node_id or (edge.source_handle or DEFAULT_HANDLE) != handle:
                continue
            events.emit(NODE_OUTPUT, NodeOutputEvent(
                source_id=node_id,
                target_id=edge.target,
                source_handle=edge.source_handle,
                target_handle=edge.target_handle,
                content=payload,
            ))


async def execute_workflow(
    nodes: list[Node],
    edges: list[Edge],
    node_executor: NodeExecutor,
    context: dict[str, Any] | None = None,
    callbacks: ExecutionCallbacks | None = None,
    initial_node_outputs: dict[str, NodeOutputs] | None = None,
    skip_node_ids: set[str] | None = None,
    continue_on_error: bool = False,
    events: EventBus | None = None,
    workflow_id: str | None = None,
    layers: list[list[Node]] | None = None,
) -> WorkflowExecutionResult:
    """Execute ``nodes`` layer by layer.

    Nodes that already have an entry in ``initial_node_outputs`` are treated
    as cached and not re-run; nodes in ``skip_node_ids`` are never invoked.
    All nodes of a layer run concurrently and are awaited together before the
    next layer starts. Without ``continue_on_error`` the first layer with a
    failure is the last one dispatched.

    GraphError propagates before any node runs.
    """
    context = context or {}
    callbacks = callbacks or ExecutionCallbacks()
    skip_node_ids = skip_node_ids or set()
    start = time.monotonic()
    workflow_id = workflow_id or f"workflow-{int(time.time() * 1000)}"

    node_ids = {n.id for n in nodes}
    node_outputs: dict[str, NodeOutputs] = dict(initial_node_outputs or {})
    node_errors: dict[str, NodeExecutionError] = {}
    failed: list[str] = []
    skipped: list[str] = []
    first_error: str | None = None
    total = len(nodes)
    completed = sum(1 for nid in node_outputs if nid in node_ids)

    if layers is None:
        dep = build_dependency_graph(nodes, edges)
        layers = topological_sort(nodes, dep.graph, dep.in_degree)
    logger.info("Executing %d nodes in %d layers", total, len(layers))

    if completed:
        callbacks.progress(ProgressData(completed, total, _percentage(completed, total)))

    async def run_node(node: Node) -> tuple[Node, NodeOutputs | None, NodeExecutionError | None]:
        try:
            inputs = get_node_inputs(node, edges, nodes, node_outputs)
            output = await node_executor(node, inputs, context)
        except Exception as exc:
            return node, None, NodeExecutionError(node.id, exc)
        return node, output or {}, None

    for index, layer in enumerate(layers, start=1):
        pending: list[Node] = []
        for node in layer:
            if node.id in skip_node_ids:
                skipped.append(node.id)
                callbacks.node_skip(node, "skipped")
            elif node.id in node_outputs:
                callbacks.node_skip(node, "cached")
            else:
                pending.append(node)

        logger.info(
            "Layer %d/%d: %d nodes (%d to run)", index, len(layers), len(layer), len(pending),
        )
        for node in pending:
            callbacks.node_start(node)
        # run_node never raises, so the whole layer settles before any bookkeeping
        settled = await asyncio.gather(*(run_node(n) for n in pending))
        layer_failed = False
        for node, output, error in settled:
            if error is not None:
                layer_failed = True
                failed.append(node.id)
                node_errors[node.id] = error
                if first_error is None:
                    first_error = str(error)
                logger.warning("Node %s (%s) failed: %s", node.id, node.type, error)
                callbacks.node_error(node, error)
                continue

            node_outputs[node.id] = output
            logger.debug("Node %s (%s) completed", node.id, node.type)
            if events is not None:
                dispatch_node_output(node.id, output, edges, events)
            callbacks.node_complete(node, output)
            completed += 1
            callbacks.progress(ProgressData(completed, total, _percentage(completed, total)))

        if layer_failed and not continue_on_error:
            logger.error(
                "Halting after layer %d/%d: %s", index, len(layers), ", ".join(failed),
            )
            break

    duration = int((time.monotonic() - start) * 1000)
    success = not failed
    if success:
        logger.info("Workflow %s completed in %dms", workflow_id, duration)
    return WorkflowExecutionResult(
        success=success,
        workflow_id=workflow_id,
        duration=duration,
        node_outputs=node_outputs,
        completed_count=completed,
        node_errors=node_errors,
        failed_node_ids=failed,
        skipped_nodes=skipped,
        error=first_error,
    )

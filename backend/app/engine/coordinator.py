"""Run coordinator: scope resolution, resume seeding, retry/skip policy and run bookkeeping."""
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import GraphError, NodeExecutionError, NodeNotFoundError, WorkflowAbortError, WorkflowBusyError
from .events import EventBus, RUN_FINISHED
from .executor import ExecutionCallbacks, NodeExecutor, NodeOutputs, execute_workflow, topological_sort
from .graph import (
    Edge, Graph, Node, build_dependency_graph, get_downstream_node_ids, get_upstream_node_ids,
)
from .history import RunHistoryLog, RunRecord
from .state import ExecutionState, ExecutionStateStore

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    IDLE = "idle"
    SCOPING = "scoping"
    SCHEDULING = "scheduling"
    EXECUTING = "executing"
    COMPLETED = "completed"
    PARTIALLY_COMPLETED = "partially_completed"
    FAILED = "failed"


@dataclass
class RunOptions:
    target_node_ids: list[str] | None = None
    trigger: str = "manual"
    resume: bool = False
    retry_node_ids: list[str] | None = None
    retry_failed: bool = False
    skip_failed: bool = False
    continue_on_error: bool = False


@dataclass
class RunResult:
    success: bool
    status: RunStatus
    workflow_id: str
    duration: int
    node_outputs: dict[str, NodeOutputs]
    completed_count: int
    scope: list[str]
    node_errors: dict[str, NodeExecutionError] = field(default_factory=dict)
    failed_node_ids: list[str] = field(default_factory=list)
    skipped_nodes: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class RunPlan:
    """Everything resolved before the first layer is dispatched."""
    graph: Graph
    scope_node_ids: set[str]
    seed_outputs: dict[str, NodeOutputs]
    retry_node_ids: set[str]
    skip_node_ids: set[str]
    allow_partial: bool


class WorkflowCoordinator:
    """Drives workflow runs for one session.

    Owns the session's resumable ExecutionState and run history. The graph is
    passed into every call; nothing is read from shared globals.
    """

    def __init__(
        self,
        node_executor: NodeExecutor,
        state_store: ExecutionStateStore | None = None,
        history: RunHistoryLog | None = None,
        events: EventBus | None = None,
        context: dict[str, Any] | None = None,
        workflow_id: str | None = None,
        workflow_name: str = "Local Draft",
    ):
        self.node_executor = node_executor
        self.state_store = state_store or ExecutionStateStore()
        self.history = history or RunHistoryLog()
        self.events = events or EventBus()
        self.context = context or {}
        self.workflow_id = workflow_id
        self.workflow_name = workflow_name
        self.status = RunStatus.IDLE
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def plan(self, nodes: list[Node], edges: list[Edge], options: RunOptions) -> RunPlan:
        """Resolve scope, cached outputs, retry and skip sets for a run."""
        state = self.state_store.get() if options.resume else ExecutionState()
        full = Graph(nodes=list(nodes), edges=list(edges))

        if options.resume and state.scope_node_ids:
            scope_ids = set(state.scope_node_ids)
        elif options.target_node_ids:
            scope_ids = get_upstream_node_ids(options.target_node_ids, full.edges)
        else:
            scope_ids = full.node_ids
        scoped = full.subgraph(scope_ids)
        scoped_ids = scoped.node_ids

        prior_failed = set(state.failed_node_ids) if options.resume else set()
        seed: dict[str, NodeOutputs] = {}
        if options.resume:
            seed = {
                nid: output for nid, output in state.node_outputs.items()
                if nid in scoped_ids and nid not in prior_failed
            }

        retry_ids = {nid for nid in options.retry_node_ids or [] if nid}
        if options.retry_failed:
            retry_ids |= prior_failed
        if retry_ids:
            retry_ids = get_downstream_node_ids(retry_ids, scoped.edges)
            for nid in retry_ids:
                seed.pop(nid, None)

        return RunPlan(
            graph=scoped,
            scope_node_ids=scoped_ids,
            seed_outputs=seed,
            retry_node_ids=retry_ids,
            skip_node_ids=prior_failed if options.skip_failed else set(),
            allow_partial=options.continue_on_error or options.skip_failed,
        )

    async def run(
        self,
        nodes: list[Node],
        edges: list[Edge],
        options: RunOptions | None = None,
        callbacks: ExecutionCallbacks | None = None,
        context: dict[str, Any] | None = None,
    ) -> RunResult | None:
        """Run the workflow (or the part of it selected by ``options``).

        Returns None when the resolved scope is empty. Raises GraphError for a
        cyclic scope and WorkflowAbortError when a node fails and neither
        ``continue_on_error`` nor ``skip_failed`` is set; in both cases the run
        is still recorded in history. Any other exception escaping execution is
        recorded as a failed run and then propagated.
        """
        if self._running:
            raise WorkflowBusyError()
        options = options or RunOptions()

        self.status = RunStatus.SCOPING
        plan = self.plan(nodes, edges, options)
        if not plan.graph.nodes:
            logger.warning("No nodes to execute for the requested scope")
            self.status = RunStatus.IDLE
            return None

        self._running = True
        started_at = _now_ms()
        scope_label = tuple(options.target_node_ids) if options.target_node_ids else "full"
        logger.info(
            "Starting run of %d nodes (trigger=%s, resume=%s, cached=%d, retry=%d, skip=%d)",
            len(plan.graph.nodes), options.trigger, options.resume,
            len(plan.seed_outputs), len(plan.retry_node_ids), len(plan.skip_node_ids),
        )

        try:
            self.status = RunStatus.SCHEDULING
            dep = build_dependency_graph(plan.graph.nodes, plan.graph.edges)
            try:
                layers = topological_sort(plan.graph.nodes, dep.graph, dep.in_degree)
            except GraphError as exc:
                logger.error("Run aborted before execution: %s", exc)
                self.status = RunStatus.FAILED
                self._record(
                    started_at, workflow_id=None, duration=_now_ms() - started_at,
                    success=False, node_count=len(plan.graph.nodes), completed_count=0,
                    output_count=0, error=str(exc), trigger=options.trigger, scope=scope_label,
                )
                raise

            if not options.resume:
                self.state_store.clear()
            self.status = RunStatus.EXECUTING
            try:
                result = await execute_workflow(
                    plan.graph.nodes,
                    plan.graph.edges,
                    self.node_executor,
                    context={**self.context, **(context or {})},
                    callbacks=callbacks,
                    initial_node_outputs=plan.seed_outputs,
                    skip_node_ids=plan.skip_node_ids,
                    continue_on_error=plan.allow_partial,
                    events=self.events,
                    layers=layers,
                )
            except Exception as exc:
                # node failures and callback errors never get here
                logger.exception("Run crashed during execution")
                self.status = RunStatus.FAILED
                self._record(
                    started_at, workflow_id=None, duration=_now_ms() - started_at,
                    success=False, node_count=len(plan.graph.nodes), completed_count=0,
                    output_count=0, error=str(exc) or type(exc).__name__,
                    trigger=options.trigger, scope=scope_label,
                )
                raise
        finally:
            self._running = False

        if result.success:
            self.status = RunStatus.COMPLETED
            self.state_store.clear()
        else:
            self.status = (
                RunStatus.PARTIALLY_COMPLETED if plan.allow_partial else RunStatus.FAILED
            )
            self.state_store.save(ExecutionState(
                node_outputs={
                    nid: output for nid, output in result.node_outputs.items()
                    if nid in plan.scope_node_ids
                },
                scope_node_ids=set(plan.scope_node_ids),
                failed_node_ids=set(result.failed_node_ids),
            ))

        self._record(
            started_at, workflow_id=result.workflow_id, duration=result.duration,
            success=result.success, node_count=len(plan.graph.nodes),
            completed_count=result.completed_count, output_count=len(result.node_outputs),
            error=result.error, trigger=options.trigger, scope=scope_label,
        )

        run_result = RunResult(
            success=result.success,
            status=self.status,
            workflow_id=result.workflow_id,
            duration=result.duration,
            node_outputs=result.node_outputs,
            completed_count=result.completed_count,
            scope=sorted(plan.scope_node_ids),
            node_errors=result.node_errors,
            failed_node_ids=result.failed_node_ids,
            skipped_nodes=result.skipped_nodes,
            error=result.error,
        )
        if self.status == RunStatus.FAILED:
            logger.error("Workflow %s failed: %s", result.workflow_id, result.error)
            raise WorkflowAbortError(result.error or "Workflow execution failed", result=run_result)
        if not result.success:
            logger.info(
                "Workflow %s completed with errors in %s", result.workflow_id,
                ", ".join(result.failed_node_ids),
            )
        return run_result

    async def run_single_node(
        self,
        node_id: str,
        nodes: list[Node],
        edges: list[Edge],
        callbacks: ExecutionCallbacks | None = None,
        context: dict[str, Any] | None = None,
        trigger: str = "node",
    ) -> RunResult | None:
        """Run ``node_id`` together with everything upstream of it."""
        if not any(n.id == node_id for n in nodes):
            raise NodeNotFoundError(node_id)
        return await self.run(
            nodes, edges,
            RunOptions(target_node_ids=[node_id], trigger=trigger),
            callbacks=callbacks, context=context,
        )

    def _record(self, started_at: int, *, workflow_id: str | None, duration: int, success: bool,
                node_count: int, completed_count: int, output_count: int,
                error: str | None, trigger: str, scope: tuple[str, ...] | str) -> RunRecord:
        record = RunRecord(
            id=f"run-{uuid.uuid4()}",
            workflow_id=self.workflow_id or workflow_id,
            workflow_name=self.workflow_name,
            started_at=started_at,
            finished_at=_now_ms(),
            duration_ms=duration,
            success=success,
            node_count=node_count,
            completed_count=completed_count,
            output_count=output_count,
            error=None if success else error,
            trigger=trigger,
            scope=scope,
        )
        self.history.append(record)
        self.events.emit(RUN_FINISHED, record)
        return record


def _now_ms() -> int:
    return int(time.time() * 1000)

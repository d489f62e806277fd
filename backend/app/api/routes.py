"""REST API routes."""
import logging
from dataclasses import asdict

from fastapi import APIRouter, HTTPException

from ..engine.coordinator import RunOptions, RunResult
from ..engine.errors import GraphError, WorkflowAbortError, WorkflowBusyError
from ..engine.events import RUN_FINISHED
from ..engine.graph import Edge, Graph, Node
from ..engine.session import ExecutionSession, create_session, get_session
from ..engine.validator import validate_graph
from ..models.schemas import (
    ExecutionStateResponse, GraphSchema, RunRecordSchema,
    RunRequest, RunResponse, ValidateResponse,
)
from ..nodes.registry import NodeRegistry
from .websocket import manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _schema_to_graph(schema: GraphSchema) -> Graph:
    nodes = [Node(id=n.id, type=n.type, data=dict(n.data)) for n in schema.nodes]
    edges = [
        Edge(
            id=e.id, source=e.source, target=e.target,
            source_handle=e.source_handle, target_handle=e.target_handle,
        )
        for e in schema.edges
    ]
    return Graph(nodes=nodes, edges=edges)


def _session(session_id: str) -> ExecutionSession:
    session = get_session(session_id)
    if session is None:
        session = create_session(session_id)
        session.coordinator.events.subscribe(
            RUN_FINISHED, manager.make_run_listener(session_id),
        )
    return session


def _to_response(result: RunResult) -> RunResponse:
    return RunResponse(
        success=result.success,
        status=result.status.value,
        workflow_id=result.workflow_id,
        duration=result.duration,
        node_outputs=result.node_outputs,
        node_errors={nid: str(err) for nid, err in result.node_errors.items()},
        failed_node_ids=result.failed_node_ids,
        skipped_nodes=result.skipped_nodes,
        completed_count=result.completed_count,
        scope=result.scope,
        error=result.error,
    )


@router.get("/nodes")
async def list_nodes():
    """Return all registered node definitions."""
    result = {}
    for name, defn in NodeRegistry.all_definitions().items():
        result[name] = {
            "node_type": defn.node_type,
            "display_name": defn.display_name,
            "category": defn.category,
            "description": defn.description,
            "inputs": {
                k: {"dtype": v.dtype.value, "required": v.required, "multiple": v.multiple}
                for k, v in defn.inputs.items()
            },
            "outputs": [
                {"dtype": o.dtype.value, "name": o.name}
                for o in defn.outputs
            ],
        }
    return result


@router.post("/validate", response_model=ValidateResponse)
async def validate(graph: GraphSchema):
    errors = validate_graph(_schema_to_graph(graph))
    return ValidateResponse(valid=not errors, errors=errors)


@router.post("/sessions/{session_id}/run", response_model=RunResponse)
async def run_workflow(session_id: str, request: RunRequest):
    """Run the workflow graph for a session.

    Node events stream over /ws/execution/{session_id} while the run is in
    progress. A run aborted by a node failure is reported with
    ``success=False`` and ``status="failed"``; the session keeps the state
    needed to resume it.
    """
    graph = _schema_to_graph(request.graph)
    session = _session(session_id)
    options = RunOptions(**request.options.model_dump())

    try:
        result = await session.coordinator.run(
            graph.nodes, graph.edges, options,
            callbacks=manager.make_callbacks(session_id),
            context=request.context,
        )
    except WorkflowBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except GraphError as e:
        raise HTTPException(status_code=422, detail={"error": str(e), "node_ids": e.node_ids})
    except WorkflowAbortError as e:
        result = e.result

    if result is None:
        raise HTTPException(status_code=400, detail="No nodes to execute for the requested scope")
    return _to_response(result)


@router.get("/sessions/{session_id}/state", response_model=ExecutionStateResponse)
async def get_execution_state(session_id: str):
    session = get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    state = session.state_store.get()
    return ExecutionStateResponse(
        resumable=session.state_store.is_resumable,
        scope_node_ids=sorted(state.scope_node_ids),
        failed_node_ids=sorted(state.failed_node_ids),
        cached_node_ids=sorted(state.node_outputs),
    )


@router.delete("/sessions/{session_id}/state")
async def clear_execution_state(session_id: str):
    session = get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    session.state_store.clear()
    return {"status": "cleared"}


@router.get("/sessions/{session_id}/history", response_model=list[RunRecordSchema])
async def get_history(session_id: str):
    session = get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    records = []
    for record in session.history.entries():
        data = asdict(record)
        if isinstance(record.scope, tuple):
            data["scope"] = list(record.scope)
        records.append(RunRecordSchema(**data))
    return records

"""Pydantic schemas for API request/response models."""
from typing import Any
from pydantic import BaseModel

from ..config import settings


class EdgeSchema(BaseModel):
    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None


class NodeSchema(BaseModel):
    id: str
    type: str
    data: dict[str, Any] = {}


class GraphSchema(BaseModel):
    nodes: list[NodeSchema]
    edges: list[EdgeSchema] = []


class RunOptionsSchema(BaseModel):
    target_node_ids: list[str] | None = None
    trigger: str = settings.default_trigger
    resume: bool = False
    retry_node_ids: list[str] | None = None
    retry_failed: bool = False
    skip_failed: bool = False
    continue_on_error: bool = False


class RunRequest(BaseModel):
    graph: GraphSchema
    options: RunOptionsSchema = RunOptionsSchema()
    context: dict[str, Any] = {}


class RunResponse(BaseModel):
    success: bool
    status: str
    workflow_id: str
    duration: int
    node_outputs: dict[str, Any] = {}
    node_errors: dict[str, str] = {}
    failed_node_ids: list[str] = []
    skipped_nodes: list[str] = []
    completed_count: int
    scope: list[str] = []
    error: str | None = None


class ValidateResponse(BaseModel):
    valid: bool
    errors: list[str] = []


class ExecutionStateResponse(BaseModel):
    resumable: bool
    scope_node_ids: list[str] = []
    failed_node_ids: list[str] = []
    cached_node_ids: list[str] = []


class RunRecordSchema(BaseModel):
    id: str
    workflow_id: str | None
    workflow_name: str
    started_at: int
    finished_at: int
    duration_ms: int
    success: bool
    node_count: int
    completed_count: int
    output_count: int
    error: str | None
    trigger: str
    scope: list[str] | str

"""WebSocket connection manager for real-time execution events."""
import asyncio
import json
import logging
from dataclasses import asdict
from typing import Any

from fastapi import WebSocket

from ..engine.executor import ExecutionCallbacks, NodeOutputs, ProgressData
from ..engine.graph import Node
from ..engine.history import RunRecord

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages active WebSocket connections per session."""

    def __init__(self):
        self._connections: dict[str, list[WebSocket]] = {}
        self._pending: set[asyncio.Task] = set()

    async def connect(self, session_id: str, websocket: WebSocket):
        await websocket.accept()
        if session_id not in self._connections:
            self._connections[session_id] = []
        self._connections[session_id].append(websocket)

    def disconnect(self, session_id: str, websocket: WebSocket):
        if session_id in self._connections:
            self._connections[session_id] = [
                ws for ws in self._connections[session_id] if ws is not websocket
            ]
            if not self._connections[session_id]:
                del self._connections[session_id]

    def connection_count(self, session_id: str) -> int:
        return len(self._connections.get(session_id, []))

    async def send_to_session(self, session_id: str, data: dict[str, Any]):
        if session_id not in self._connections:
            return
        message = json.dumps(data, default=str)
        dead: list[WebSocket] = []
        for ws in self._connections[session_id]:
            try:
                await ws.send_text(message)
            except Exception:
                logger.debug("Dropping dead websocket for session %s", session_id)
                dead.append(ws)
        for ws in dead:
            self.disconnect(session_id, ws)

    def post(self, session_id: str, data: dict[str, Any]) -> None:
        """Queue a message from synchronous code running on the event loop."""
        if session_id not in self._connections:
            return
        task = asyncio.get_running_loop().create_task(self.send_to_session(session_id, data))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def make_callbacks(self, session_id: str) -> ExecutionCallbacks:
        """Lifecycle callbacks that forward node events to the session's sockets."""
        def on_start(node: Node):
            self.post(session_id, {"type": "node_start", "node_id": node.id, "node_type": node.type})

        def on_complete(node: Node, output: NodeOutputs):
            self.post(session_id, {
                "type": "node_complete", "node_id": node.id,
                "node_type": node.type, "output": output,
            })

        def on_error(node: Node, error: Exception):
            self.post(session_id, {"type": "node_error", "node_id": node.id, "error": str(error)})

        def on_skip(node: Node, reason: str):
            self.post(session_id, {"type": "node_skip", "node_id": node.id, "reason": reason})

        def on_progress(progress: ProgressData):
            self.post(session_id, {"type": "progress", **asdict(progress)})

        return ExecutionCallbacks(
            on_node_start=on_start,
            on_node_complete=on_complete,
            on_node_error=on_error,
            on_node_skip=on_skip,
            on_progress=on_progress,
        )

    def make_run_listener(self, session_id: str):
        def on_run_finished(record: RunRecord):
            self.post(session_id, {"type": "run_finished", "record": asdict(record)})
        return on_run_finished


manager = ConnectionManager()

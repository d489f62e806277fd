"""Execution session manager: one coordinator, resume slot and run history per editor session."""
from ..config import settings
from ..nodes.registry import execute_node
from .coordinator import WorkflowCoordinator
from .history import RunHistoryLog
from .state import ExecutionStateStore


class ExecutionSession:
    def __init__(self, session_id: str, history_limit: int = settings.history_limit):
        self.session_id = session_id
        self.coordinator = WorkflowCoordinator(
            node_executor=execute_node,
            state_store=ExecutionStateStore(),
            history=RunHistoryLog(limit=history_limit),
        )

    @property
    def state_store(self) -> ExecutionStateStore:
        return self.coordinator.state_store

    @property
    def history(self) -> RunHistoryLog:
        return self.coordinator.history


_sessions: dict[str, ExecutionSession] = {}


def create_session(session_id: str) -> ExecutionSession:
    session = ExecutionSession(session_id)
    _sessions[session_id] = session
    return session


def get_session(session_id: str) -> ExecutionSession | None:
    return _sessions.get(session_id)


def get_or_create_session(session_id: str) -> ExecutionSession:
    return _sessions.get(session_id) or create_session(session_id)


def remove_session(session_id: str) -> None:
    _sessions.pop(session_id, None)

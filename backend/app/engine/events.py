"""Typed observer registry used to notify listeners about engine activity.

Handlers are called synchronously, in subscription order, on the thread that
emits. A handler that raises is logged and does not stop delivery to the
others.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

NODE_OUTPUT = "node_output"
RUN_FINISHED = "run_finished"

Handler = Callable[[Any], None]


@dataclass(frozen=True)
class NodeOutputEvent:
    source_id: str
    target_id: str
    source_handle: str | None
    target_handle: str | None
    content: dict[str, Any]


class EventBus:
    def __init__(self):
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``event``; returns an unsubscribe function."""
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe():
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, event: str, payload: Any = None) -> None:
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(payload)
            except Exception:
                logger.exception("Handler for %s event failed", event)

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

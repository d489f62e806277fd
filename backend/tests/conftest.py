"""Shared test fixtures for Noder backend tests."""
import asyncio
import sys
from pathlib import Path

import pytest

# Ensure app package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.engine.graph import Edge, Graph, Node


@pytest.fixture(scope="session", autouse=True)
def register_nodes():
    """Discover and register all node types once per test session."""
    from app.nodes.registry import NodeRegistry
    NodeRegistry.discover("app.nodes")


class RecordingExecutor:
    """Node executor double: records calls and fails the configured node ids."""

    def __init__(self, fail: set[str] | None = None):
        self.fail = set(fail or ())
        self.calls: list[str] = []
        self.inputs: dict[str, dict] = {}

    async def __call__(self, node: Node, inputs: dict, context: dict) -> dict:
        self.calls.append(node.id)
        self.inputs[node.id] = inputs
        await asyncio.sleep(0)
        if node.id in self.fail:
            raise RuntimeError(f"{node.id} exploded")
        return {"default": {"type": "text", "value": f"out-{node.id}", "metadata": {}}}


@pytest.fixture
def recording_executor():
    return RecordingExecutor


@pytest.fixture
def chain_graph():
    """a -> b -> c"""
    return Graph(
        nodes=[Node(id="a", type="text"), Node(id="b", type="text"), Node(id="c", type="text")],
        edges=[
            Edge(id="e1", source="a", target="b"),
            Edge(id="e2", source="b", target="c"),
        ],
    )


@pytest.fixture
def three_layer_graph():
    """Layer 1: a1, a2. Layer 2: b1 (a1), b2 (a2). Layer 3: c (b1, b2)."""
    return Graph(
        nodes=[
            Node(id="a1", type="text"), Node(id="a2", type="text"),
            Node(id="b1", type="text"), Node(id="b2", type="text"),
            Node(id="c", type="text"),
        ],
        edges=[
            Edge(id="e1", source="a1", target="b1"),
            Edge(id="e2", source="a2", target="b2"),
            Edge(id="e3", source="b1", target="c"),
            Edge(id="e4", source="b2", target="c"),
        ],
    )


@pytest.fixture
def text_display_graph():
    """Two chips feeding one display-text node on the same handle."""
    return Graph(
        nodes=[
            Node(id="chip1", type="chip", data={"content": "Hello, "}),
            Node(id="chip2", type="chip", data={"content": "world"}),
            Node(id="display", type="display-text"),
        ],
        edges=[
            Edge(id="e1", source="chip1", target="display",
                 source_handle="out", target_handle="text-in"),
            Edge(id="e2", source="chip2", target="display",
                 source_handle="out", target_handle="text-in"),
        ],
    )

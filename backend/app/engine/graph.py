"""Graph data structures and dependency-graph construction for the execution engine."""
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Edge:
    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None


@dataclass
class Node:
    id: str
    type: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Dependent:
    target_id: str
    source_handle: str | None
    target_handle: str | None


@dataclass
class DependencyGraph:
    # node id -> nodes consuming its outputs, one entry per edge
    graph: dict[str, list[Dependent]] = field(default_factory=dict)
    in_degree: dict[str, int] = field(default_factory=dict)
    # node id -> direct upstream node ids, deduplicated
    dependencies: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class Graph:
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    @property
    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_incoming_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.target == node_id]

    def get_outgoing_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.source == node_id]

    def subgraph(self, node_ids: set[str]) -> "Graph":
        """Nodes in ``node_ids`` and the edges running between them."""
        return Graph(
            nodes=[n for n in self.nodes if n.id in node_ids],
            edges=[e for e in self.edges if e.source in node_ids and e.target in node_ids],
        )


def build_dependency_graph(nodes: list[Node], edges: list[Edge]) -> DependencyGraph:
    """Build adjacency, in-degree and ancestor maps from a node and edge list.

    Edges pointing at nodes that are not in ``nodes`` are ignored.
    """
    dep = DependencyGraph()
    for node in nodes:
        dep.graph[node.id] = []
        dep.in_degree[node.id] = 0
        dep.dependencies[node.id] = []

    for edge in edges:
        if edge.source not in dep.graph or edge.target not in dep.graph:
            continue
        dep.graph[edge.source].append(
            Dependent(edge.target, edge.source_handle, edge.target_handle)
        )
        dep.in_degree[edge.target] += 1
        if edge.source not in dep.dependencies[edge.target]:
            dep.dependencies[edge.target].append(edge.source)

    return dep


def get_upstream_node_ids(target_ids: list[str] | set[str], edges: list[Edge]) -> set[str]:
    """Targets plus every node reachable by walking edges backwards."""
    incoming: dict[str, list[str]] = {}
    for edge in edges:
        incoming.setdefault(edge.target, []).append(edge.source)

    needed: set[str] = set()
    stack = list(target_ids)
    while stack:
        current = stack.pop()
        if current in needed:
            continue
        needed.add(current)
        stack.extend(p for p in incoming.get(current, []) if p not in needed)
    return needed


def get_downstream_node_ids(start_ids: set[str], edges: list[Edge]) -> set[str]:
    """Start ids plus every node reachable by walking edges forwards."""
    adjacency: dict[str, list[str]] = {}
    for edge in edges:
        adjacency.setdefault(edge.source, []).append(edge.target)

    visited: set[str] = set()
    stack = list(start_ids)
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        stack.extend(n for n in adjacency.get(current, []) if n not in visited)
    return visited

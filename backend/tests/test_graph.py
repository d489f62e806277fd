"""Tests for graph structures and dependency-graph construction."""
from app.engine.graph import (
    Dependent, Edge, Graph, Node,
    build_dependency_graph, get_downstream_node_ids, get_upstream_node_ids,
)


class TestBuildDependencyGraph:
    def test_isolated_nodes_have_zero_in_degree(self):
        nodes = [Node(id="a", type="text"), Node(id="b", type="text")]
        dep = build_dependency_graph(nodes, [])
        assert dep.in_degree == {"a": 0, "b": 0}
        assert dep.graph == {"a": [], "b": []}
        assert dep.dependencies == {"a": [], "b": []}

    def test_edges_keep_handles(self):
        nodes = [Node(id="a", type="chip"), Node(id="b", type="display-text")]
        edges = [Edge(id="e1", source="a", target="b", source_handle="out", target_handle="text-in")]
        dep = build_dependency_graph(nodes, edges)
        assert dep.graph["a"] == [Dependent("b", "out", "text-in")]
        assert dep.in_degree["b"] == 1
        assert dep.dependencies["b"] == ["a"]

    def test_parallel_edges_count_twice_but_ancestor_once(self):
        nodes = [Node(id="a", type="text"), Node(id="b", type="text")]
        edges = [
            Edge(id="e1", source="a", target="b", target_handle="x"),
            Edge(id="e2", source="a", target="b", target_handle="y"),
        ]
        dep = build_dependency_graph(nodes, edges)
        assert dep.in_degree["b"] == 2
        assert len(dep.graph["a"]) == 2
        assert dep.dependencies["b"] == ["a"]

    def test_dangling_edges_ignored(self):
        nodes = [Node(id="a", type="text")]
        edges = [
            Edge(id="e1", source="a", target="ghost"),
            Edge(id="e2", source="ghost", target="a"),
        ]
        dep = build_dependency_graph(nodes, edges)
        assert dep.in_degree == {"a": 0}
        assert dep.graph == {"a": []}
        assert "ghost" not in dep.dependencies


class TestClosures:
    def test_upstream_includes_targets_and_ancestors(self, three_layer_graph):
        ids = get_upstream_node_ids(["b1"], three_layer_graph.edges)
        assert ids == {"b1", "a1"}

    def test_upstream_of_sink_is_everything(self, three_layer_graph):
        ids = get_upstream_node_ids(["c"], three_layer_graph.edges)
        assert ids == three_layer_graph.node_ids

    def test_downstream_includes_start(self, three_layer_graph):
        ids = get_downstream_node_ids({"a2"}, three_layer_graph.edges)
        assert ids == {"a2", "b2", "c"}

    def test_closures_terminate_on_cycles(self):
        edges = [Edge(id="e1", source="a", target="b"), Edge(id="e2", source="b", target="a")]
        assert get_upstream_node_ids(["a"], edges) == {"a", "b"}
        assert get_downstream_node_ids({"a"}, edges) == {"a", "b"}


class TestGraph:
    def test_subgraph_drops_crossing_edges(self, chain_graph):
        sub = chain_graph.subgraph({"a", "b"})
        assert [n.id for n in sub.nodes] == ["a", "b"]
        assert [e.id for e in sub.edges] == ["e1"]

    def test_subgraph_preserves_node_order(self, three_layer_graph):
        sub = three_layer_graph.subgraph({"c", "a1", "b1"})
        assert [n.id for n in sub.nodes] == ["a1", "b1", "c"]

    def test_incoming_and_outgoing(self, chain_graph):
        assert [e.id for e in chain_graph.get_incoming_edges("b")] == ["e1"]
        assert [e.id for e in chain_graph.get_outgoing_edges("b")] == ["e2"]
        assert chain_graph.get_node("c").id == "c"
        assert chain_graph.get_node("zzz") is None

    def test_empty_graph(self):
        graph = Graph()
        assert graph.node_ids == set()
        assert graph.subgraph({"a"}).nodes == []

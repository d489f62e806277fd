"""Tests for graph validation: cycles, handle checking, required inputs."""
from app.engine.graph import Edge, Graph, Node
from app.engine.validator import validate_graph


class TestCycleDetection:
    def test_no_cycle(self, text_display_graph):
        errors = validate_graph(text_display_graph)
        assert not any("cyclic" in e.lower() for e in errors)

    def test_self_loop(self):
        graph = Graph(
            nodes=[Node(id="a", type="display-text")],
            edges=[Edge(id="e1", source="a", target="a", target_handle="text-in")],
        )
        errors = validate_graph(graph)
        assert any("cyclic" in e.lower() for e in errors)

    def test_two_node_cycle_names_nodes(self):
        graph = Graph(
            nodes=[Node(id="a", type="display-text"), Node(id="b", type="display-text")],
            edges=[
                Edge(id="e1", source="a", target="b", target_handle="text-in"),
                Edge(id="e2", source="b", target="a", target_handle="text-in"),
            ],
        )
        errors = validate_graph(graph)
        assert any("a, b" in e for e in errors)


class TestEdgeChecking:
    def test_valid_graph(self, text_display_graph):
        assert validate_graph(text_display_graph) == []

    def test_missing_source_node(self):
        graph = Graph(
            nodes=[Node(id="d", type="display-text")],
            edges=[Edge(id="e1", source="ghost", target="d", target_handle="text-in")],
        )
        errors = validate_graph(graph)
        assert any("missing node" in e for e in errors)

    def test_unknown_source_handle(self):
        graph = Graph(
            nodes=[Node(id="c", type="chip"), Node(id="d", type="display-text")],
            edges=[Edge(id="e1", source="c", target="d", source_handle="nope", target_handle="text-in")],
        )
        errors = validate_graph(graph)
        assert any("source handle 'nope'" in e for e in errors)

    def test_unknown_target_handle(self):
        graph = Graph(
            nodes=[Node(id="c", type="chip"), Node(id="d", type="display-text")],
            edges=[Edge(id="e1", source="c", target="d", source_handle="out", target_handle="image-in")],
        )
        errors = validate_graph(graph)
        assert any("target handle 'image-in'" in e for e in errors)

    def test_media_any_connects_to_text(self):
        graph = Graph(
            nodes=[Node(id="m", type="media"), Node(id="d", type="display-text")],
            edges=[Edge(id="e1", source="m", target="d", source_handle="out", target_handle="text-in")],
        )
        assert validate_graph(graph) == []


class TestRequiredInputs:
    def test_unconnected_required_input(self):
        graph = Graph(nodes=[Node(id="d", type="display-text")])
        errors = validate_graph(graph)
        assert any("required input 'text-in'" in e for e in errors)

    def test_unknown_node_type(self):
        graph = Graph(nodes=[Node(id="x", type="hologram")])
        errors = validate_graph(graph)
        assert errors == ["Unknown node type: hologram"]

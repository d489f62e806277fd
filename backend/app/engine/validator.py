"""Graph validation: cycle detection, dangling edges, handle types, required inputs."""
from ..nodes.base import HandleType, TYPE_COMPATIBILITY
from ..nodes.registry import NodeRegistry
from .errors import GraphError
from .executor import DEFAULT_HANDLE, topological_sort
from .graph import Graph, build_dependency_graph


def validate_graph(graph: Graph) -> list[str]:
    """Validate a graph, returning a list of error messages (empty = valid)."""
    errors: list[str] = []
    errors.extend(_check_cycles(graph))
    errors.extend(_check_edges(graph))
    errors.extend(_check_required_inputs(graph))
    return errors


def _check_cycles(graph: Graph) -> list[str]:
    dep = build_dependency_graph(graph.nodes, graph.edges)
    try:
        topological_sort(graph.nodes, dep.graph, dep.in_degree)
    except GraphError as e:
        return [str(e)]
    return []


def _check_edges(graph: Graph) -> list[str]:
    errors: list[str] = []
    for edge in graph.edges:
        src_node = graph.get_node(edge.source)
        tgt_node = graph.get_node(edge.target)
        if not src_node or not tgt_node:
            errors.append(f"Edge {edge.id} references missing node")
            continue

        if not NodeRegistry.has(src_node.type) or not NodeRegistry.has(tgt_node.type):
            # reported once per node by _check_required_inputs
            continue

        outputs = {o.name: o for o in NodeRegistry.get(src_node.type).RETURN_TYPES()}
        source_handle = edge.source_handle or DEFAULT_HANDLE
        if source_handle not in outputs:
            errors.append(
                f"Edge {edge.id}: source handle '{source_handle}' "
                f"not found on {src_node.type}"
            )
            continue

        inputs = NodeRegistry.get(tgt_node.type).INPUT_TYPES()
        target_handle = edge.target_handle or DEFAULT_HANDLE
        if target_handle not in inputs:
            errors.append(
                f"Edge {edge.id}: target handle '{target_handle}' "
                f"not found on {tgt_node.type}"
            )
            continue

        src_dtype = outputs[source_handle].dtype
        tgt_dtype = inputs[target_handle].dtype
        if tgt_dtype not in TYPE_COMPATIBILITY.get(src_dtype, {HandleType.ANY}):
            errors.append(
                f"Edge {edge.id}: type mismatch {src_dtype.value} → {tgt_dtype.value}"
            )

    for node in graph.nodes:
        if not NodeRegistry.has(node.type):
            continue
        inputs = NodeRegistry.get(node.type).INPUT_TYPES()
        for name, spec in inputs.items():
            if spec.multiple:
                continue
            count = sum(
                1 for e in graph.get_incoming_edges(node.id)
                if (e.target_handle or DEFAULT_HANDLE) == name
            )
            if count > 1:
                errors.append(
                    f"Node '{node.id}' ({node.type}): input '{name}' "
                    f"accepts a single connection, got {count}"
                )

    return errors


def _check_required_inputs(graph: Graph) -> list[str]:
    errors: list[str] = []
    for node in graph.nodes:
        if not NodeRegistry.has(node.type):
            errors.append(f"Unknown node type: {node.type}")
            continue

        connected = {
            e.target_handle or DEFAULT_HANDLE for e in graph.get_incoming_edges(node.id)
        }
        for name, spec in NodeRegistry.get(node.type).INPUT_TYPES().items():
            if spec.required and name not in connected:
                errors.append(
                    f"Node '{node.id}' ({node.type}): "
                    f"required input '{name}' not connected"
                )

    return errors

"""JSON exporter for module graphs (machine-friendly format)."""

import json
from typing import Any

from modgraph.graph.builder import ModuleGraph


def to_dict(graph: ModuleGraph) -> dict[str, Any]:
    """
    Convert a module graph to plain data.

    Returns:
        {"modules": [...], "edges": [{"from", "to", "functions"}, ...]},
        modules sorted, edges sorted by endpoints, functions in
        first-seen order.
    """
    return {
        "modules": sorted(graph.modules),
        "edges": [
            {
                "from": edge.from_module,
                "to": edge.to_module,
                "functions": list(edge.functions),
            }
            for edge in graph.iter_edges()
        ],
    }


def to_json(graph: ModuleGraph, indent: int = 2) -> str:
    """Convert a module graph to a JSON document."""
    return json.dumps(to_dict(graph), indent=indent)

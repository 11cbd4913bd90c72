"""Exporters for converting a module graph to textual formats."""

from modgraph.export.mermaid import ORIENTATIONS, to_mermaid
from modgraph.export.json_export import to_dict, to_json

FORMATS = ("mermaid", "json")


def export_graph(graph, fmt: str = "mermaid", orientation: str = "LR") -> str:
    """Serialize graph in the named format."""
    if fmt == "mermaid":
        return to_mermaid(graph, orientation=orientation)
    if fmt == "json":
        return to_json(graph)
    raise ValueError(f"Unknown format {fmt!r}; expected one of {', '.join(FORMATS)}")


__all__ = ["FORMATS", "ORIENTATIONS", "export_graph", "to_mermaid", "to_dict", "to_json"]

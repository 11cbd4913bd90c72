"""Mermaid flowchart exporter for module graphs."""

import re

from modgraph.graph.builder import ModuleGraph


ORIENTATIONS = ("LR", "TD", "TB", "RL", "BT")

# Mermaid's in-label line break escape (backslash followed by n)
LABEL_SEPARATOR = "\\n"


def to_mermaid(graph: ModuleGraph, orientation: str = "LR") -> str:
    """
    Convert a module graph to Mermaid flowchart syntax.

    Args:
        graph: The module graph to export.
        orientation: Flowchart orientation (LR, TD, TB, RL, BT).

    Returns:
        Mermaid flowchart string: one node declaration per module, then one
        labeled edge per module pair, the label listing the callee names.

    Example:
        flowchart LR
            a["a"]
            b["b"]
            a -->|bar\\nbaz| b
    """
    if orientation not in ORIENTATIONS:
        raise ValueError(
            f"Unknown orientation {orientation!r}; expected one of {', '.join(ORIENTATIONS)}"
        )

    lines = [f"flowchart {orientation}"]
    node_ids = _assign_ids(sorted(graph.modules))

    for module, node_id in node_ids.items():
        lines.append(f'    {node_id}["{_escape_label(module)}"]')

    for edge in graph.iter_edges():
        label = LABEL_SEPARATOR.join(_escape_label(name) for name in edge.functions)
        lines.append(f"    {node_ids[edge.from_module]} -->|{label}| {node_ids[edge.to_module]}")

    return "\n".join(lines) + "\n"


def _assign_ids(modules: list[str]) -> dict[str, str]:
    """Give every module a distinct, valid Mermaid node ID."""
    ids: dict[str, str] = {}
    used: set[str] = set()
    for module in modules:
        base = _sanitize_id(module)
        candidate = base
        suffix = 2
        while candidate in used:
            candidate = f"{base}_{suffix}"
            suffix += 1
        used.add(candidate)
        ids[module] = candidate
    return ids


def _sanitize_id(value: str) -> str:
    """
    Convert a module name to a valid Mermaid node ID.

    Mermaid IDs can only contain letters, digits, and underscores.
    """
    sanitized = re.sub(r"[.\-\s]", "_", value)
    sanitized = re.sub(r"[^a-zA-Z0-9_]", "", sanitized)
    if not sanitized or not sanitized[0].isalpha():
        sanitized = "m_" + sanitized
    # "end" is reserved in flowchart syntax
    if sanitized.lower() == "end":
        sanitized = "m_" + sanitized
    return sanitized


def _escape_label(value: str) -> str:
    """Escape characters that would terminate a quoted or piped label."""
    return value.replace('"', "#quot;").replace("|", "#124;")

"""
Graph module for modgraph.

This module provides symbol resolution, call attribution and the
NetworkX-based module graph built from them.
"""

from modgraph.graph.attribution import attribute_calls, find_enclosing_definition
from modgraph.graph.builder import (
    EdgeAggregator,
    ModuleGraph,
    build_graph_from_sources,
    build_graph_from_directory,
)
from modgraph.graph.symbols import SymbolTable

__all__ = [
    "EdgeAggregator",
    "ModuleGraph",
    "SymbolTable",
    "attribute_calls",
    "find_enclosing_definition",
    "build_graph_from_sources",
    "build_graph_from_directory",
]

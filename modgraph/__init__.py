"""
modgraph Engine

Core engine for scanning C-family source trees, extracting function
definitions and call sites, and building a module-level call graph.
"""

from modgraph.models import CallSite, FunctionDefinition, ModuleEdge, ScanResult

__all__ = ["CallSite", "FunctionDefinition", "ModuleEdge", "ScanResult"]
__version__ = "0.1.0"

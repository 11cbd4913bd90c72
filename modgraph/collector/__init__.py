"""
Collector module for modgraph.

This module enumerates the source files of a directory tree.
"""

from modgraph.collector.discovery import collect_source_files, iter_source_files

__all__ = [
    "collect_source_files",
    "iter_source_files",
]

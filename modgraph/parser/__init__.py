"""
Parser module for modgraph.

This module provides pattern-based extraction of function definitions
and call sites from C-family source text.
"""

from modgraph.parser.extractor import (
    extract_definitions,
    extract_calls,
    strip_comments,
    definition_pattern,
)

__all__ = [
    "extract_definitions",
    "extract_calls",
    "strip_comments",
    "definition_pattern",
]

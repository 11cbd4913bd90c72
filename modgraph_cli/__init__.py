"""
CLI module for modgraph.

The command-line interface providing scan and export commands.
"""

from modgraph_cli.main import app

__all__ = ["app"]

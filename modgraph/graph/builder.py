"""
Graph Builder for modgraph

This module runs the two-pass scan and assembles a NetworkX-based module
graph where nodes are modules and edges are cross-module call
relationships annotated with the callee names observed.

Design Decisions:
    - Uses a frozen NetworkX DiGraph so the finished graph is an immutable snapshot
    - Pass 1 (definitions) completes for every file before pass 2 (calls) starts;
      call resolution needs the complete symbol table
    - Per-file work in each pass runs on a thread pool; results are reduced
      single-threaded in file order, so the outcome equals a sequential run
    - Same-module and unresolved calls never produce edges

Pipeline:
    Input: source files (from a directory or an in-memory mapping)
    Pass 1: extract definitions per file, merge into the SymbolTable
    Pass 2: extract calls per file, attribute, resolve, aggregate edges
    Output: ScanResult holding the ModuleGraph and statistics
    Limitation: Name-only resolution; ambiguous names resolve to the last file merged
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, Iterator, Mapping, Optional, Sequence, TypeVar

import networkx as nx

from modgraph.collector import collect_source_files
from modgraph.config import ScanConfig
from modgraph.graph.attribution import attribute_calls
from modgraph.graph.symbols import SymbolTable
from modgraph.models import AttributedCall, ModuleEdge, ScanResult, SourceFile
from modgraph.parser import extract_calls, extract_definitions

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ModuleGraph:
    """
    The module-level call graph.

    Wraps a frozen NetworkX DiGraph. Each node is a module name; each
    edge carries the ModuleEdge it was built from under the "edge"
    attribute and its callee names under "functions".

    Attributes:
        modules: Every module in the graph
        edges: Mapping from (from_module, to_module) to ModuleEdge

    Usage:
        graph = ModuleGraph.from_edges({"a", "b"}, [ModuleEdge("a", "b", ("bar",))])
        for edge in graph.iter_edges():
            print(edge.from_module, "->", edge.to_module)
    """

    def __init__(self, graph: Optional[nx.DiGraph] = None) -> None:
        """Wrap graph (or an empty one) as a read-only snapshot."""
        self._graph: nx.DiGraph = nx.freeze(graph if graph is not None else nx.DiGraph())

    @classmethod
    def from_edges(
        cls,
        modules: Iterable[str],
        edges: Iterable[ModuleEdge],
    ) -> "ModuleGraph":
        """
        Build a graph from module names and edges.

        Edge endpoints are added as modules even when absent from
        modules, so every endpoint is always a member of the graph.
        """
        graph = nx.DiGraph()
        graph.add_nodes_from(sorted(modules))
        for edge in edges:
            graph.add_edge(
                edge.from_module,
                edge.to_module,
                edge=edge,
                functions=edge.functions,
            )
        return cls(graph)

    @property
    def graph(self) -> nx.DiGraph:
        """Access the underlying (frozen) NetworkX graph."""
        return self._graph

    @property
    def modules(self) -> frozenset[str]:
        return frozenset(self._graph.nodes)

    @property
    def edges(self) -> dict[tuple[str, str], ModuleEdge]:
        return {(u, v): data["edge"] for u, v, data in self._graph.edges(data=True)}

    @property
    def module_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def get_edge(self, from_module: str, to_module: str) -> Optional[ModuleEdge]:
        """Return the edge between two modules, or None."""
        if not self._graph.has_edge(from_module, to_module):
            return None
        return self._graph.edges[from_module, to_module]["edge"]

    def get_callees(self, module: str) -> Iterator[str]:
        """
        Get modules called from the given module.

        Yields:
            Module names (successors)
        """
        if module in self._graph:
            yield from self._graph.successors(module)

    def get_callers(self, module: str) -> Iterator[str]:
        """
        Get modules that call into the given module.

        Yields:
            Module names (predecessors)
        """
        if module in self._graph:
            yield from self._graph.predecessors(module)

    def iter_edges(self) -> Iterator[ModuleEdge]:
        """Iterate over all edges sorted by (from_module, to_module)."""
        for key in sorted(self._graph.edges):
            yield self._graph.edges[key]["edge"]

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def __contains__(self, module: object) -> bool:
        return module in self._graph

    def __repr__(self) -> str:
        return f"ModuleGraph(modules={self.module_count}, edges={self.edge_count})"


class EdgeAggregator:
    """
    Accumulates unique cross-module edges from attributed calls.

    Each call's callee name is resolved through the symbol table.
    Unresolved names (library calls, scanner false positives) and calls
    whose callee lives in the caller's own module are discarded.
    """

    def __init__(self, symbols: SymbolTable) -> None:
        self._symbols = symbols
        self._edges: dict[tuple[str, str], ModuleEdge] = {}

    @property
    def edges(self) -> dict[tuple[str, str], ModuleEdge]:
        return dict(self._edges)

    def add_call(self, attributed: AttributedCall) -> bool:
        """
        Record one attributed call.

        Returns:
            True if the call resolved to another module and was recorded
        """
        callee = self._symbols.resolve(attributed.callee_name)
        if callee is None:
            return False
        if callee.module == attributed.caller_module:
            return False

        self._add(attributed.caller_module, callee.module, attributed.callee_name)
        return True

    def add_calls(self, calls: Iterable[AttributedCall]) -> int:
        """Record calls; return how many resolved to another module."""
        return sum(1 for call in calls if self.add_call(call))

    def merge(self, other: "EdgeAggregator") -> None:
        """Fold another aggregator's edges into this one, in its order."""
        for edge in other._edges.values():
            for name in edge.functions:
                self._add(edge.from_module, edge.to_module, name)

    def build_graph(self, modules: Iterable[str]) -> ModuleGraph:
        return ModuleGraph.from_edges(modules, self._edges.values())

    def _add(self, from_module: str, to_module: str, name: str) -> None:
        key = (from_module, to_module)
        edge = self._edges.get(key)
        if edge is None:
            edge = ModuleEdge(from_module=from_module, to_module=to_module)
        self._edges[key] = edge.with_function(name)


def build_graph_from_sources(
    sources: Mapping[str, str],
    config: Optional[ScanConfig] = None,
) -> ScanResult:
    """
    Build a module graph from in-memory source texts.

    Files are processed in the mapping's iteration order, which decides
    the winner when several files define the same name.

    Args:
        sources: Mapping from file path to file text
        config: Scan options (only keywords and worker count apply here)

    Returns:
        A ScanResult containing the graph and statistics

    Example:
        >>> result = build_graph_from_sources({
        ...     "a.c": "int main(){ bar(); }",
        ...     "b.c": "void bar(){}",
        ... })
        >>> [(e.from_module, e.to_module, e.functions) for e in result.graph.iter_edges()]
        [('a', 'b', ('bar',))]
    """
    start_time = time.time()
    config = config or ScanConfig()
    files = [SourceFile.from_text(path, text) for path, text in sources.items()]
    return _run_pipeline(
        files, config, files_found=len(files), warnings=[], start_time=start_time
    )


def build_graph_from_directory(
    directory: Path | str,
    config: Optional[ScanConfig] = None,
) -> ScanResult:
    """
    Build a module graph from every source file under a directory.

    Unreadable files and directories are skipped and reported in
    ScanResult.warnings; they never abort the scan.

    Args:
        directory: Path to the directory to scan
        config: Scan options; defaults to C/C++ extensions

    Returns:
        A ScanResult containing the graph and statistics

    Raises:
        FileNotFoundError: If the directory doesn't exist
        NotADirectoryError: If the path is not a directory

    Example:
        >>> result = build_graph_from_directory("./firmware")
        >>> print(f"{result.graph.edge_count} edges across {result.files_scanned} files")
    """
    start_time = time.time()
    config = config or ScanConfig()
    warnings: list[tuple[str, str]] = []

    paths = collect_source_files(
        directory,
        extensions=config.extensions,
        exclude_dirs=config.exclude_dirs,
        on_warning=lambda path, message: warnings.append((path, message)),
    )

    files = []
    for path in paths:
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Skipping unreadable file %s: %s", path, e)
            warnings.append((str(path), e.strerror or str(e)))
            continue
        files.append(SourceFile.from_text(path, text))

    if not paths:
        logger.warning("No source files found under %s", directory)
    elif not files:
        logger.warning("None of the %d source file(s) under %s could be read", len(paths), directory)

    return _run_pipeline(
        files, config, files_found=len(paths), warnings=warnings, start_time=start_time
    )


def _run_pipeline(
    files: Sequence[SourceFile],
    config: ScanConfig,
    files_found: int,
    warnings: list[tuple[str, str]],
    start_time: float,
) -> ScanResult:
    """Run both passes over loaded files and assemble the ScanResult."""
    keywords = config.definition_keywords

    # Pass 1: definitions. Must be complete before any call is resolved.
    per_file = _map_files(
        lambda source: extract_definitions(source.text, source.module, keywords),
        files,
        config.max_workers,
    )
    symbols = SymbolTable()
    for source, definitions in zip(files, per_file):
        source.definitions = tuple(definitions)
        symbols.merge(definitions)

    definitions_found = sum(len(source.definitions) for source in files)
    if files and not definitions_found:
        logger.warning("No function definitions found in %d file(s)", len(files))

    # Pass 2: calls, resolved against the complete symbol table
    partials = _map_files(
        lambda source: _scan_calls(source, symbols),
        files,
        config.max_workers,
    )
    aggregator = EdgeAggregator(symbols)
    calls_found = 0
    for count, partial in partials:
        calls_found += count
        aggregator.merge(partial)

    modules = {d.module for source in files for d in source.definitions}
    graph = aggregator.build_graph(modules)

    logger.info(
        "Scanned %d file(s): %d definition(s), %d call site(s), %d module(s), %d edge(s)",
        len(files),
        definitions_found,
        calls_found,
        graph.module_count,
        graph.edge_count,
    )

    return ScanResult(
        graph=graph,
        symbols=symbols,
        files_found=files_found,
        files_scanned=len(files),
        definitions_found=definitions_found,
        calls_found=calls_found,
        warnings=warnings,
        scan_time_seconds=time.time() - start_time,
    )


def _scan_calls(source: SourceFile, symbols: SymbolTable) -> tuple[int, EdgeAggregator]:
    """Scan one file's calls into a private aggregator (symbols is read-only here)."""
    calls = extract_calls(source.text)
    partial = EdgeAggregator(symbols)
    partial.add_calls(attribute_calls(calls, source.definitions, source.module))
    return len(calls), partial


def _map_files(
    func: Callable[[T], R],
    items: Sequence[T],
    max_workers: int,
) -> list[R]:
    """Apply func to every item, preserving order; threaded when worthwhile."""
    if max_workers == 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(func, items))

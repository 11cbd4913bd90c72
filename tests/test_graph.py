"""
Tests for the graph module.

Tests symbol resolution, call attribution, edge aggregation and
graph construction.
"""

from pathlib import Path

import networkx as nx
import pytest
from modgraph.config import ScanConfig
from modgraph.graph import (
    EdgeAggregator,
    ModuleGraph,
    SymbolTable,
    attribute_calls,
    find_enclosing_definition,
    build_graph_from_sources,
    build_graph_from_directory,
)
from modgraph.models import (
    MODULE_LEVEL,
    AttributedCall,
    CallSite,
    FunctionDefinition,
    ModuleEdge,
)
from modgraph.parser import extract_calls, extract_definitions
from tests.sources import (
    SAMPLE_PROJECT,
    TWO_FUNCTIONS,
    MODULE_LEVEL_CALL,
    CALL_BETWEEN_FUNCTIONS,
    EXAMPLE_CALLER,
    EXAMPLE_CALLEE,
    EXAMPLE_SAME_MODULE,
    EXAMPLE_UNDEFINED,
)


def _edge_set(graph):
    """Module pairs with their function-name sets, ignoring order."""
    return {key: frozenset(edge.functions) for key, edge in graph.edges.items()}


class TestSymbolTable:
    """Tests for the SymbolTable class."""

    def test_add_and_resolve(self):
        """Test adding and resolving a definition."""
        symbols = SymbolTable()
        definition = FunctionDefinition("bar", "b", 0)

        symbols.add(definition)

        assert symbols.resolve("bar") == definition
        assert "bar" in symbols
        assert len(symbols) == 1

    def test_unknown_name(self):
        """Test that unknown names resolve to None."""
        assert SymbolTable().resolve("missing") is None

    def test_later_insertion_wins(self):
        """Test that redefinitions replace earlier entries."""
        symbols = SymbolTable()
        symbols.merge([
            FunctionDefinition("init", "first", 0),
            FunctionDefinition("init", "second", 10),
        ])

        assert len(symbols) == 1
        assert symbols.resolve("init").module == "second"


class TestAttribution:
    """Tests for textual-order call attribution."""

    def test_nearest_preceding_definition(self):
        """Test that a call belongs to the last definition before it."""
        definitions = extract_definitions(TWO_FUNCTIONS, "math")
        calls = extract_calls(TWO_FUNCTIONS)

        attributed = attribute_calls(calls, definitions, "math")

        assert [(a.caller.name, a.callee_name) for a in attributed] == [
            ("add", "add"),
            ("reset", "reset"),
            ("reset", "add"),
        ]

    def test_module_level_fallback(self):
        """Test that calls before any definition get the pseudo-function."""
        definitions = extract_definitions(MODULE_LEVEL_CALL, "tables")
        calls = extract_calls(MODULE_LEVEL_CALL)

        attributed = attribute_calls(calls, definitions, "tables")
        by_callee = {a.callee_name: a.caller for a in attributed}

        pseudo = by_callee["build_table"]
        assert pseudo.name == MODULE_LEVEL
        assert pseudo.module == "tables"
        assert pseudo.start_offset == 0
        assert pseudo.is_module_level
        assert by_callee["lookup"].name == "use_table"

    def test_no_brace_tracking(self):
        """Test that a call between two bodies goes to the preceding function."""
        definitions = extract_definitions(CALL_BETWEEN_FUNCTIONS, "hooks")
        calls = extract_calls(CALL_BETWEEN_FUNCTIONS)

        attributed = attribute_calls(calls, definitions, "hooks")
        by_callee = {a.callee_name: a.caller.name for a in attributed}

        assert by_callee["register_hook"] == "first"

    def test_offset_equal_to_start(self):
        """Test that a definition encloses a call at its own start offset."""
        definitions = [FunctionDefinition("f", "m", 10), FunctionDefinition("g", "m", 20)]

        assert find_enclosing_definition(definitions, 10, "m").name == "f"
        assert find_enclosing_definition(definitions, 19, "m").name == "f"
        assert find_enclosing_definition(definitions, 20, "m").name == "g"
        assert find_enclosing_definition(definitions, 9, "m").name == MODULE_LEVEL

    def test_empty_definitions(self):
        """Test attribution in a file without definitions."""
        attributed = attribute_calls([CallSite("f", 3)], [], "bare")

        assert attributed[0].caller == FunctionDefinition.module_level("bare")


class TestEdgeAggregator:
    """Tests for edge aggregation."""

    def _symbols(self):
        symbols = SymbolTable()
        symbols.merge([
            FunctionDefinition("main", "a", 0),
            FunctionDefinition("bar", "b", 0),
            FunctionDefinition("baz", "b", 20),
        ])
        return symbols

    def _call(self, caller_module, callee):
        return AttributedCall(
            caller=FunctionDefinition("main", caller_module, 0),
            call=CallSite(callee, 5),
        )

    def test_cross_module_call_recorded(self):
        """Test that a resolved cross-module call creates an edge."""
        aggregator = EdgeAggregator(self._symbols())

        assert aggregator.add_call(self._call("a", "bar")) is True
        assert aggregator.edges == {("a", "b"): ModuleEdge("a", "b", ("bar",))}

    def test_unresolved_discarded(self):
        """Test that unknown callees are dropped."""
        aggregator = EdgeAggregator(self._symbols())

        assert aggregator.add_call(self._call("a", "printf")) is False
        assert aggregator.edges == {}

    def test_same_module_discarded(self):
        """Test that intra-module calls never form edges."""
        aggregator = EdgeAggregator(self._symbols())

        assert aggregator.add_call(self._call("b", "bar")) is False
        assert aggregator.edges == {}

    def test_functions_deduplicated_in_order(self):
        """Test that callee names are distinct and keep first-seen order."""
        aggregator = EdgeAggregator(self._symbols())

        count = aggregator.add_calls([
            self._call("a", "baz"),
            self._call("a", "bar"),
            self._call("a", "baz"),
        ])

        assert count == 3
        assert aggregator.edges[("a", "b")].functions == ("baz", "bar")

    def test_merge(self):
        """Test folding partial aggregators together."""
        symbols = self._symbols()
        first = EdgeAggregator(symbols)
        first.add_call(self._call("a", "bar"))
        second = EdgeAggregator(symbols)
        second.add_call(self._call("a", "baz"))
        second.add_call(self._call("a", "bar"))

        first.merge(second)

        assert first.edges[("a", "b")].functions == ("bar", "baz")


class TestModuleEdge:
    """Tests for the ModuleEdge model."""

    def test_self_edge_rejected(self):
        """Test that an edge cannot point at its own module."""
        with pytest.raises(ValueError):
            ModuleEdge("a", "a")

    def test_with_function(self):
        """Test immutable function-list updates."""
        edge = ModuleEdge("a", "b", ("bar",))

        assert edge.with_function("bar") is edge
        assert edge.with_function("baz").functions == ("bar", "baz")
        assert edge.functions == ("bar",)
        assert edge.key == ("a", "b")


class TestModuleGraph:
    """Tests for the ModuleGraph class."""

    def test_empty_graph(self):
        """Test empty graph initialization."""
        graph = ModuleGraph()

        assert len(graph) == 0
        assert graph.modules == frozenset()
        assert graph.edges == {}

    def test_from_edges(self):
        """Test building a graph from modules and edges."""
        edge = ModuleEdge("a", "b", ("bar",))
        graph = ModuleGraph.from_edges({"a", "b", "c"}, [edge])

        assert graph.modules == {"a", "b", "c"}
        assert graph.module_count == 3
        assert graph.edge_count == 1
        assert graph.get_edge("a", "b") == edge
        assert graph.get_edge("b", "a") is None
        assert list(graph.get_callees("a")) == ["b"]
        assert list(graph.get_callers("b")) == ["a"]
        assert list(graph.get_callers("missing")) == []

    def test_edge_endpoints_become_modules(self):
        """Test that edge endpoints are always graph members."""
        graph = ModuleGraph.from_edges({"b"}, [ModuleEdge("a", "b", ("bar",))])

        assert "a" in graph

    def test_graph_is_frozen(self):
        """Test that the underlying graph can't be modified."""
        graph = ModuleGraph.from_edges({"a"}, [])

        assert nx.is_frozen(graph.graph)
        with pytest.raises(nx.NetworkXError):
            graph.graph.add_node("b")

    def test_iter_edges_sorted(self):
        """Test that edges iterate in endpoint order."""
        graph = ModuleGraph.from_edges(
            set(),
            [ModuleEdge("c", "a", ("x",)), ModuleEdge("a", "c", ("y",)), ModuleEdge("a", "b", ("z",))],
        )

        assert [e.key for e in graph.iter_edges()] == [("a", "b"), ("a", "c"), ("c", "a")]

    def test_repr(self):
        """Test string representation."""
        graph = ModuleGraph.from_edges({"a", "b"}, [ModuleEdge("a", "b", ("bar",))])

        assert repr(graph) == "ModuleGraph(modules=2, edges=1)"


class TestGraphBuilding:
    """Tests for graph construction from sources."""

    def test_cross_module_call(self):
        """Test a caller in one file and its callee in another."""
        result = build_graph_from_sources({"a.c": EXAMPLE_CALLER, "b.c": EXAMPLE_CALLEE})

        graph = result.graph
        assert graph.modules == {"a", "b"}
        assert graph.edges == {("a", "b"): ModuleEdge("a", "b", ("bar",))}

    def test_same_module_call(self):
        """Test that calls within one file produce no edges."""
        result = build_graph_from_sources({"a.c": EXAMPLE_SAME_MODULE})

        assert result.graph.modules == {"a"}
        assert result.graph.edges == {}

    def test_undefined_callee(self):
        """Test that calls to unknown functions are discarded."""
        result = build_graph_from_sources({"x.c": EXAMPLE_UNDEFINED})

        assert result.graph.edges == {}
        assert result.warnings == []

    def test_duplicate_name_last_file_wins(self):
        """Test that the later-processed definition owns an ambiguous name."""
        result = build_graph_from_sources({
            "first.c": "void init(){}",
            "second.c": "void init(){}",
            "app.c": "int main(){ init(); }",
        })

        assert len([name for name in result.symbols if name == "init"]) == 1
        assert result.symbols.resolve("init").module == "second"
        assert set(result.graph.get_callees("app")) == {"second"}
        assert set(result.graph.get_callers("first")) == set()

    def test_duplicate_name_order_dependent(self):
        """Test that reversing file order changes the winner."""
        result = build_graph_from_sources({
            "second.c": "void init(){}",
            "first.c": "void init(){}",
            "app.c": "int main(){ init(); }",
        })

        assert result.symbols.resolve("init").module == "first"

    def test_modules_include_overridden_definitions(self):
        """Test that a module whose only definition lost still appears."""
        result = build_graph_from_sources({
            "first.c": "void init(){}",
            "second.c": "void init(){}",
        })

        assert result.graph.modules == {"first", "second"}

    def test_module_level_caller_in_file_without_definitions(self):
        """Test that a definition-less caller module still joins the graph."""
        result = build_graph_from_sources({
            "lib.c": "int build_table(void) { return 0; }",
            "tables.c": "static int table = build_table();",
        })

        assert ("tables", "lib") in result.graph.edges
        assert "tables" in result.graph.modules

    def test_no_definitions(self):
        """Test sources without any function definitions."""
        result = build_graph_from_sources({"data.c": "static const char *name = \"x\";"})

        assert not result.has_definitions
        assert result.graph.modules == frozenset()
        assert result.graph.edges == {}

    def test_statistics(self):
        """Test that counters reflect the scan."""
        result = build_graph_from_sources({"a.c": EXAMPLE_CALLER, "b.c": EXAMPLE_CALLEE})

        assert result.files_found == 2
        assert result.files_scanned == 2
        assert result.definitions_found == 2
        # main( and bar( in a.c, bar( in b.c
        assert result.calls_found == 3
        assert result.scan_time_seconds >= 0

    def test_idempotent(self):
        """Test that rescanning unchanged input yields the same graph."""
        sources = {"a.c": EXAMPLE_CALLER, "b.c": EXAMPLE_CALLEE, "x.c": EXAMPLE_UNDEFINED}

        first = build_graph_from_sources(sources).graph
        second = build_graph_from_sources(sources).graph

        assert first.modules == second.modules
        assert _edge_set(first) == _edge_set(second)

    def test_permutation_invariant(self):
        """Test that processing order doesn't change the edge set."""
        sources = {
            "a.c": "int main(){ bar(); baz(); }",
            "b.c": "void bar(){ baz(); }",
            "c.c": "void baz(){ bar(); }",
        }
        reordered = dict(reversed(list(sources.items())))

        forward = build_graph_from_sources(sources).graph
        backward = build_graph_from_sources(reordered).graph

        assert forward.modules == backward.modules
        assert _edge_set(forward) == _edge_set(backward)

    def test_threaded_matches_sequential(self):
        """Test that worker count doesn't affect the result."""
        sources = {f"m{i}.c": f"void f{i}(){{ f{(i + 1) % 8}(); }}" for i in range(8)}

        sequential = build_graph_from_sources(sources, ScanConfig(max_workers=1))
        threaded = build_graph_from_sources(sources, ScanConfig(max_workers=4))

        assert sequential.graph.edges == threaded.graph.edges
        assert sequential.graph.edge_count == 8


class TestGraphInvariants:
    """Tests for properties that hold for every produced graph."""

    @pytest.fixture
    def result(self):
        return build_graph_from_directory(SAMPLE_PROJECT)

    def test_endpoints_are_modules(self, result):
        """Test that every edge endpoint is a known module."""
        for edge in result.graph.iter_edges():
            assert edge.from_module in result.graph.modules
            assert edge.to_module in result.graph.modules

    def test_no_self_edges(self, result):
        """Test that no edge connects a module to itself."""
        for edge in result.graph.iter_edges():
            assert edge.from_module != edge.to_module

    def test_functions_resolve_to_target(self, result):
        """Test that each edge function is defined in the target module."""
        for edge in result.graph.iter_edges():
            for name in edge.functions:
                assert name in result.symbols
                assert result.symbols.resolve(name).module == edge.to_module


class TestDirectoryBuilding:
    """Tests for scanning a source tree on disk."""

    def test_sample_project(self):
        """Test the full pipeline on the sample project."""
        result = build_graph_from_directory(SAMPLE_PROJECT)

        assert result.files_found == 7
        assert result.files_scanned == 7
        assert result.definitions_found == 11
        assert len(result.symbols) == 7
        assert result.graph.modules == {"main", "uart", "sensor", "log", "generated"}
        assert result.graph.edges == {
            ("generated", "log"): ModuleEdge("generated", "log", ("log_debug",)),
            ("main", "uart"): ModuleEdge("main", "uart", ("uart_init", "uart_send")),
            ("main", "sensor"): ModuleEdge("main", "sensor", ("sensor_init", "sensor_read")),
            ("uart", "log"): ModuleEdge("uart", "log", ("log_debug",)),
            ("sensor", "log"): ModuleEdge("sensor", "log", ("log_debug",)),
        }

    def test_commented_out_call_ignored(self):
        """Test that main's commented log call creates no edge."""
        result = build_graph_from_directory(SAMPLE_PROJECT)

        assert result.graph.get_edge("main", "log") is None

    def test_build_directory_scanned_by_default(self, tmp_path):
        """Test that sources under build/ or dist/ take part in resolution."""
        (tmp_path / "app.c").write_text("int main(){ codec_run(); }")
        (tmp_path / "dist").mkdir()
        (tmp_path / "dist" / "codec.c").write_text("void codec_run(){}")

        result = build_graph_from_directory(tmp_path)

        assert result.files_scanned == 2
        assert result.graph.edges == {
            ("app", "codec"): ModuleEdge("app", "codec", ("codec_run",)),
        }

    def test_excluded_directory_skipped(self):
        """Test that an explicitly excluded directory is not scanned."""
        config = ScanConfig.from_options(exclude_dirs=["build"])

        result = build_graph_from_directory(SAMPLE_PROJECT, config)

        assert result.files_scanned == 6
        assert "generated" not in result.graph.modules
        assert ("generated", "log") not in result.graph.edges

    def test_custom_config(self):
        """Test restricting extensions to implementation files."""
        config = ScanConfig(extensions=frozenset({".c"}))

        result = build_graph_from_directory(SAMPLE_PROJECT, config)

        assert result.files_scanned == 5
        assert ("generated", "log") in result.graph.edges
        assert result.symbols.resolve("uart_init").module == "uart"

    def test_empty_directory(self, tmp_path):
        """Test that an empty tree yields an empty graph, not an error."""
        result = build_graph_from_directory(tmp_path)

        assert result.is_empty
        assert not result.all_unreadable
        assert result.graph.modules == frozenset()
        assert result.graph.edges == {}

    def test_missing_directory(self, tmp_path):
        """Test that a missing root raises."""
        with pytest.raises(FileNotFoundError):
            build_graph_from_directory(tmp_path / "nope")

    def test_unreadable_file_skipped(self, tmp_path, monkeypatch):
        """Test that a file that can't be read is reported and skipped."""
        (tmp_path / "a.c").write_text(EXAMPLE_CALLER)
        (tmp_path / "b.c").write_text(EXAMPLE_CALLEE)
        (tmp_path / "broken.c").write_text("void bar(){}")

        original = Path.read_text

        def fake_read_text(self, *args, **kwargs):
            if self.name == "broken.c":
                raise PermissionError(13, "Permission denied")
            return original(self, *args, **kwargs)

        monkeypatch.setattr(Path, "read_text", fake_read_text)

        result = build_graph_from_directory(tmp_path)

        assert result.files_found == 3
        assert result.files_scanned == 2
        assert result.warning_count == 1
        assert result.warnings[0][0].endswith("broken.c")
        assert result.graph.edges == {("a", "b"): ModuleEdge("a", "b", ("bar",))}

    def test_undecodable_bytes_tolerated(self, tmp_path):
        """Test that non-UTF-8 bytes don't abort the scan."""
        (tmp_path / "latin.c").write_bytes(b"/* caf\xe9 */ void bar(){}")
        (tmp_path / "a.c").write_text(EXAMPLE_CALLER)

        result = build_graph_from_directory(tmp_path)

        assert result.warnings == []
        assert ("a", "latin") in result.graph.edges

    def test_every_file_unreadable(self, tmp_path, monkeypatch):
        """Test that collected-but-unreadable files are told apart from none found."""
        (tmp_path / "a.c").write_text(EXAMPLE_CALLER)

        def failing_read_text(self, *args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(Path, "read_text", failing_read_text)

        result = build_graph_from_directory(tmp_path)

        assert result.files_found == 1
        assert result.files_scanned == 0
        assert result.is_empty
        assert result.all_unreadable
        assert result.warning_count == 1

"""
Core Data Models for modgraph

This module defines the canonical data structures used throughout the system:
- FunctionDefinition: A textual match believed to introduce a function
- CallSite: A textual match believed to invoke a function
- AttributedCall: A call site paired with the definition that encloses it
- ModuleEdge: A directed, deduplicated module-to-module call relationship
- SourceFile: One scanned file with its text and definitions
- ScanResult: Aggregated output and statistics of one scan run

These models are designed to be:
- Immutable where possible (using frozen dataclasses)
- Cheap to build in bulk (no validation beyond structural invariants)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modgraph.graph.builder import ModuleGraph
    from modgraph.graph.symbols import SymbolTable


# Name of the pseudo-function owning calls that precede every definition
MODULE_LEVEL = "<module-level>"


@dataclass(frozen=True)
class FunctionDefinition:
    """
    A candidate function definition found by the definition scanner.

    Attributes:
        name: Identifier captured from the signature
        module: Base name of the defining file, without extension
        start_offset: Character offset of the signature match in the raw file text

    Note:
        The extent of a definition is implicit: it runs from start_offset
        to the next definition's start_offset in the same file.
    """

    name: str
    module: str
    start_offset: int

    @classmethod
    def module_level(cls, module: str) -> "FunctionDefinition":
        """Return the pseudo-function for calls outside any definition."""
        return cls(name=MODULE_LEVEL, module=module, start_offset=0)

    @property
    def is_module_level(self) -> bool:
        return self.name == MODULE_LEVEL


@dataclass(frozen=True)
class CallSite:
    """
    A candidate call expression.

    Attributes:
        callee_name: Identifier immediately preceding an opening parenthesis
        offset: Character offset in the comment-stripped text
    """

    callee_name: str
    offset: int


@dataclass(frozen=True)
class AttributedCall:
    """A call site together with the definition believed to contain it."""

    caller: FunctionDefinition
    call: CallSite

    @property
    def caller_module(self) -> str:
        return self.caller.module

    @property
    def callee_name(self) -> str:
        return self.call.callee_name


@dataclass(frozen=True)
class ModuleEdge:
    """
    A directed call relationship between two distinct modules.

    Attributes:
        from_module: Module containing the calling function
        to_module: Module owning the resolved callee definition
        functions: Distinct callee names observed, in first-seen order

    Invariants:
        - from_module != to_module (intra-module calls never form edges)
    """

    from_module: str
    to_module: str
    functions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Reject self-edges."""
        if self.from_module == self.to_module:
            raise ValueError(
                f"ModuleEdge endpoints must differ (got {self.from_module!r} twice)"
            )

    @property
    def key(self) -> tuple[str, str]:
        return (self.from_module, self.to_module)

    def with_function(self, name: str) -> "ModuleEdge":
        """Return an edge that also lists name (no-op if already present)."""
        if name in self.functions:
            return self
        return ModuleEdge(
            from_module=self.from_module,
            to_module=self.to_module,
            functions=self.functions + (name,),
        )


@dataclass
class SourceFile:
    """
    A source file loaded for scanning.

    The text is read once and shared by both passes. Definitions are
    filled in by the first pass, ordered by start_offset.
    """

    path: str
    module: str
    text: str
    definitions: tuple[FunctionDefinition, ...] = ()

    @classmethod
    def from_text(cls, path: Path | str, text: str) -> "SourceFile":
        """Create a SourceFile, deriving the module name from the path."""
        return cls(path=str(path), module=module_name_for(path), text=text)


@dataclass
class ScanResult:
    """
    Result of scanning a source tree.

    Aggregates the graph and statistics from a single scan operation.

    Attributes:
        graph: The finished module graph
        symbols: The merged symbol table used for resolution
        files_found: Number of source files collected, readable or not
        files_scanned: Number of files that were read and scanned
        definitions_found: Total definition sites across all files
        calls_found: Total call sites across all files
        warnings: (path, message) pairs for skipped files and directories
        scan_time_seconds: Total time taken for the scan
    """

    graph: "ModuleGraph"
    symbols: "SymbolTable"
    files_found: int = 0
    files_scanned: int = 0
    definitions_found: int = 0
    calls_found: int = 0
    warnings: list[tuple[str, str]] = field(default_factory=list)
    scan_time_seconds: float = 0.0

    @property
    def is_empty(self) -> bool:
        """True when no source files were scanned."""
        return self.files_scanned == 0

    @property
    def all_unreadable(self) -> bool:
        """True when files were collected but none of them could be read."""
        return self.files_found > 0 and self.files_scanned == 0

    @property
    def has_definitions(self) -> bool:
        return self.definitions_found > 0

    @property
    def warning_count(self) -> int:
        return len(self.warnings)


def module_name_for(path: Path | str) -> str:
    """Return the module name for a file: its base name without extension."""
    return Path(path).stem

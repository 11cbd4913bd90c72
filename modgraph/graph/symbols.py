"""
Global symbol table for name-only call resolution.

Every definition found in the tree is merged by name into a single flat
mapping. There is no per-module qualification: when two files define the
same name, the definition merged last replaces the earlier one, so which
module "owns" an ambiguous name depends on file processing order.
"""

import logging
from typing import Iterable, Iterator, Optional

from modgraph.models import FunctionDefinition

logger = logging.getLogger(__name__)


class SymbolTable:
    """
    Mapping from function name to exactly one FunctionDefinition.

    Usage:
        symbols = SymbolTable()
        symbols.merge(extract_definitions(text, "uart"))
        definition = symbols.resolve("uart_init")
    """

    def __init__(self) -> None:
        self._definitions: dict[str, FunctionDefinition] = {}

    def add(self, definition: FunctionDefinition) -> None:
        """Insert a definition, replacing any earlier one with the same name."""
        previous = self._definitions.get(definition.name)
        if previous is not None and previous.module != definition.module:
            logger.debug(
                "Symbol %r redefined: %s replaces %s",
                definition.name,
                definition.module,
                previous.module,
            )
        self._definitions[definition.name] = definition

    def merge(self, definitions: Iterable[FunctionDefinition]) -> None:
        """Insert definitions in order; later ones win."""
        for definition in definitions:
            self.add(definition)

    def resolve(self, name: str) -> Optional[FunctionDefinition]:
        """Return the chosen definition for name, or None if undefined."""
        return self._definitions.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __repr__(self) -> str:
        return f"SymbolTable(symbols={len(self._definitions)})"

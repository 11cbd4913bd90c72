"""
Call attribution by textual order.

A call belongs to the nearest definition that starts at or before it.
Brace nesting is never checked: a call placed after one function's
closing brace but before the next signature is still attributed to the
preceding function.
"""

from bisect import bisect_right
from typing import Iterable, Sequence

from modgraph.models import AttributedCall, CallSite, FunctionDefinition


def find_enclosing_definition(
    definitions: Sequence[FunctionDefinition],
    offset: int,
    module: str,
) -> FunctionDefinition:
    """
    Return the definition with the greatest start_offset <= offset.

    Args:
        definitions: One file's definitions, sorted by start_offset
        offset: Position of the call site
        module: The file's module, used for the module-level fallback

    Returns:
        The enclosing definition, or the module-level pseudo-function when
        the call precedes every definition.
    """
    return _enclosing(definitions, [d.start_offset for d in definitions], offset, module)


def attribute_calls(
    calls: Iterable[CallSite],
    definitions: Sequence[FunctionDefinition],
    module: str,
) -> list[AttributedCall]:
    """
    Attribute every call site of one file to its enclosing definition.

    Example:
        >>> defs = [FunctionDefinition("main", "a", 0)]
        >>> [a.caller.name for a in attribute_calls([CallSite("bar", 12)], defs, "a")]
        ['main']
    """
    starts = [d.start_offset for d in definitions]
    return [
        AttributedCall(caller=_enclosing(definitions, starts, call.offset, module), call=call)
        for call in calls
    ]


def _enclosing(
    definitions: Sequence[FunctionDefinition],
    starts: list[int],
    offset: int,
    module: str,
) -> FunctionDefinition:
    # Ties on start_offset resolve to the last definition in sequence order
    index = bisect_right(starts, offset)
    if index == 0:
        return FunctionDefinition.module_level(module)
    return definitions[index - 1]

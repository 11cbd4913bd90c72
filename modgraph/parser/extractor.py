"""
Pattern-based Definition and Call Extractor

This module provides the scanning functionality for modgraph,
extracting candidate function definitions and call sites from C-family
source text.

Key Components:
    - extract_definitions: Signature-pattern scan for definition sites
    - strip_comments: Removes block and line comments before call scanning
    - extract_calls: Identifier-followed-by-parenthesis scan for call sites

Design Decisions:
    - Uses regular expressions, not a lexer; extraction is approximate and fast
    - A definition is any keyword-led signature, including prototypes
    - A call is any identifier followed by "(", including keywords and casts
    - Definition offsets refer to the raw text, call offsets to the stripped text

Limitations:
    - No preprocessor expansion, templates, or overload resolution
    - Multi-line parameter lists with nested parentheses are not matched
    - Comment markers inside string literals are treated as comments
"""

import re
from functools import lru_cache

from modgraph.config import DEFINITION_KEYWORDS
from modgraph.models import CallSite, FunctionDefinition

IDENTIFIER = r"[a-zA-Z_][a-zA-Z0-9_]*"

# Block comments (non-greedy, spanning lines) or a line comment to end of line
COMMENT_PATTERN = re.compile(r"/\*[\s\S]*?\*/|//.*")

# Word boundary over ASCII identifier characters only; \s stays Unicode-aware
CALL_PATTERN = re.compile(rf"(?<![a-zA-Z0-9_])({IDENTIFIER})\s*\(")


@lru_cache(maxsize=16)
def definition_pattern(keywords: tuple[str, ...] = DEFINITION_KEYWORDS) -> re.Pattern:
    """
    Compile the signature pattern for a set of leading keywords.

    The pattern is: keyword, whitespace, identifier, optional whitespace,
    a parameter list without nested ")", optional whitespace, optional "{".
    """
    alternatives = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"(?:{alternatives})\s+({IDENTIFIER})\s*\([^)]*\)\s*(?:{{)?")


def extract_definitions(
    text: str,
    module: str,
    keywords: tuple[str, ...] = DEFINITION_KEYWORDS,
) -> list[FunctionDefinition]:
    """
    Extract candidate function definitions from source text.

    Args:
        text: Raw file contents
        module: Module name assigned to every definition found
        keywords: Leading type/storage keywords accepted before the name

    Returns:
        FunctionDefinitions in ascending start_offset order. Repeated
        names within the text are all kept.

    Example:
        >>> defs = extract_definitions("int main(){ bar(); }", "a")
        >>> [(d.name, d.start_offset) for d in defs]
        [('main', 0)]
    """
    pattern = definition_pattern(tuple(keywords))
    return [
        FunctionDefinition(name=match.group(1), module=module, start_offset=match.start())
        for match in pattern.finditer(text)
    ]


def strip_comments(text: str) -> str:
    """
    Remove /* block */ and // line comments.

    An unterminated block comment does not match and is left in place,
    so stripping never fails; at worst it removes less than intended.
    """
    return COMMENT_PATTERN.sub("", text)


def extract_calls(text: str) -> list[CallSite]:
    """
    Extract candidate call sites from source text.

    Comments are stripped first; offsets are positions in the stripped
    text. No filtering is applied, so "if (", "sizeof(" and casts such
    as "(int)(x)" written with a name before the parenthesis show up too.

    Example:
        >>> [c.callee_name for c in extract_calls("x = f(1); // g(2)")]
        ['f']
    """
    stripped = strip_comments(text)
    return [
        CallSite(callee_name=match.group(1), offset=match.start())
        for match in CALL_PATTERN.finditer(stripped)
    ]

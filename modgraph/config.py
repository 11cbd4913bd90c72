"""
Scan configuration for modgraph.

Holds the knobs shared by the library entry points and the CLI:
which files are collected, which keywords introduce a definition,
and how many worker threads scan files in each pass.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional


DEFAULT_EXTENSIONS = frozenset({".c", ".cpp", ".h", ".hpp"})

# Only VCS metadata; build and vendor trees may hold real sources
DEFAULT_EXCLUDE_DIRS = frozenset({".git", ".hg", ".svn"})

# Leading type/storage keywords accepted before a definition name
DEFINITION_KEYWORDS = ("void", "int", "float", "double", "char", "bool", "static")

DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True)
class ScanConfig:
    """
    Options controlling a scan run.

    Attributes:
        extensions: Accepted file suffixes, lower case with a leading dot
        exclude_dirs: Directory names skipped during collection
        definition_keywords: Keywords that may introduce a function signature
        max_workers: Threads used per pass; 1 scans inline
    """

    extensions: frozenset[str] = DEFAULT_EXTENSIONS
    exclude_dirs: frozenset[str] = DEFAULT_EXCLUDE_DIRS
    definition_keywords: tuple[str, ...] = field(default=DEFINITION_KEYWORDS)
    max_workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1 (got {self.max_workers})")
        if not self.definition_keywords:
            raise ValueError("definition_keywords must not be empty")
        object.__setattr__(
            self, "extensions", frozenset(normalize_extension(e) for e in self.extensions)
        )

    @classmethod
    def from_options(
        cls,
        extensions: Optional[Iterable[str]] = None,
        exclude_dirs: Optional[Iterable[str]] = None,
        max_workers: Optional[int] = None,
    ) -> "ScanConfig":
        """
        Build a config from command-line style values.

        Empty or missing values fall back to the defaults. Extra
        exclusions are added to DEFAULT_EXCLUDE_DIRS rather than
        replacing them.
        """
        kwargs = {}
        if extensions:
            kwargs["extensions"] = frozenset(extensions)
        if exclude_dirs:
            kwargs["exclude_dirs"] = DEFAULT_EXCLUDE_DIRS | frozenset(exclude_dirs)
        if max_workers is not None:
            kwargs["max_workers"] = max_workers
        return cls(**kwargs)


def normalize_extension(ext: str) -> str:
    """Normalize "C", "c" or ".c" to ".c"."""
    ext = ext.strip().lower()
    if not ext.startswith("."):
        ext = "." + ext
    return ext

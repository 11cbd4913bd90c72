"""File discovery for scanning source trees."""

import logging
import os
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from modgraph.config import DEFAULT_EXCLUDE_DIRS, DEFAULT_EXTENSIONS, normalize_extension

logger = logging.getLogger(__name__)

WarningCallback = Callable[[str, str], None]


def iter_source_files(
    root: Path,
    extensions: Optional[Iterable[str]] = None,
    exclude_dirs: Optional[Iterable[str]] = None,
    on_warning: Optional[WarningCallback] = None,
) -> Iterator[Path]:
    """
    Iterate over source files in a directory tree.

    Entries are visited in sorted order, so the sequence is lexicographic
    per directory and identical across runs on an unchanged tree.

    Args:
        root: Root directory to scan.
        extensions: File suffixes to include. If None, uses DEFAULT_EXTENSIONS.
        exclude_dirs: Directory names to skip. If None, uses DEFAULT_EXCLUDE_DIRS.
        on_warning: Called with (path, message) for every skipped directory.

    Yields:
        Path objects for matching regular files.
    """
    accepted = (
        DEFAULT_EXTENSIONS if extensions is None
        else frozenset(normalize_extension(e) for e in extensions)
    )
    excluded = DEFAULT_EXCLUDE_DIRS if exclude_dirs is None else frozenset(exclude_dirs)

    # Real paths of directories already entered; guards against symlink cycles
    seen: set[str] = set()

    def _warn(path: Path, message: str) -> None:
        logger.warning("Skipping %s: %s", path, message)
        if on_warning is not None:
            on_warning(str(path), message)

    def _enter(directory: Path) -> Optional[list[Path]]:
        """Return the sorted entries of directory, or None to skip it."""
        real = os.path.realpath(directory)
        if real in seen:
            logger.debug("Already visited %s (via %s)", real, directory)
            return None
        seen.add(real)

        try:
            return sorted(directory.iterdir())
        except OSError as e:
            _warn(directory, e.strerror or str(e))
            return None

    # One iterator per open directory; depth is limited by memory only
    root_entries = _enter(root)
    stack: list[Iterator[Path]] = [iter(root_entries)] if root_entries is not None else []

    while stack:
        entry = next(stack[-1], None)
        if entry is None:
            stack.pop()
            continue

        if entry.is_dir():
            if entry.name in excluded:
                continue
            entries = _enter(entry)
            if entries is not None:
                stack.append(iter(entries))
        elif entry.is_file():
            if entry.suffix.lower() in accepted:
                yield entry


def collect_source_files(
    root: Path | str,
    extensions: Optional[Iterable[str]] = None,
    exclude_dirs: Optional[Iterable[str]] = None,
    on_warning: Optional[WarningCallback] = None,
) -> list[Path]:
    """
    Collect every accepted source file under root.

    Raises:
        FileNotFoundError: If root doesn't exist
        NotADirectoryError: If root is not a directory

    Example:
        >>> files = collect_source_files("./firmware", extensions={".c", ".h"})
        >>> [f.name for f in files]
        ['main.c', 'uart.c', 'uart.h']
    """
    root = Path(root)

    if not root.exists():
        raise FileNotFoundError(f"Directory not found: {root}")

    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    files = list(iter_source_files(root, extensions, exclude_dirs, on_warning))
    logger.debug("Collected %d source file(s) under %s", len(files), root)
    return files

"""Baseline tree traversal and comparison-path derivation."""

import os
import sys
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class PairCandidate:
    """A baseline image and the path its counterpart should have."""

    baseline: Path
    comparison: Path


def iter_image_files(root: Path, extension: str) -> Iterator[Path]:
    """Yield every regular file under *root* whose suffix matches *extension*.

    The walk is iterative (an explicit directory stack) and visits entries
    in sorted name order so runs are reproducible. Symlinks to files are
    followed; symlinked directories are not descended into. A subdirectory
    that cannot be listed is warned about on stderr and skipped; an
    unreadable *root* raises.

    Args:
        root: Directory to walk
        extension: Lowercase extension with leading dot (``".png"``)

    Yields:
        Paths of matching files, spelled with *root* as their prefix
    """
    stack = [root]
    while stack:
        directory = stack.pop()
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            if directory == root:
                raise
            print(f"Cannot read directory {directory}: {e}", file=sys.stderr)
            continue

        subdirs = []
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                subdirs.append(Path(entry.path))
            elif entry.is_file() and Path(entry.name).suffix.lower() == extension:
                yield Path(entry.path)

        # Reversed so the stack pops subdirectories in name order
        stack.extend(reversed(subdirs))


def derive_comparison_path(path: Path, baseline_root: Path, comparison_root: Path) -> Path:
    """Swap the baseline root prefix of *path* for the comparison root.

    The suffix below the root (subdirectories and file name) is kept
    verbatim.

    Raises:
        ValueError: If *path* is not under *baseline_root*
    """
    return comparison_root / path.relative_to(baseline_root)


def iter_candidates(
    baseline_root: Path,
    comparison_root: Path,
    extension: str,
) -> Iterator[PairCandidate]:
    """Yield a :class:`PairCandidate` for every image under *baseline_root*."""
    for path in iter_image_files(baseline_root, extension):
        yield PairCandidate(
            baseline=path,
            comparison=derive_comparison_path(path, baseline_root, comparison_root),
        )

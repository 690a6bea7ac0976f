from __future__ import annotations

import fnmatch
import posixpath
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

from .constants import DEFAULT_EXCLUDES


_GLOB_META = "*?[]"


def _segment_match(pattern: str, path: str) -> bool:
    """Glob-match where ``*`` and ``?`` never cross a ``/``.

    Both sides are compared segment by segment, so ``src/*.py`` matches
    ``src/a.py`` but not ``src/pkg/a.py``.
    """
    pat_parts = pattern.split("/")
    path_parts = path.split("/")
    if len(pat_parts) != len(path_parts):
        return False
    return all(fnmatch.fnmatchcase(name, pat) for pat, name in zip(pat_parts, path_parts))


def is_excluded(rel_path: str, is_dir: bool, patterns: Iterable[str]) -> bool:
    """Return True when ``rel_path`` matches any exclusion pattern.

    Args:
        rel_path: Slash-separated path relative to the pack root.
        is_dir: Whether the path is a directory. Patterns ending in ``/``
            only apply to directories.
        patterns: Glob patterns, evaluated in order; first match wins.
    """
    base = posixpath.basename(rel_path)
    for pat in patterns:
        pat = pat.strip()
        if not pat:
            continue
        if pat.endswith("/"):
            if not is_dir:
                continue
            pat = pat.rstrip("/")
            if not pat:
                continue
        if "/" in pat:
            if _segment_match(pat, rel_path):
                return True
            continue
        if fnmatch.fnmatchcase(base, pat):
            return True
        if not any(c in pat for c in _GLOB_META) and base == pat:
            return True
    return False


@dataclass(frozen=True)
class ExcludeSet:
    """Immutable, ordered set of exclusion patterns used for one pack run."""

    patterns: Tuple[str, ...] = DEFAULT_EXCLUDES

    @classmethod
    def defaults(cls) -> "ExcludeSet":
        return cls(DEFAULT_EXCLUDES)

    @classmethod
    def from_csv(cls, csv: str) -> "ExcludeSet":
        """Build a set from a comma-separated list; replaces the defaults."""
        if not csv.strip():
            return cls(())
        parts = (p.strip().replace("\\", "/") for p in csv.split(","))
        return cls(tuple(p for p in parts if p))

    @classmethod
    def from_patterns(cls, patterns: Sequence[str]) -> "ExcludeSet":
        return cls(tuple(patterns))

    def matches(self, rel_path: str, is_dir: bool = False) -> bool:
        return is_excluded(rel_path, is_dir, self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)

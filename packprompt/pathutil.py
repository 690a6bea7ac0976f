from __future__ import annotations

import os
import posixpath

from .errors import UnsafePathError


def norm_path(p: str) -> str:
    """Normalize a walk-relative path to the canonical archive form.

    Rules:
    - Convert the platform separator(s) to slashes; on POSIX a backslash is
      an ordinary filename character and is kept
    - Strip leading/trailing slashes
    - Remove empty and '.' segments
    - Reject '..' segments
    """
    for sep in (os.sep, os.altsep):
        if sep and sep != "/":
            p = p.replace(sep, "/")
    p = p.strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError("Path may not contain '..'")
    return "/".join(parts)


def clean_archive_path(rel: str) -> str:
    """Return the normalized form of an archive path or raise UnsafePathError.

    The check is applied to every path, whether or not '..' appears in it:
    absolute paths, NUL bytes, and anything that normalizes to the root
    itself or above it are rejected.
    """
    if not rel:
        raise UnsafePathError("empty path in archive")
    if "\x00" in rel:
        raise UnsafePathError(f"unsafe path in archive: {rel!r}")
    if rel.startswith("/") or posixpath.isabs(rel) or os.path.isabs(rel):
        raise UnsafePathError(f"unsafe path in archive: {rel!r}")
    clean = posixpath.normpath(rel)
    if clean == "." or clean == ".." or clean.startswith("../"):
        raise UnsafePathError(f"unsafe path in archive: {rel!r}")
    return clean


def safe_join(dest: str, rel: str) -> str:
    """Join an archive path onto ``dest``, refusing anything that escapes it.

    Besides the lexical check, the joined path is resolved through existing
    symlinks so a link planted inside ``dest`` cannot redirect a write.
    """
    clean = clean_archive_path(rel)
    full = os.path.join(dest, *clean.split("/"))
    root_real = os.path.realpath(dest)
    full_real = os.path.realpath(full)
    if os.path.commonpath([root_real, full_real]) != root_real or full_real == root_real:
        raise UnsafePathError(f"unsafe path in archive: {rel!r}")
    return full

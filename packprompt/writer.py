from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterator, Optional, TextIO, Tuple

from .classify import is_binary_file
from .codec import encode_record
from .constants import MODE_MASK
from .exclude import ExcludeSet
from .pathutil import norm_path


def check_root(root: str) -> None:
    if not os.path.isdir(root):
        if not os.path.exists(root):
            raise FileNotFoundError(f"root not found: {root}")
        raise NotADirectoryError(f"root is not a directory: {root}")


@dataclass
class PackStats:
    files: int = 0
    bytes: int = 0
    excluded: int = 0
    binary: int = 0
    skipped: int = 0


class ArchiveWriter:
    """Streaming writer that packs text files into a single archive file.

    Files are encoded one at a time in walk order; nothing but the current
    block of the current file is held in memory.
    """

    def __init__(self, out_path: str, excludes: Optional[ExcludeSet] = None):
        self.out_path = out_path
        self.excludes = excludes if excludes is not None else ExcludeSet.defaults()
        self.f: Optional[TextIO] = None
        self.stats = PackStats()
        self._out_id: Optional[Tuple[int, int]] = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        self.f = open(self.out_path, "w", encoding="utf-8", newline="\n")
        st = os.fstat(self.f.fileno())
        self._out_id = (st.st_dev, st.st_ino)

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def add_file(self, arc_path: str, fs_path: str, mode: Optional[int] = None) -> int:
        """Encode one file as a record. Returns the number of content bytes.

        Opening the source raises OSError to the caller; failures while
        streaming into the archive propagate as well.
        """
        if self.f is None:
            raise RuntimeError("Archive not open")
        with open(fs_path, "rb") as src:
            if mode is None:
                mode = os.fstat(src.fileno()).st_mode & MODE_MASK
            return self._write_record(arc_path, mode, src)

    def _write_record(self, arc_path: str, mode: int, src: BinaryIO) -> int:
        size = encode_record(norm_path(arc_path), mode, src, self.f)
        self.stats.files += 1
        self.stats.bytes += size
        return size

    def iter_tree(self, root: str) -> Iterator[Tuple[str, str]]:
        """Yield ``(archive_path, fs_path)`` for every non-excluded file under ``root``.

        Excluded directories are pruned before descent. Order is stable:
        names are sorted within each directory.
        """
        for dirpath, dirnames, filenames in os.walk(root):
            rel_dir = os.path.relpath(dirpath, root)
            kept = []
            for d in sorted(dirnames):
                rel = norm_path(os.path.join(rel_dir, d))
                if self.excludes.matches(rel, is_dir=True):
                    self.stats.excluded += 1
                    continue
                kept.append(d)
            dirnames[:] = kept
            for name in sorted(filenames):
                rel = norm_path(os.path.join(rel_dir, name))
                if self.excludes.matches(rel, is_dir=False):
                    self.stats.excluded += 1
                    continue
                yield rel, os.path.join(dirpath, name)

    def add_tree(self, root: str, on_file: Optional[Callable[[str, int], None]] = None) -> PackStats:
        """Pack every eligible file under ``root``.

        A file that cannot be inspected or opened, is not a regular file, is
        the archive being written, has a name that is not valid UTF-8, or
        looks binary is skipped and counted; the run continues. Errors
        writing the archive itself propagate.
        """
        if self.f is None:
            raise RuntimeError("Archive not open")

        for arc, full in self.iter_tree(root):
            try:
                arc.encode("utf-8")
            except UnicodeEncodeError:
                # undecodable name, surfaced by os.walk as surrogate escapes
                self.stats.skipped += 1
                continue
            try:
                st = os.lstat(full)
            except OSError:
                self.stats.skipped += 1
                continue
            if not stat.S_ISREG(st.st_mode):
                self.stats.skipped += 1
                continue
            if (st.st_dev, st.st_ino) == self._out_id:
                continue
            try:
                binary = is_binary_file(full)
            except OSError:
                self.stats.skipped += 1
                continue
            if binary:
                self.stats.binary += 1
                continue
            try:
                src = open(full, "rb")
            except OSError:
                self.stats.skipped += 1
                continue
            with src:
                size = self._write_record(arc, st.st_mode & MODE_MASK, src)
            if on_file is not None:
                on_file(arc, size)
        return self.stats


def pack(
    root: str,
    out_path: str,
    excludes: Optional[ExcludeSet] = None,
    on_file: Optional[Callable[[str, int], None]] = None,
) -> PackStats:
    """Walk ``root`` and write every included text file to ``out_path``."""
    check_root(root)
    with ArchiveWriter(out_path, excludes=excludes) as w:
        return w.add_tree(root, on_file=on_file)

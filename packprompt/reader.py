from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass
from typing import BinaryIO, Callable, List, Optional, TextIO

from .codec import ArchiveDecoder, Record, RecordSink
from .constants import DEFAULT_DIR_MODE, DEFAULT_MODE
from .pathutil import safe_join


def _safe_chmod(path: str, mode: Optional[int]) -> Optional[int]:
    """Best-effort chmod that never raises.

    If the requested bits cannot be applied, 0o644 is tried before giving up
    with a warning.

    Args:
        path: Filesystem path to update.
        mode: Permission bits to apply; ``None`` falls back to 0o644.

    Returns:
        The mode actually applied, or ``None`` when every attempt failed.
    """
    candidates = [DEFAULT_MODE] if mode is None else [mode, DEFAULT_MODE]
    err: Optional[OSError] = None
    for m in dict.fromkeys(candidates):
        try:
            os.chmod(path, m)
            return m
        except OSError as exc:
            err = exc
    print(f"Warning: failed to set mode on {path}: {err}", file=sys.stderr)
    return None


@dataclass
class RecordInfo:
    path: str
    mode: int
    size: int = 0


class DirectorySink(RecordSink):
    """Materialize records under ``dest`` with a temp-file-then-rename protocol.

    For each record: create parent directories, write into a temporary
    sibling, close it, apply the recorded mode, then ``os.replace`` it onto
    the final name. A partially written file never appears under the final
    name; an interrupted run can leave at most one temp file behind.
    """

    def __init__(self, dest: str, on_record: Optional[Callable[[RecordInfo], None]] = None):
        self.dest = dest
        self.on_record = on_record
        self.count = 0
        self._record: Optional[Record] = None
        self._final: Optional[str] = None
        self._tmp: Optional[str] = None
        self._fh: Optional[BinaryIO] = None
        self._size = 0

    def begin(self, record: Record) -> None:
        final = safe_join(self.dest, record.path)
        parent = os.path.dirname(final)
        os.makedirs(parent, mode=DEFAULT_DIR_MODE, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".packprompt-", suffix=".tmp", dir=parent)
        self._fh = os.fdopen(fd, "wb")
        self._record = record
        self._final = final
        self._tmp = tmp
        self._size = 0

    def write(self, data: bytes) -> None:
        assert self._fh is not None
        self._fh.write(data)
        self._size += len(data)

    def commit(self) -> None:
        assert self._fh is not None and self._tmp is not None and self._final is not None
        try:
            self._fh.close()
            _safe_chmod(self._tmp, self._record.mode if self._record else None)
            os.replace(self._tmp, self._final)
        except OSError:
            self._remove_tmp()
            raise
        self.count += 1
        if self.on_record is not None:
            self.on_record(RecordInfo(path=self._record.path, mode=self._record.mode, size=self._size))
        self._reset()

    def abort(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
        self._remove_tmp()
        self._reset()

    def _remove_tmp(self) -> None:
        if self._tmp is None:
            return
        try:
            os.remove(self._tmp)
        except FileNotFoundError:
            pass

    def _reset(self) -> None:
        self._record = None
        self._final = None
        self._tmp = None
        self._fh = None
        self._size = 0


class ListingSink(RecordSink):
    """Collect record metadata and content sizes without touching the filesystem."""

    def __init__(self):
        self.entries: List[RecordInfo] = []
        self._current: Optional[RecordInfo] = None

    def begin(self, record: Record) -> None:
        self._current = RecordInfo(path=record.path, mode=record.mode)

    def write(self, data: bytes) -> None:
        assert self._current is not None
        self._current.size += len(data)

    def commit(self) -> None:
        assert self._current is not None
        self.entries.append(self._current)
        self._current = None

    def abort(self) -> None:
        self._current = None


def decode_stream(stream: TextIO, dest: str, on_record: Optional[Callable[[RecordInfo], None]] = None) -> int:
    """Decode every record in ``stream`` into files under ``dest``.

    Returns the number of records written. Format, path-safety and I/O errors
    all propagate; nothing is skipped.
    """
    sink = DirectorySink(dest, on_record=on_record)
    return ArchiveDecoder(stream).run(sink)


class ArchiveReader:
    """Reads a packprompt archive file front to back."""

    def __init__(self, path: str):
        self.path = path
        self.f: Optional[TextIO] = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        # Only "\n" ends a line; trailing "\r" is stripped by the decoder
        self.f = open(self.path, "r", encoding="utf-8", errors="replace", newline="\n")

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def list(self) -> List[RecordInfo]:
        if self.f is None:
            raise RuntimeError("Archive not open")
        sink = ListingSink()
        ArchiveDecoder(self.f).run(sink)
        return sink.entries

    def extract_all(self, dest: str, on_record: Optional[Callable[[RecordInfo], None]] = None) -> int:
        if self.f is None:
            raise RuntimeError("Archive not open")
        os.makedirs(dest, mode=DEFAULT_DIR_MODE, exist_ok=True)
        return decode_stream(self.f, dest, on_record=on_record)


def unpack(in_path: str, dest: str, on_record: Optional[Callable[[RecordInfo], None]] = None) -> int:
    """Recreate every file stored in ``in_path`` under ``dest``."""
    with ArchiveReader(in_path) as r:
        return r.extract_all(dest, on_record=on_record)

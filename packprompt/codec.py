"""
Record framing for packprompt archives.

An archive is a plain-text stream of records. Each record is::

    --- FILE path_b64=<base64 of the UTF-8 path> mode=<octal> ---
    <base64 body, wrapped at 76 columns>
    --- END FILE ---

The body carries the file content in base64, so neither the end marker nor
any other framing text can occur inside it, and the archive stays pure ASCII
whatever bytes the packed files contain.
"""

from __future__ import annotations

import base64
import binascii
import enum
import re
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional, TextIO

from .constants import (
    B64_LINE_LENGTH,
    DEFAULT_MODE,
    ENCODE_BLOCK_SIZE,
    END_MARK,
    HEADER_PATH_KEY,
    MODE_MASK,
    START_MARK,
)
from .errors import MalformedHeaderError, MissingEndMarkerError, PayloadDecodeError
from .pathutil import clean_archive_path


_HEADER_RE = re.compile(
    "^"
    + re.escape(START_MARK)
    + " "
    + re.escape(HEADER_PATH_KEY)
    + r"=(\S+) mode=([0-7]{3,4}) ---$"
)


@dataclass(frozen=True)
class Record:
    path: str
    mode: int = DEFAULT_MODE


def format_header(path: str, mode: int) -> str:
    token = base64.b64encode(path.encode("utf-8")).decode("ascii")
    return f"{START_MARK} {HEADER_PATH_KEY}={token} mode={mode & MODE_MASK:04o} ---"


def parse_mode(text: str, default: int = DEFAULT_MODE) -> int:
    """Parse an octal permission string, falling back to ``default``."""
    try:
        mode = int(text.strip(), 8)
    except ValueError:
        return default
    if mode < 0 or mode > MODE_MASK:
        return default
    return mode


def parse_header(line: str) -> Record:
    """Parse a header line into a :class:`Record`.

    Raises:
        MalformedHeaderError: If the line does not match the header grammar.
        PayloadDecodeError: If the path token is not valid base64 or UTF-8.
    """
    m = _HEADER_RE.match(line)
    if m is None:
        raise MalformedHeaderError(f"malformed header: {line!r}")
    token, mode_text = m.group(1), m.group(2)
    try:
        raw = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PayloadDecodeError(f"decode path base64: {exc}") from exc
    try:
        path = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PayloadDecodeError(f"path is not valid UTF-8: {token!r}") from exc
    return Record(path=path, mode=parse_mode(mode_text))


def _read_block(src: BinaryIO, n: int) -> bytes:
    """Read ``n`` bytes unless EOF comes first (tolerates short reads)."""
    buf = bytearray()
    while len(buf) < n:
        b = src.read(n - len(buf))
        if not b:
            break
        buf += b
    return bytes(buf)


def encode_record(path: str, mode: int, src: BinaryIO, out: TextIO) -> int:
    """Write one record for ``src`` to ``out`` and return the content size.

    Content is streamed in blocks that encode to whole 76-column lines, so
    memory use does not depend on file size. Write errors propagate.
    """
    out.write(format_header(path, mode) + "\n")
    total = 0
    while True:
        block = _read_block(src, ENCODE_BLOCK_SIZE)
        if not block:
            break
        total += len(block)
        encoded = base64.b64encode(block).decode("ascii")
        for i in range(0, len(encoded), B64_LINE_LENGTH):
            out.write(encoded[i : i + B64_LINE_LENGTH] + "\n")
        if len(block) < ENCODE_BLOCK_SIZE:
            break
    if total == 0:
        out.write("\n")
    out.write(END_MARK + "\n")
    return total


class RecordSink:
    """Destination for decoded records.

    The decoder calls :meth:`begin` once per record, :meth:`write` for each
    decoded block, then exactly one of :meth:`commit` or :meth:`abort`.
    """

    def begin(self, record: Record) -> None:
        raise NotImplementedError

    def write(self, data: bytes) -> None:
        raise NotImplementedError

    def commit(self) -> None:
        raise NotImplementedError

    def abort(self) -> None:
        raise NotImplementedError


class DecoderState(enum.Enum):
    SCANNING = "scanning"
    HEADER_PARSED = "header-parsed"
    READING_CONTENT = "reading-content"


class _Base64Stream:
    """Incremental strict base64 decoder fed one body line at a time."""

    def __init__(self):
        self.pending = ""
        self.finished = False

    def feed(self, line: str) -> bytes:
        if not line:
            return b""
        if self.finished:
            raise PayloadDecodeError("base64 data after padding")
        self.pending += line
        cut = len(self.pending) - len(self.pending) % 4
        chunk, self.pending = self.pending[:cut], self.pending[cut:]
        if not chunk:
            return b""
        try:
            data = base64.b64decode(chunk, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise PayloadDecodeError(f"decode content base64: {exc}") from exc
        if chunk.endswith("="):
            self.finished = True
        return data

    def close(self) -> None:
        if self.pending:
            raise PayloadDecodeError("truncated base64 content")


class ArchiveDecoder:
    """Single-pass decoder for a packprompt archive stream.

    The decoder is an explicit state machine: it scans for a header line,
    parses it, then streams body lines into the sink until the end marker,
    and returns to scanning. Any grammar violation is fatal.
    """

    def __init__(self, stream: TextIO):
        self.stream = stream
        self.state = DecoderState.SCANNING
        self.line_no = 0
        self._lines: Iterator[str] = iter(stream)
        self._header_line: Optional[str] = None
        self._record: Optional[Record] = None

    def _next_line(self) -> Optional[str]:
        try:
            raw = next(self._lines)
        except StopIteration:
            return None
        self.line_no += 1
        return raw.rstrip("\r\n")

    def run(self, sink: RecordSink) -> int:
        """Decode every record into ``sink`` and return the record count."""
        count = 0
        while True:
            if self.state is DecoderState.SCANNING:
                if not self._scan():
                    return count
            elif self.state is DecoderState.HEADER_PARSED:
                self._parse_header()
            elif self.state is DecoderState.READING_CONTENT:
                self._read_content(sink)
                count += 1

    def _scan(self) -> bool:
        while True:
            line = self._next_line()
            if line is None:
                return False
            if line.startswith(START_MARK):
                self._header_line = line
                self.state = DecoderState.HEADER_PARSED
                return True

    def _parse_header(self) -> None:
        assert self._header_line is not None
        try:
            record = parse_header(self._header_line)
        except (MalformedHeaderError, PayloadDecodeError) as exc:
            raise type(exc)(f"line {self.line_no}: {exc}") from exc
        # Every record, before anything reaches a sink
        clean_archive_path(record.path)
        self._record = record
        self.state = DecoderState.READING_CONTENT

    def _read_content(self, sink: RecordSink) -> None:
        record = self._record
        assert record is not None
        sink.begin(record)
        b64 = _Base64Stream()
        try:
            while True:
                line = self._next_line()
                if line is None:
                    raise MissingEndMarkerError(f"missing end marker for {record.path!r}")
                if line == END_MARK:
                    break
                data = b64.feed(line)
                if data:
                    sink.write(data)
            b64.close()
        except BaseException:
            sink.abort()
            raise
        sink.commit()
        self._record = None
        self._header_line = None
        self.state = DecoderState.SCANNING

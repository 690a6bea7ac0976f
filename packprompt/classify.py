"""
Text/binary classification for candidate files.

The verdict is a best-effort heuristic over a small sample taken from the
start of a file. It never raises on content; I/O errors from
``is_binary_file`` propagate so callers can decide what to do with files they
cannot read.
"""

from __future__ import annotations

import enum

from .constants import NON_PRINTABLE_THRESHOLD, SNIFF_SIZE
from .sniff import detect_content_type


class Verdict(enum.Enum):
    TEXT = "text"
    BINARY = "binary"


_BINARY_MIME_EXACT = ("application/octet-stream", "application/x-executable")
_BINARY_MIME_PREFIXES = ("image/", "audio/", "video/", "font/")


def _is_binary_mime(mime: str) -> bool:
    if any(m in mime for m in _BINARY_MIME_EXACT):
        return True
    return mime.startswith(_BINARY_MIME_PREFIXES)


def printable_counts(text: str) -> tuple[int, int]:
    """Return ``(printable, non_printable)`` code point counts for ``text``."""
    printable = 0
    non_printable = 0
    for ch in text:
        if ch in "\n\r\t":
            printable += 1
        elif ch == "\ufffd":
            non_printable += 1
        elif ch < " " or not (ch.isprintable() or ch.isspace()):
            non_printable += 1
        else:
            printable += 1
    return printable, non_printable


def classify(sample: bytes) -> Verdict:
    """Classify a byte sample as text or binary.

    Rules, first match wins:

    1. any NUL byte -> binary
    2. sniffed content type is octet-stream, an executable, or an
       image/audio/video/font type -> binary
    3. no printable code points, or more than 30% non-printable ones
       (after UTF-8 decoding with replacement) -> binary
    4. otherwise text

    An empty sample is text.
    """
    if not sample:
        return Verdict.TEXT

    if b"\x00" in sample:
        return Verdict.BINARY

    if _is_binary_mime(detect_content_type(sample)):
        return Verdict.BINARY

    printable, non_printable = printable_counts(sample.decode("utf-8", errors="replace"))
    if printable == 0:
        return Verdict.BINARY
    if non_printable / (printable + non_printable) > NON_PRINTABLE_THRESHOLD:
        return Verdict.BINARY
    return Verdict.TEXT


def read_sample(path: str, sample_size: int = SNIFF_SIZE) -> bytes:
    with open(path, "rb") as f:
        return f.read(sample_size)


def is_binary_file(path: str, *, sample_size: int = SNIFF_SIZE) -> bool:
    """Read up to ``sample_size`` bytes from ``path`` and classify them.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    return classify(read_sample(path, sample_size)) is Verdict.BINARY

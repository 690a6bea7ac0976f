"""
Content-type sniffing.

A small implementation of the WHATWG MIME sniffing algorithm as browsers and
HTTP servers apply it: look at the first 512 bytes, match well-known
signatures, and otherwise fall back to ``text/plain`` or
``application/octet-stream`` depending on whether binary control bytes are
present.
"""

from __future__ import annotations

import struct
from typing import Callable, List, Optional, Tuple

from .constants import SNIFF_CONTENT_TYPE_LEN


TEXT_PLAIN = "text/plain; charset=utf-8"
OCTET_STREAM = "application/octet-stream"

_WS = b"\t\n\x0c\r "

# Control bytes that never appear in text (WHATWG "binary data byte")
_BINARY_DATA_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)

_HTML_TAGS = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)

# (prefix, mime); exact byte prefix at offset 0
_EXACT: Tuple[Tuple[bytes, str], ...] = (
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    # BOMs
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", TEXT_PLAIN),
    # images
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    # audio / video
    (b"ID3", "audio/mpeg"),
    (b"OggS\x00", "application/ogg"),
    (b"MThd\x00\x00\x00\x06", "audio/midi"),
    (b"\x1a\x45\xdf\xa3", "video/webm"),
    # fonts
    (b"\x00\x01\x00\x00", "font/ttf"),
    (b"OTTO", "font/otf"),
    (b"ttcf", "font/collection"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
    # archives
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
    (b"\x7fELF", "application/x-executable"),
)

# RIFF/FORM containers: (container tag, form type at offset 8, mime)
_CONTAINERS: Tuple[Tuple[bytes, bytes, str], ...] = (
    (b"RIFF", b"WEBPVP", "image/webp"),
    (b"RIFF", b"AVI ", "video/avi"),
    (b"RIFF", b"WAVE", "audio/wave"),
    (b"FORM", b"AIFF", "audio/aiff"),
)


def _skip_ws(data: bytes) -> int:
    i = 0
    while i < len(data) and data[i] in _WS:
        i += 1
    return i


def _match_html(data: bytes) -> Optional[str]:
    body = data[_skip_ws(data):]
    for tag in _HTML_TAGS:
        if len(body) < len(tag) + 1:
            continue
        if body[: len(tag)].upper() != tag:
            continue
        # Tag must be terminated by a space or '>'
        if body[len(tag)] in b" >":
            return "text/html; charset=utf-8"
    return None


def _match_xml(data: bytes) -> Optional[str]:
    if data[_skip_ws(data):].startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    return None


def _match_exact(data: bytes) -> Optional[str]:
    for prefix, mime in _EXACT:
        if data.startswith(prefix):
            return mime
    return None


def _match_container(data: bytes) -> Optional[str]:
    for tag, form, mime in _CONTAINERS:
        if data.startswith(tag) and data[8 : 8 + len(form)] == form:
            return mime
    return None


def _match_eot(data: bytes) -> Optional[str]:
    if len(data) >= 36 and data[34:36] == b"LP":
        return "application/vnd.ms-fontobject"
    return None


def _match_mp4(data: bytes) -> Optional[str]:
    if len(data) < 12:
        return None
    (box_size,) = struct.unpack(">I", data[:4])
    if len(data) < box_size or box_size % 4 != 0:
        return None
    if data[4:8] != b"ftyp":
        return None
    for st in range(8, box_size, 4):
        if st == 12:
            # minor version field
            continue
        if data[st : st + 3] == b"mp4":
            return "video/mp4"
    return None


def _match_text(data: bytes) -> Optional[str]:
    for b in data[_skip_ws(data):]:
        if b in _BINARY_DATA_BYTES:
            return None
    return TEXT_PLAIN


_MATCHERS: List[Callable[[bytes], Optional[str]]] = [
    _match_html,
    _match_xml,
    _match_exact,
    _match_container,
    _match_mp4,
    _match_eot,
    _match_text,
]


def detect_content_type(data: bytes) -> str:
    """Guess the MIME type of ``data``.

    Only the first 512 bytes are considered. Always returns a valid MIME
    type; ``application/octet-stream`` when nothing more specific matches.
    """
    data = data[:SNIFF_CONTENT_TYPE_LEN]
    for matcher in _MATCHERS:
        mime = matcher(data)
        if mime is not None:
            return mime
    return OCTET_STREAM

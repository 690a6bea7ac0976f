"""
packprompt — flatten a directory of text files into one text archive and back.

Features:

- Line-oriented, ASCII-only archive: each file becomes a record with a header
  (base64 path + octal mode), a base64 body, and an end marker.
- Binary files are left out using a NUL-byte / content-sniff / printable-ratio
  heuristic; exclusion globs prune whole directories.
- Unpack validates every path against the destination and promotes each file
  through a temp file and an atomic rename.

The record grammar is documented in packprompt.codec.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "errors",
    "pathutil",
    "sniff",
    "classify",
    "exclude",
    "codec",
    "writer",
    "reader",
    "cli",
]

# Programmatic API: packprompt.writer.pack / packprompt.reader.unpack, or the
# CLI functions in packprompt.cli (cmd_pack/cmd_unpack) which take normal parameters.

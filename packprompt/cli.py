from __future__ import annotations

import argparse
import sys
import time
from typing import List, Optional

from packprompt.constants import DEFAULT_ARCHIVE_NAME, DEFAULT_EXCLUDES
from packprompt.errors import PackPromptError
from packprompt.exclude import ExcludeSet
from packprompt.reader import ArchiveReader, RecordInfo
from packprompt.writer import pack


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def cmd_pack(root: str = ".", out: str = DEFAULT_ARCHIVE_NAME, *, exclude: Optional[str] = None, quiet: bool = False) -> bool:
    """Pack the text files under ``root`` into the archive ``out``.

    Args:
        root: Directory to walk.
        out: Archive path to create (truncated if it exists).
        exclude: Comma-separated glob patterns. When given, replaces the
            built-in defaults entirely; an empty string excludes nothing.
        quiet: Suppress per-file progress lines.
    """
    excludes = ExcludeSet.defaults() if exclude is None else ExcludeSet.from_csv(exclude)

    def _progress(arc: str, size: int) -> None:
        if not quiet:
            print(f"   packing: {arc} ({size} bytes)")

    t0 = time.time()
    stats = pack(root, out, excludes=excludes, on_file=_progress)
    dt = max(0.000001, time.time() - t0)
    print(
        f"Done: packed {stats.files} files ({stats.bytes} bytes) in {dt:.1f}s; "
        f"excluded={stats.excluded} binary={stats.binary} skipped={stats.skipped}"
    )
    print(f"Packed to {out}")
    return True


def cmd_unpack(archive: str = DEFAULT_ARCHIVE_NAME, *, dest: str = ".", quiet: bool = False) -> bool:
    """Recreate the files stored in ``archive`` under ``dest``."""

    def _progress(info: RecordInfo) -> None:
        if not quiet:
            print(f" unpacking: {info.path} ({info.size} bytes)")

    t0 = time.time()
    with ArchiveReader(archive) as r:
        count = r.extract_all(dest, on_record=_progress)
    dt = max(0.000001, time.time() - t0)
    print(f"Done: unpacked {count} files in {dt:.1f}s")
    print(f"Unpacked into {dest}")
    return True


def cmd_list(archive: str = DEFAULT_ARCHIVE_NAME) -> bool:
    """List archive records as ``mode<TAB>size<TAB>path`` without writing files."""
    with ArchiveReader(archive) as r:
        entries = r.list()
    for e in entries:
        print(f"{e.mode:04o}\t{e.size}\t{e.path}")
    return True


def build_parser() -> argparse.ArgumentParser:
    ap = _ArgumentParser(
        prog="packprompt",
        description="Pack a directory of text files into one text archive, and unpack it again.",
        epilog=(
            "Binary files are skipped using a NUL-byte / content-type / non-printable ratio heuristic. "
            "Default excludes: " + ",".join(DEFAULT_EXCLUDES)
        ),
    )
    sub = ap.add_subparsers(dest="cmd", required=True, metavar="{pack,unpack,list,help}")

    ap_pack = sub.add_parser("pack", help="Pack a directory tree into an archive")
    ap_pack.add_argument("--root", default=".", help="Root directory to walk (default: .)")
    ap_pack.add_argument("--out", default=DEFAULT_ARCHIVE_NAME, help=f"Output archive (default: {DEFAULT_ARCHIVE_NAME})")
    ap_pack.add_argument(
        "--exclude",
        default=None,
        help="Comma-separated glob patterns to exclude; replaces the default list",
    )
    ap_pack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_unpack = sub.add_parser("unpack", help="Recreate files from an archive")
    ap_unpack.add_argument("--in", dest="input", default=DEFAULT_ARCHIVE_NAME, help=f"Input archive (default: {DEFAULT_ARCHIVE_NAME})")
    ap_unpack.add_argument("--dest", default=".", help="Destination directory (default: .)")
    ap_unpack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("--in", dest="input", default=DEFAULT_ARCHIVE_NAME, help=f"Input archive (default: {DEFAULT_ARCHIVE_NAME})")

    sub.add_parser("help", help="Show this help")
    return ap


def main(argv: List[str] | None = None):
    ap = build_parser()
    args = ap.parse_args(argv)
    try:
        if args.cmd == "pack":
            cmd_pack(args.root, args.out, exclude=args.exclude, quiet=args.quiet)
        elif args.cmd == "unpack":
            cmd_unpack(args.input, dest=args.dest, quiet=args.quiet)
        elif args.cmd == "list":
            cmd_list(args.input)
        elif args.cmd == "help":
            ap.print_help()
        else:
            raise RuntimeError("Unknown command")
    except (PackPromptError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

from __future__ import annotations

import base64
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Dict


def _build_fixture_tree(root: Path) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    (root / "docs" / "notes").mkdir(parents=True)
    content = b"hello world\n" * 20
    (root / "docs" / "readme.txt").write_bytes(content)
    os.chmod(root / "docs" / "readme.txt", 0o644)
    files["docs/readme.txt"] = content

    (root / "docs" / "notes" / "empty.txt").write_text("")
    files["docs/notes/empty.txt"] = b""

    script = b"#!/bin/sh\necho hi\n"
    (root / "run.sh").write_bytes(script)
    os.chmod(root / "run.sh", 0o755)
    files["run.sh"] = script

    # never packed
    (root / "docs" / "notes" / "blob.dat").write_bytes(os.urandom(64) + b"\x00")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    return files


def _compare_trees(expected: Dict[str, bytes], dst: Path):
    found = {}
    for dirpath, _dirs, names in os.walk(dst):
        for name in names:
            full = Path(dirpath) / name
            found[full.relative_to(dst).as_posix()] = full.read_bytes()
    assert found == expected, f"Tree mismatch: {sorted(found)} != {sorted(expected)}"


def _record(path: str, content: bytes) -> str:
    token = base64.b64encode(path.encode("utf-8")).decode("ascii")
    body = base64.b64encode(content).decode("ascii")
    return f"--- FILE path_b64={token} mode=0644 ---\n{body}\n--- END FILE ---\n"


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "packprompt.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def make_workspace(self) -> Path:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        return Path(tmp.name)

    def test_pack_unpack_roundtrip(self):
        workspace = self.make_workspace()
        src_root = workspace / "src"
        src_root.mkdir()
        files = _build_fixture_tree(src_root)

        archive = workspace / "bundle.txt"
        pack_proc = self.run_cli(["pack", "--root", str(src_root), "--out", str(archive)])
        self.assertIn("packing: docs/readme.txt (240 bytes)", pack_proc.stdout)
        self.assertIn("binary=1", pack_proc.stdout)
        self.assertIn(f"Packed to {archive}", pack_proc.stdout)

        dest = workspace / "restored"
        unpack_proc = self.run_cli(["unpack", "--in", str(archive), "--dest", str(dest)])
        self.assertIn("Done: unpacked 3 files", unpack_proc.stdout)
        self.assertIn(f"Unpacked into {dest}", unpack_proc.stdout)
        _compare_trees(files, dest)
        self.assertEqual(os.stat(dest / "run.sh").st_mode & 0o777, 0o755)

    def test_quiet_suppresses_progress(self):
        workspace = self.make_workspace()
        (workspace / "a.txt").write_text("hello\n")
        archive = workspace / "out.txt"
        proc = self.run_cli(["pack", "--root", str(workspace), "--out", str(archive), "--quiet"])
        self.assertNotIn("packing:", proc.stdout)
        self.assertIn("Done: packed 1 files", proc.stdout)
        proc = self.run_cli(["unpack", "--in", str(archive), "--dest", str(workspace / "d"), "--quiet"])
        self.assertNotIn("unpacking:", proc.stdout)

    def test_defaults_use_current_directory(self):
        workspace = self.make_workspace()
        (workspace / "a.txt").write_text("hello\n")
        os.chmod(workspace / "a.txt", 0o644)
        self.run_cli(["pack"], cwd=workspace)
        self.assertTrue((workspace / "files-prompt.txt").exists())

        listing = self.run_cli(["list"], cwd=workspace)
        self.assertEqual(listing.stdout, "0644\t6\ta.txt\n")

        target = workspace / "target"
        target.mkdir()
        os.replace(workspace / "files-prompt.txt", target / "files-prompt.txt")
        self.run_cli(["unpack"], cwd=target)
        self.assertEqual((target / "a.txt").read_text(), "hello\n")

    def test_exclude_flag_replaces_defaults(self):
        workspace = self.make_workspace()
        src_root = workspace / "src"
        src_root.mkdir()
        _build_fixture_tree(src_root)

        default_out = workspace / "default.txt"
        self.run_cli(["pack", "--root", str(src_root), "--out", str(default_out), "--quiet"])
        listing = self.run_cli(["list", "--in", str(default_out)]).stdout
        self.assertNotIn(".git/HEAD", listing)
        self.assertIn("run.sh", listing)

        custom_out = workspace / "custom.txt"
        self.run_cli(["pack", "--root", str(src_root), "--out", str(custom_out), "--exclude", "*.sh, docs"])
        listing = self.run_cli(["list", "--in", str(custom_out)]).stdout
        self.assertIn(".git/HEAD", listing)
        self.assertNotIn("run.sh", listing)
        self.assertNotIn("docs/", listing)

        empty_out = workspace / "empty.txt"
        self.run_cli(["pack", "--root", str(src_root), "--out", str(empty_out), "--exclude", ""])
        listing = self.run_cli(["list", "--in", str(empty_out)]).stdout
        self.assertIn(".git/HEAD", listing)
        self.assertIn("docs/readme.txt", listing)

    def test_help_exits_zero(self):
        for args in (["help"], ["-h"], ["--help"], ["pack", "--help"]):
            with self.subTest(args=args):
                proc = self.run_cli(args)
                self.assertIn("usage", proc.stdout)

    def test_usage_errors_exit_one(self):
        for args in ([], ["frobnicate"], ["pack", "--bogus"]):
            with self.subTest(args=args):
                proc = self.run_cli(args, expect=1)
                self.assertIn("Error", proc.stderr)

    def test_missing_inputs_exit_one(self):
        workspace = self.make_workspace()
        proc = self.run_cli(["unpack", "--in", str(workspace / "nope.txt"), "--dest", str(workspace)], expect=1)
        self.assertTrue(proc.stderr.startswith("Error: "))

        out = workspace / "out.txt"
        proc = self.run_cli(["pack", "--root", str(workspace / "missing"), "--out", str(out)], expect=1)
        self.assertIn("root not found", proc.stderr)
        self.assertFalse(out.exists())

    def test_traversal_archive_is_rejected(self):
        workspace = self.make_workspace()
        archive = workspace / "evil.txt"
        archive.write_text(_record("../escaped.txt", b"pwned\n"))
        dest = workspace / "dest"
        proc = self.run_cli(["unpack", "--in", str(archive), "--dest", str(dest)], expect=1)
        self.assertIn("unsafe path", proc.stderr)
        self.assertFalse((workspace / "escaped.txt").exists())

    def test_malformed_archive_is_rejected(self):
        workspace = self.make_workspace()
        archive = workspace / "bad.txt"
        archive.write_text(_record("ok.txt", b"fine\n") + "--- FILE path=oops mode=0644 ---\n")
        dest = workspace / "dest"
        proc = self.run_cli(["unpack", "--in", str(archive), "--dest", str(dest)], expect=1)
        self.assertIn("line 4: malformed header", proc.stderr)
        self.assertEqual((dest / "ok.txt").read_text(), "fine\n")

        proc = self.run_cli(["list", "--in", str(archive)], expect=1)
        self.assertIn("malformed header", proc.stderr)


if __name__ == "__main__":
    unittest.main()

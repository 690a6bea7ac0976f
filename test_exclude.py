from __future__ import annotations

import dataclasses
import unittest

from packprompt.constants import DEFAULT_EXCLUDES
from packprompt.exclude import ExcludeSet, is_excluded


class ExclusionTests(unittest.TestCase):
    def test_bare_names_match_basename_anywhere(self):
        self.assertTrue(is_excluded("node_modules", True, DEFAULT_EXCLUDES))
        self.assertTrue(is_excluded("web/node_modules", True, DEFAULT_EXCLUDES))
        self.assertTrue(is_excluded("a/b/.DS_Store", False, DEFAULT_EXCLUDES))
        self.assertFalse(is_excluded("node_modules_old", True, DEFAULT_EXCLUDES))

    def test_extension_globs(self):
        self.assertTrue(is_excluded("img/logo.png", False, DEFAULT_EXCLUDES))
        self.assertTrue(is_excluded("dist/app.tar", False, DEFAULT_EXCLUDES))
        self.assertFalse(is_excluded("src/main.py", False, DEFAULT_EXCLUDES))
        # case-sensitive
        self.assertFalse(is_excluded("LOGO.PNG", False, DEFAULT_EXCLUDES))

    def test_patterns_with_slash_match_whole_path(self):
        pats = ["docs/*.md"]
        self.assertTrue(is_excluded("docs/readme.md", False, pats))
        self.assertFalse(is_excluded("docs/sub/readme.md", False, pats))
        self.assertFalse(is_excluded("readme.md", False, pats))
        self.assertFalse(is_excluded("other/docs/readme.md", False, pats))

    def test_question_mark_and_classes(self):
        self.assertTrue(is_excluded("file1.txt", False, ["file[0-9].txt"]))
        self.assertFalse(is_excluded("fileA.txt", False, ["file[0-9].txt"]))
        self.assertTrue(is_excluded("a/x.c", False, ["a/?.c"]))
        self.assertFalse(is_excluded("a/xy.c", False, ["a/?.c"]))

    def test_directory_only_patterns(self):
        self.assertTrue(is_excluded("build", True, ["build/"]))
        self.assertTrue(is_excluded("pkg/build", True, ["build/"]))
        self.assertFalse(is_excluded("build", False, ["build/"]))
        self.assertTrue(is_excluded("src/gen", True, ["src/gen/"]))

    def test_blank_patterns_ignored(self):
        self.assertFalse(is_excluded("a.txt", False, ["", "  ", "/"]))

    def test_first_match_wins_and_empty_set_excludes_nothing(self):
        self.assertTrue(is_excluded(".git", True, [".git", "*.never"]))
        self.assertFalse(is_excluded(".git", True, []))


class ExcludeSetTests(unittest.TestCase):
    def test_defaults(self):
        self.assertEqual(ExcludeSet.defaults().patterns, DEFAULT_EXCLUDES)
        self.assertEqual(ExcludeSet().patterns, DEFAULT_EXCLUDES)
        self.assertTrue(ExcludeSet.defaults().matches(".git", is_dir=True))

    def test_from_csv_replaces_defaults(self):
        s = ExcludeSet.from_csv(" secrets , ,*.log ")
        self.assertEqual(s.patterns, ("secrets", "*.log"))
        self.assertFalse(s.matches(".git", is_dir=True))
        self.assertTrue(s.matches("deploy/secrets", is_dir=True))
        # defaults untouched
        self.assertEqual(ExcludeSet.defaults().patterns, DEFAULT_EXCLUDES)

    def test_from_csv_empty_and_backslashes(self):
        self.assertEqual(ExcludeSet.from_csv("").patterns, ())
        self.assertEqual(len(ExcludeSet.from_csv("   ")), 0)
        self.assertEqual(ExcludeSet.from_csv("docs\\*.md").patterns, ("docs/*.md",))

    def test_from_patterns(self):
        s = ExcludeSet.from_patterns(["build/", "*.tmp"])
        self.assertTrue(s.matches("build", is_dir=True))
        self.assertFalse(s.matches("build"))
        self.assertTrue(s.matches("a/b.tmp"))

    def test_immutable(self):
        s = ExcludeSet.defaults()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            s.patterns = ()  # type: ignore[misc]


if __name__ == "__main__":
    unittest.main()

"""
Relay unit tests for the resolution of upload target paths
"""

import re
import unittest

from relay_core import errors
from relay_core.store import paths


class PathResolutionTests(unittest.TestCase):
    def test_unique_timestamps(self):
        stamps = [paths.unique_timestamp() for _ in range(1000)]
        self.assertEqual(stamps, sorted(stamps))
        self.assertEqual(len(stamps), len(set(stamps)))

    def test_generate_file_name(self):
        self.assertEqual("photo-1700000000000000.png", paths.generate_file_name("photo.png", 1700000000000000))
        self.assertEqual("archive.tar-12.gz", paths.generate_file_name("archive.tar.gz", 12))
        self.assertEqual("README-7", paths.generate_file_name("README", 7))
        self.assertEqual(".hidden-3", paths.generate_file_name(".hidden", 3))
        self.assertEqual("photo-5.jpg", paths.generate_file_name("uploads/photo.jpg", 5))
        self.assertEqual("photo-5.jpg", paths.generate_file_name("C:\\Users\\me\\photo.jpg", 5))
        self.assertRegex(paths.generate_file_name("photo.png"), r"^photo-\d+\.png$")
        for name in ["", None, "dir/"]:
            with self.assertRaises(errors.ValidationError):
                paths.generate_file_name(name)

    def test_directory_paths_resolve_to_distinct_names(self):
        resolved = [paths.resolve_target_path("images/", "photo.png") for _ in range(50)]
        self.assertEqual(len(resolved), len(set(resolved)))
        for path in resolved:
            self.assertRegex(path, r"^images/photo-\d+\.png$")
        self.assertRegex(paths.resolve_target_path("/", "photo.png"), r"^photo-\d+\.png$")
        self.assertRegex(paths.resolve_target_path("/a/b/", "x.txt"), r"^a/b/x-\d+\.txt$")

    def test_file_paths_resolve_to_themselves(self):
        for path in ["images/photo.png", "README.md", "a/b/c/d.json", "no-extension"]:
            self.assertEqual(path, paths.resolve_target_path(path, "ignored.png"))
            self.assertEqual(path, paths.resolve_target_path(path))
        self.assertEqual("images/photo.png", paths.resolve_target_path("/images/photo.png"))

    def test_missing_paths(self):
        with self.assertRaises(errors.ValidationError):
            paths.resolve_target_path("", "photo.png")
        with self.assertRaises(errors.ValidationError):
            paths.resolve_target_path(None, "photo.png")
        with self.assertRaises(errors.ValidationError):
            paths.resolve_target_path("images/")

    def test_join_unique(self):
        self.assertRegex(paths.join_unique("images", "a.png"), r"^images/a-\d+\.png$")
        self.assertRegex(paths.join_unique("images/", "a.png"), r"^images/a-\d+\.png$")
        self.assertRegex(paths.join_unique("/images/2024/", "a.png"), r"^images/2024/a-\d+\.png$")
        self.assertRegex(paths.join_unique("", "a.png"), r"^a-\d+\.png$")
        first, second = paths.join_unique("x", "a.png"), paths.join_unique("x", "a.png")
        self.assertNotEqual(first, second)
        self.assertLess(
            int(re.search(r"-(\d+)\.png$", first).group(1)),
            int(re.search(r"-(\d+)\.png$", second).group(1))
        )

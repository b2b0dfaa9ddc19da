import tempfile
import unittest
from pathlib import Path

from workspace_runner.discovery import (
    DiscoveryError,
    discover_packages,
    list_child_directories,
    normalize_name,
)


class DiscoveryTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_sorted_prefix_matches_then_umbrella(self):
        for name in ("ted_beta", "ted_alpha", "src", "docs"):
            (self.root / name).mkdir()
        packages = discover_packages(self.root, "ted_", "ted")
        self.assertEqual(packages, ["ted_alpha", "ted_beta", "ted"])

    def test_files_and_nested_directories_are_ignored(self):
        (self.root / "ted_core").mkdir()
        (self.root / "ted_core" / "ted_nested").mkdir()
        (self.root / "ted_notes.txt").write_text("not a package", encoding="utf-8")
        packages = discover_packages(self.root, "ted_", "ted")
        self.assertEqual(packages, ["ted_core", "ted"])

    def test_umbrella_is_present_with_no_matches(self):
        (self.root / "target").mkdir()
        self.assertEqual(discover_packages(self.root, "ted_", "ted"), ["ted"])

    def test_umbrella_matching_prefix_is_listed_twice(self):
        with self.assertLogs("workspace_runner.discovery", level="WARNING"):
            packages = discover_packages(
                self.root, "ted", "ted", lister=lambda _root: ["ted_mark", "ted"]
            )
        self.assertEqual(packages, ["ted", "ted_mark", "ted"])

    def test_injected_lister_names_are_normalized(self):
        listed = ["./ted_mark", "./ted_git/", "ted_core", "./README"]
        packages = discover_packages(self.root, "ted_", "ted", lister=lambda _root: listed)
        self.assertEqual(packages, ["ted_core", "ted_git", "ted_mark", "ted"])

    def test_normalize_name(self):
        self.assertEqual(normalize_name("./ted_core"), "ted_core")
        self.assertEqual(normalize_name("ted_core/"), "ted_core")
        self.assertEqual(normalize_name("ted_core"), "ted_core")

    def test_missing_root_raises(self):
        with self.assertRaises(DiscoveryError):
            list_child_directories(self.root / "does-not-exist")

    def test_root_that_is_a_file_raises(self):
        path = self.root / "plain-file"
        path.write_text("", encoding="utf-8")
        with self.assertRaises(DiscoveryError):
            discover_packages(path, "ted_", "ted")


if __name__ == "__main__":
    unittest.main()

import unittest

from prd_helper.diff.stats import DiffStats, count_stats


class TestCountStats(unittest.TestCase):
    def test_headers_are_ignored(self) -> None:
        diff = "\n".join(
            [
                "diff --git a/x b/x",
                "index 123..456 100644",
                "--- a/x",
                "+++ b/x",
                "@@ -1,2 +1,3 @@",
                "+x",
                "-y",
                " context",
            ]
        )
        self.assertEqual(count_stats(diff), DiffStats(added_lines=1, removed_lines=1))

    def test_only_headers(self) -> None:
        for line in ("diff a b", "index ...", "--- a", "+++ b", "@@ -1,2 +1,3 @@"):
            with self.subTest(line=line):
                self.assertEqual(count_stats(line), DiffStats())

    def test_content_that_looks_like_markers_counts_once(self) -> None:
        # "++x" and "--y" are content lines, not headers
        self.assertEqual(count_stats("++x\n--y\n+\n-"), DiffStats(added_lines=2, removed_lines=2))

    def test_empty(self) -> None:
        self.assertEqual(count_stats(""), DiffStats(0, 0))


if __name__ == "__main__":
    unittest.main()

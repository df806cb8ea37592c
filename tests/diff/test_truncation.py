import unittest

from prd_helper.diff.truncation import (
    PreparedDiff,
    TruncationReason,
    truncate_by_chars,
    truncate_by_lines,
)


class TestTruncateByLines(unittest.TestCase):
    def test_within_budget_is_untouched(self) -> None:
        text = "a\nb\nc"
        prepared = truncate_by_lines(text, 10)
        self.assertEqual(prepared, PreparedDiff(text=text, truncated=False, analyzed_lines=3))

    def test_cut_keeps_terminator_of_last_line(self) -> None:
        prepared = truncate_by_lines("a\nb\nc\nd\n", 2)
        self.assertEqual(prepared.text, "a\nb\n")
        self.assertTrue(prepared.truncated)
        self.assertEqual(prepared.analyzed_lines, 2)

    def test_exact_budget_with_trailing_newline(self) -> None:
        prepared = truncate_by_lines("a\nb\n", 2)
        self.assertEqual(prepared.text, "a\nb\n")
        self.assertFalse(prepared.truncated)
        self.assertEqual(prepared.analyzed_lines, 2)

    def test_non_positive_budget(self) -> None:
        self.assertEqual(truncate_by_lines("a\n", 0), PreparedDiff("", True, 0))
        self.assertEqual(truncate_by_lines("a\n", -5), PreparedDiff("", True, 0))
        self.assertEqual(truncate_by_lines("", 0), PreparedDiff("", False, 0))

    def test_empty_input(self) -> None:
        self.assertEqual(truncate_by_lines("", 5), PreparedDiff("", False, 0))

    def test_prefix_and_truncated_flag_agree(self) -> None:
        texts = ["", "x", "x\n", "x\ny", "x\ny\n", "\n\n\n", "one\r\ntwo\r\nthree"]
        for text in texts:
            for max_lines in range(-1, 5):
                with self.subTest(text=text, max_lines=max_lines):
                    prepared = truncate_by_lines(text, max_lines)
                    self.assertTrue(text.startswith(prepared.text))
                    self.assertEqual(prepared.truncated, len(prepared.text) < len(text))
                    if prepared.truncated and max_lines > 0:
                        self.assertEqual(prepared.analyzed_lines, max_lines)


class TestTruncateByChars(unittest.TestCase):
    def test_char_cut_sets_distinct_flag(self) -> None:
        prepared = truncate_by_lines("abcdef\nghijkl\n", 10)
        ai_diff = truncate_by_chars(prepared, 9)
        self.assertEqual(ai_diff.text, "abcdef\ngh")
        self.assertTrue(ai_diff.truncated_by_chars)
        self.assertFalse(ai_diff.truncated_by_lines)
        self.assertTrue(ai_diff.truncated)
        self.assertEqual(ai_diff.reason, TruncationReason.MAX_CHARS)
        self.assertEqual(ai_diff.analyzed_lines, 2)

    def test_line_truncation_carries_over(self) -> None:
        prepared = truncate_by_lines("a\nb\nc\n", 1)
        ai_diff = truncate_by_chars(prepared, 100)
        self.assertTrue(ai_diff.truncated)
        self.assertFalse(ai_diff.truncated_by_chars)
        self.assertEqual(ai_diff.reason, TruncationReason.MAX_LINES)
        self.assertEqual(ai_diff.analyzed_lines, 1)

    def test_zero_budget_disables_char_cut(self) -> None:
        prepared = truncate_by_lines("a" * 50, 10)
        ai_diff = truncate_by_chars(prepared, 0)
        self.assertEqual(ai_diff.text, "a" * 50)
        self.assertEqual(ai_diff.reason, TruncationReason.NONE)
        self.assertFalse(ai_diff.truncated)


if __name__ == "__main__":
    unittest.main()

"""
Line statistics for unified diffs.

This is a prefix heuristic, not a hunk parser: file and hunk headers are
skipped by their fixed prefixes and every other line starting with ``+``
or ``-`` counts once.
"""

from __future__ import annotations

from dataclasses import dataclass

_HEADER_PREFIXES = ("diff ", "index ", "--- ", "+++ ", "@@")


@dataclass(frozen=True)
class DiffStats:
    added_lines: int = 0
    removed_lines: int = 0


def count_stats(diff_text: str) -> DiffStats:
    """Count added and removed content lines in ``diff_text``."""
    if not diff_text:
        return DiffStats()

    added = 0
    removed = 0
    for line in diff_text.split("\n"):
        if line.startswith(_HEADER_PREFIXES):
            continue
        if line.startswith("+"):
            added += 1
        elif line.startswith("-"):
            removed += 1
    return DiffStats(added_lines=added, removed_lines=removed)

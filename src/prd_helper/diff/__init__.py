"""
Utilities for bounding and measuring diff text.

:mod:`prd_helper.diff.truncation` limits how much of a diff is analysed
and :mod:`prd_helper.diff.stats` counts added and removed lines.
"""

from .stats import DiffStats, count_stats  # noqa: F401
from .truncation import (  # noqa: F401
    AiPreparedDiff,
    PreparedDiff,
    TruncationReason,
    truncate_by_chars,
    truncate_by_lines,
)

"""
Diff truncation.

The local report and the outbound generation request have separate
budgets. :func:`truncate_by_lines` produces the line-bounded diff used by
both, and :func:`truncate_by_chars` additionally caps the payload size
for the remote call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TruncationReason(str, Enum):
    NONE = "none"
    MAX_LINES = "maxLines"
    MAX_CHARS = "maxChars"


@dataclass(frozen=True)
class PreparedDiff:
    """A line-bounded prefix of a diff.

    Attributes
    ----------
    text : str
        Prefix of the original diff ending on a line boundary (or at the
        end of the input).
    truncated : bool
        True when part of the input was not consumed.
    analyzed_lines : int
        Number of lines contained in ``text``.
    """

    text: str
    truncated: bool
    analyzed_lines: int


@dataclass(frozen=True)
class AiPreparedDiff:
    """A diff bounded by both a line budget and a character budget."""

    text: str
    truncated_by_lines: bool
    truncated_by_chars: bool
    analyzed_lines: int

    @property
    def truncated(self) -> bool:
        return self.truncated_by_lines or self.truncated_by_chars

    @property
    def reason(self) -> TruncationReason:
        if self.truncated_by_chars:
            return TruncationReason.MAX_CHARS
        if self.truncated_by_lines:
            return TruncationReason.MAX_LINES
        return TruncationReason.NONE


def _count_lines(text: str) -> int:
    if not text:
        return 0
    newlines = text.count("\n")
    return newlines if text.endswith("\n") else newlines + 1


def truncate_by_lines(diff_text: str, max_lines: int) -> PreparedDiff:
    """Keep at most ``max_lines`` lines of ``diff_text``.

    The text is scanned once. Each consumed line keeps its terminator; a
    final line without a terminator is consumed as-is.

    Parameters
    ----------
    diff_text : str
        The full diff.
    max_lines : int
        Line budget. Values ``<= 0`` consume nothing.

    Returns
    -------
    PreparedDiff
        The consumed prefix and how much of it was analysed.
    """
    if max_lines <= 0:
        return PreparedDiff(text="", truncated=bool(diff_text), analyzed_lines=0)

    length = len(diff_text)
    position = 0
    consumed = 0
    while position < length and consumed < max_lines:
        newline = diff_text.find("\n", position)
        position = length if newline == -1 else newline + 1
        consumed += 1

    return PreparedDiff(
        text=diff_text[:position],
        truncated=position < length,
        analyzed_lines=consumed,
    )


def truncate_by_chars(prepared: PreparedDiff, max_chars: int) -> AiPreparedDiff:
    """Hard-cut an already line-bounded diff to ``max_chars`` characters.

    The cut ignores line boundaries. A ``max_chars`` of zero or less
    disables the character budget.
    """
    if max_chars > 0 and len(prepared.text) > max_chars:
        text = prepared.text[:max_chars]
        return AiPreparedDiff(
            text=text,
            truncated_by_lines=prepared.truncated,
            truncated_by_chars=True,
            analyzed_lines=_count_lines(text),
        )
    return AiPreparedDiff(
        text=prepared.text,
        truncated_by_lines=prepared.truncated,
        truncated_by_chars=False,
        analyzed_lines=prepared.analyzed_lines,
    )

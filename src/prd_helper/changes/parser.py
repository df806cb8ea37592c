"""
Parsers for Git change listings.

Two textual formats are understood:

* ``git status --porcelain`` where the first column is the index status
  and the path starts at offset 3. Only staged entries are kept.
* ``git diff --name-status`` where the status code and the path(s) are
  separated by tabs.

Both parsers are total: malformed lines are skipped rather than raising,
so the result can always be fed straight into the merger.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class ChangeStatus(str, Enum):
    """Kind of change applied to a file."""

    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"
    RENAMED = "Renamed"

    @classmethod
    def from_code(cls, code: str) -> "ChangeStatus":
        """Map a one-letter Git status code to a :class:`ChangeStatus`.

        Copies (``C``) are reported as additions; unknown codes fall back
        to :attr:`MODIFIED`.
        """
        if code == "A" or code == "C":
            return cls.ADDED
        if code == "D":
            return cls.DELETED
        if code == "R":
            return cls.RENAMED
        return cls.MODIFIED


@dataclass(frozen=True)
class ChangeRecord:
    """A single changed file.

    Attributes
    ----------
    status : ChangeStatus
        What happened to the file.
    display_path : str
        Path shown to the reader. Renames use ``"old -> new"``.
    merge_key : str
        Identity used when merging several listings; the new path for
        renames.
    """

    status: ChangeStatus
    display_path: str
    merge_key: str


_TAB_RUN = re.compile(r"\t+")
_LINE_BREAK = re.compile(r"\r?\n")


def normalize_quoted_path(raw_path: str) -> str:
    """Trim ``raw_path`` and strip a single pair of surrounding double quotes."""
    trimmed = raw_path.strip()
    if len(trimmed) >= 2 and trimmed.startswith('"') and trimmed.endswith('"'):
        return trimmed[1:-1]
    return trimmed


def _rename_paths(old_raw: str, new_raw: str) -> Tuple[str, str]:
    old_path = normalize_quoted_path(old_raw)
    new_path = normalize_quoted_path(new_raw)
    display_path = f"{old_path} -> {new_path}".strip()
    key = new_path or old_path or display_path
    return display_path, key


def _build_record(status: ChangeStatus, path_field: str, new_field: Optional[str] = None) -> Optional[ChangeRecord]:
    if status is ChangeStatus.RENAMED:
        if new_field is None:
            if "->" not in path_field:
                normalized = normalize_quoted_path(path_field)
                if not normalized:
                    return None
                return ChangeRecord(status, normalized, normalized)
            old_raw, new_raw = path_field.split("->", 1)
        else:
            old_raw, new_raw = path_field, new_field
        display_path, key = _rename_paths(old_raw, new_raw)
        # Both paths empty still renders as "->", which is kept.
        return ChangeRecord(status, display_path, key)

    normalized = normalize_quoted_path(path_field)
    if not normalized:
        return None
    return ChangeRecord(status, normalized, normalized)


def parse_porcelain_status(text: str) -> List[ChangeRecord]:
    """Parse staged entries from ``git status --porcelain`` output.

    Lines whose index column is a space (unstaged only) or ``?``
    (untracked) are skipped, as are lines shorter than three characters.

    Parameters
    ----------
    text : str
        Raw porcelain output.

    Returns
    -------
    List[ChangeRecord]
        Records in the order they appear in ``text``.
    """
    records: List[ChangeRecord] = []
    if not text:
        return records

    for line in _LINE_BREAK.split(text):
        if len(line) < 3:
            continue
        index_status = line[0]
        if index_status in (" ", "?"):
            continue
        status = ChangeStatus.from_code(index_status)
        record = _build_record(status, line[3:].strip())
        if record is not None:
            records.append(record)
    return records


def parse_name_status(text: str) -> List[ChangeRecord]:
    """Parse ``git diff --name-status`` output.

    Each line is split on runs of tabs. The first character of the first
    field is the status code (``M`` when absent); renames carry the old
    and new path in fields 1 and 2.
    """
    records: List[ChangeRecord] = []
    if not text:
        return records

    for line in _LINE_BREAK.split(text):
        if not line:
            continue
        parts = _TAB_RUN.split(line)
        status_field = parts[0] if parts else ""
        status = ChangeStatus.from_code(status_field[:1] or "M")
        first = parts[1] if len(parts) > 1 else ""
        if status is ChangeStatus.RENAMED:
            second = parts[2] if len(parts) > 2 else ""
            record = _build_record(status, first, second)
        else:
            record = _build_record(status, first)
        if record is not None:
            records.append(record)
    return records

"""
Merging of change listings into a single ordered change set.

When a report compares a branch against its base, Git is asked twice:
once for the committed range and once for the working tree. Both
listings can mention the same file. The committed range is passed as the
primary source so that its status (a rename, say) wins over a possibly
stale working-tree entry for the same path.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

from prd_helper.changes.parser import ChangeRecord, ChangeStatus


class ChangeSet(Sequence[ChangeRecord]):
    """Immutable, ordered collection of :class:`ChangeRecord` unique by merge key."""

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[ChangeRecord] = ()) -> None:
        unique: Dict[str, ChangeRecord] = {}
        for record in records:
            if record.merge_key not in unique:
                unique[record.merge_key] = record
        self._records: Tuple[ChangeRecord, ...] = tuple(unique.values())

    def __getitem__(self, index):  # type: ignore[override]
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ChangeRecord]:
        return iter(self._records)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ChangeSet):
            return self._records == other._records
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._records)

    def __repr__(self) -> str:
        return f"ChangeSet({list(self._records)!r})"

    def count_status(self, status: ChangeStatus) -> int:
        """Return the number of records with the given ``status``."""
        return sum(1 for record in self._records if record.status is status)

    @property
    def paths(self) -> List[str]:
        return [record.display_path for record in self._records]


def merge_changes(
    primary: Iterable[ChangeRecord],
    secondary: Iterable[ChangeRecord] = (),
) -> ChangeSet:
    """Merge two change listings, keeping the first record seen for each key.

    Parameters
    ----------
    primary : Iterable[ChangeRecord]
        Records that take precedence (e.g. committed-range changes).
    secondary : Iterable[ChangeRecord]
        Records only added for keys not already present (e.g. working
        tree changes).

    Returns
    -------
    ChangeSet
        Records in first-seen order across ``primary`` then ``secondary``.
    """
    return ChangeSet([*primary, *secondary])

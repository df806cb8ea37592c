"""
Change record parsing and merging.

Raw ``git status --porcelain`` and ``git diff --name-status`` output is
turned into :class:`ChangeRecord` objects by
:mod:`prd_helper.changes.parser` and combined into an ordered
:class:`ChangeSet` by :mod:`prd_helper.changes.merger`.
"""

from .merger import ChangeSet, merge_changes  # noqa: F401
from .parser import (  # noqa: F401
    ChangeRecord,
    ChangeStatus,
    parse_name_status,
    parse_porcelain_status,
)

"""
Heuristics that turn a change set into report signals.

The classifier only looks at file paths and statuses, never at diff
content, so it is deterministic and can be unit tested without a
repository. All rules live in :mod:`prd_helper.classify.rules`; this
module evaluates them and phrases the results.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, List, Sequence, Tuple

from prd_helper.changes.parser import ChangeRecord, ChangeStatus
from prd_helper.classify import rules
from prd_helper.classify.model import ClassificationResult, RiskAssessment, RiskLevel
from prd_helper.classify.rules import NormalizedPath, normalize_path


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


MAX_CHANGE_BULLETS = 6
MAX_TOP_FOLDERS = 3
MAX_FOCUS_AREAS = 6
MAX_LISTED_FILES = 3

_STATUS_WORDS = (
    (ChangeStatus.ADDED, "added"),
    (ChangeStatus.MODIFIED, "modified"),
    (ChangeStatus.DELETED, "deleted"),
    (ChangeStatus.RENAMED, "renamed"),
)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _normalized(changes: Iterable[ChangeRecord]) -> List[NormalizedPath]:
    return [normalize_path(record.display_path) for record in changes]


def _list_with_more(items: Sequence[str], limit: int) -> str:
    shown = ", ".join(items[:limit])
    if len(items) > limit:
        return f"{shown} and {len(items) - limit} more"
    return shown


# ---------------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------------
def assess_risk(changes: Iterable[ChangeRecord]) -> RiskAssessment:
    """Derive the risk level and impacted areas from the changed paths.

    Database, auth/security and infra matches force ``High``; a config
    match alone yields ``Medium``. ``areas`` always follows the fixed
    priority order of :data:`prd_helper.classify.rules.RISK_RULES`.
    """
    matched = set()
    for path in _normalized(changes):
        for category, matcher, _ in rules.RISK_RULES:
            if category not in matched and matcher(path):
                matched.add(category)

    areas = tuple(category for category, _, _ in rules.RISK_RULES if category in matched)
    if any(forces_high for category, _, forces_high in rules.RISK_RULES if category in matched):
        level = RiskLevel.HIGH
    elif areas:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW
    return RiskAssessment(level=level, areas=areas)


# ---------------------------------------------------------------------------
# Testing
# ---------------------------------------------------------------------------
def testing_lines(changes: Iterable[ChangeRecord]) -> Tuple[str, ...]:
    """Return the checklist lines for the Testing section."""
    test_files = [path for path in _normalized(changes) if rules.is_test_file(path)]
    if test_files:
        return (f"[x] Automated tests updated ({_plural(len(test_files), 'test file')} changed).",)
    return (
        "[ ] Unit tests",
        "[ ] Manual testing",
        "Manual testing notes: describe the steps you ran and what you verified.",
    )


# ---------------------------------------------------------------------------
# Change bullets
# ---------------------------------------------------------------------------
def _operations_bullet(changes: Sequence[ChangeRecord]) -> str:
    counts = Counter(record.status for record in changes)
    parts = [f"{counts[status]} {word}" for status, word in _STATUS_WORDS if counts[status]]
    if not parts:
        return ""
    return f"File operations: {', '.join(parts)}."


def _areas_bullet(paths: Sequence[NormalizedPath]) -> str:
    folders: Counter = Counter()
    root_files = 0
    for path in paths:
        folder = rules.top_folder(path)
        if folder is None:
            root_files += 1
        else:
            folders[folder] += 1

    ranked = sorted(folders.items(), key=lambda item: (-item[1], item[0]))[:MAX_TOP_FOLDERS]
    entries = [f"{folder}/ ({count})" for folder, count in ranked]
    if len(entries) < MAX_TOP_FOLDERS and root_files:
        entries.append(f"root files ({root_files})")
    if not entries:
        return ""
    return f"Primary areas: {', '.join(entries)}."


def _signals_bullet(paths: Sequence[NormalizedPath]) -> str:
    signals = [
        name for name, matcher in rules.SIGNAL_RULES
        if any(matcher(path) for path in paths)
    ]
    if not signals:
        return ""
    return f"Signals: {', '.join(signals)}."


def _focus_bullet(paths: Sequence[NormalizedPath]) -> str:
    areas = [
        name for name, matcher in rules.FOCUS_RULES
        if any(matcher(path) for path in paths)
    ]
    if not areas:
        return ""
    return f"Touches: {_list_with_more(areas, MAX_FOCUS_AREAS)}."


def _count_bullets(paths: Sequence[NormalizedPath]) -> List[str]:
    bullets = []
    for label, matcher in (
        ("Tests updated", rules.TESTS_RULE),
        ("Localization updated", rules.LOCALIZATION_RULE),
        ("Data files updated", rules.DATA_RULE),
    ):
        count = sum(1 for path in paths if matcher(path))
        if count:
            bullets.append(f"{label}: {_plural(count, 'file')}.")
    return bullets


def change_bullets(changes: Sequence[ChangeRecord]) -> Tuple[str, ...]:
    """Summarise the change set in at most six bullets.

    Bullets are produced in a fixed priority order (file operations,
    primary areas, signals, focus areas, per-kind counts), de-duplicated,
    and the list is cut at six; later bullets are dropped when earlier
    ones fill it.
    """
    paths = _normalized(changes)
    candidates = [
        _operations_bullet(changes),
        _areas_bullet(paths),
        _signals_bullet(paths),
        _focus_bullet(paths),
        *_count_bullets(paths),
    ]
    bullets: List[str] = []
    for bullet in candidates:
        if bullet and bullet not in bullets:
            bullets.append(bullet)
        if len(bullets) == MAX_CHANGE_BULLETS:
            break
    return tuple(bullets)


# ---------------------------------------------------------------------------
# Release notes
# ---------------------------------------------------------------------------
def release_note_lines(changes: Iterable[ChangeRecord]) -> Tuple[str, ...]:
    """Return release-note candidates, or one fallback line when none exist."""
    paths = _normalized(changes)
    changelogs = [path.path for path in paths if rules.is_changelog(path)]
    release_notes = [path.path for path in paths if rules.RELEASE_NOTES_RULE(path)]
    docs = [path.path for path in paths if rules.DOCS_PATH_RULE(path)]

    lines = []
    if changelogs:
        lines.append(f"Changelog updated: {_list_with_more(changelogs, MAX_LISTED_FILES)}.")
    if release_notes:
        lines.append(f"Release notes updated: {_list_with_more(release_notes, MAX_LISTED_FILES)}.")
    if docs:
        lines.append(f"Documentation updated: {_plural(len(docs), 'file')}.")
    if not lines:
        lines.append(
            "No changelog or release-note files changed; add notes here if this change is user-facing."
        )
    return tuple(lines)


def classify(changes: Sequence[ChangeRecord]) -> ClassificationResult:
    """Run every heuristic over ``changes``."""
    result = ClassificationResult(
        change_bullets=change_bullets(changes),
        testing_lines=testing_lines(changes),
        release_notes_lines=release_note_lines(changes),
        risk=assess_risk(changes),
    )
    logger.debug(
        "Classified %d file(s): risk=%s areas=%s",
        len(changes),
        result.risk.level.value,
        ", ".join(result.risk.areas) or "none",
    )
    return result

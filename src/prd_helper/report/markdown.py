"""
Assembly of the fixed-section Markdown report.

The section set and order are a compatibility surface: the output is
pasted into review tools that expect it. Sections are always emitted as
a ``##`` heading, ``-`` prefixed lines and a trailing blank line, in this
order: Summary, Changes, Release Notes, Files changed (optional),
Testing, Risk / Impact, Rollout / Backout.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from prd_helper.changes.parser import ChangeRecord
from prd_helper.classify.model import ClassificationResult
from prd_helper.diff.stats import DiffStats
from prd_helper.diff.truncation import PreparedDiff


NO_RELEASE_NOTES_LINE = "No release-note candidates detected."
NO_TESTING_LINE = "[ ] Not run (not specified)."


@dataclass(frozen=True)
class ReportSection:
    title: str
    lines: Tuple[str, ...]

    def render(self) -> List[str]:
        return [f"## {self.title}", *(f"- {line}" for line in self.lines), ""]


@dataclass(frozen=True)
class Report:
    """An ordered sequence of report sections."""

    sections: Tuple[ReportSection, ...]

    @property
    def titles(self) -> List[str]:
        return [section.title for section in self.sections]

    def section(self, title: str) -> ReportSection:
        for candidate in self.sections:
            if candidate.title == title:
                return candidate
        raise KeyError(title)

    def to_markdown(self) -> str:
        output: List[str] = []
        for section in self.sections:
            output.extend(section.render())
        return "\n".join(output)

    def __str__(self) -> str:
        return self.to_markdown()


@dataclass(frozen=True)
class ReportOptions:
    """Inputs to :func:`build_report`.

    Attributes
    ----------
    files : Sequence[ChangeRecord]
        The merged change set.
    stats : DiffStats
        Line counts of the analysed diff.
    diff : PreparedDiff
        The line-bounded diff, used for the truncation note.
    max_lines : int
        Line budget the diff was truncated to.
    classification : ClassificationResult
        Output of the change classifier.
    summary_label : str
        E.g. ``"Staged changes"`` or ``"Changes against main"``.
    diff_label : str
        E.g. ``"staged"`` or ``"against main"``.
    empty_changes_line : str
        Line used when there is nothing to list.
    include_files_section : bool
        Whether to emit the "Files changed" section.
    """

    files: Sequence[ChangeRecord]
    stats: DiffStats
    diff: PreparedDiff
    max_lines: int
    classification: ClassificationResult
    summary_label: str
    diff_label: str
    empty_changes_line: str
    include_files_section: bool = False


def _summary(options: ReportOptions) -> ReportSection:
    count = len(options.files)
    risk = options.classification.risk
    areas = f" ({', '.join(risk.areas)})" if risk.areas else ""
    lines = [
        f"{options.summary_label} in {count} file{'' if count == 1 else 's'}.",
        f"Diff stats ({options.diff_label}): +{options.stats.added_lines} / -{options.stats.removed_lines} lines.",
        f"Risk: {risk.level.value}{areas}.",
    ]
    if options.diff.truncated:
        lines.append(
            f"Diff analysis truncated to {options.max_lines} lines (analyzed {options.diff.analyzed_lines})."
        )
    return ReportSection("Summary", tuple(lines))


def build_report(options: ReportOptions) -> Report:
    """Render the baseline report from the pipeline outputs."""
    classification = options.classification
    risk = classification.risk

    sections = [
        _summary(options),
        ReportSection(
            "Changes",
            tuple(classification.change_bullets) or (options.empty_changes_line,),
        ),
        ReportSection(
            "Release Notes",
            tuple(classification.release_notes_lines) or (NO_RELEASE_NOTES_LINE,),
        ),
    ]
    if options.include_files_section:
        files = tuple(f"{record.status.value}: {record.display_path}" for record in options.files)
        sections.append(ReportSection("Files changed", files or (options.empty_changes_line,)))

    sections.extend(
        [
            ReportSection("Testing", tuple(classification.testing_lines) or (NO_TESTING_LINE,)),
            ReportSection(
                "Risk / Impact",
                (
                    f"Level: {risk.level.value}",
                    f"Areas impacted: {', '.join(risk.areas) if risk.areas else 'none detected.'}",
                ),
            ),
            ReportSection("Rollout / Backout", ("Rollout: TBD", "Backout: TBD")),
        ]
    )
    return Report(tuple(sections))

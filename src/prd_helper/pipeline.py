"""
Collection pipelines that produce the baseline report.

Two flows are supported:

* :func:`generate_from_staged` describes the staged changes.
* :func:`generate_against_base` describes everything on the current
  branch relative to a base branch, including uncommitted work.

Failures while collecting data are terminal: the raised exception is
reported once by the caller and no report is produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from prd_helper.changes.merger import ChangeSet, merge_changes
from prd_helper.changes.parser import parse_name_status, parse_porcelain_status
from prd_helper.classify.change_classifier import classify
from prd_helper.context import AppContext
from prd_helper.diff.stats import count_stats
from prd_helper.diff.truncation import PreparedDiff, truncate_by_lines
from prd_helper.report.markdown import Report, ReportOptions, build_report
from prd_helper.vcs.git_client import GitClient, GitError, GitUnavailableError, NotARepositoryError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class NoWorkspaceError(Exception):
    """Raised when there is no project folder to work in."""

    pass


class NoChangesError(Exception):
    """Raised when there is nothing to describe."""

    pass


@dataclass(frozen=True)
class PipelineResult:
    """Baseline report plus the inputs the generation pass needs."""

    report: Report
    changes: ChangeSet
    raw_diff: str
    diff: PreparedDiff

    @property
    def markdown(self) -> str:
        return self.report.to_markdown()


def _ensure_workspace(context: AppContext) -> None:
    if not context.repo_root.is_dir():
        raise NoWorkspaceError(f"Open a folder: {context.repo_root} is not a directory")


def _status(git: GitClient) -> str:
    try:
        return git.status_porcelain()
    except (GitUnavailableError, NotARepositoryError):
        raise
    except GitError as exc:
        raise NotARepositoryError(f"Not a git repository: {exc}") from exc


def _assemble(
    context: AppContext,
    changes: ChangeSet,
    raw_diff: str,
    summary_label: str,
    diff_label: str,
    empty_changes_line: str,
) -> PipelineResult:
    settings = context.settings
    max_lines = max(settings.max_diff_lines, 1)
    prepared = truncate_by_lines(raw_diff, max_lines)
    stats = count_stats(prepared.text)
    if prepared.truncated:
        logger.info("Diff truncated to %d lines for analysis", max_lines)

    report = build_report(
        ReportOptions(
            files=changes,
            stats=stats,
            diff=prepared,
            max_lines=max_lines,
            classification=classify(changes),
            summary_label=summary_label,
            diff_label=diff_label,
            empty_changes_line=empty_changes_line,
            include_files_section=settings.include_files_section,
        )
    )
    return PipelineResult(report=report, changes=changes, raw_diff=raw_diff, diff=prepared)


def generate_from_staged(context: AppContext, git: Optional[GitClient] = None) -> PipelineResult:
    """Build the baseline report for the staged changes.

    Raises
    ------
    NoWorkspaceError
        If the project root is missing.
    GitUnavailableError, NotARepositoryError, GitError
        If a Git query fails.
    NoChangesError
        If nothing is staged.
    """
    _ensure_workspace(context)
    git = git or GitClient(context.repo_root)

    changes = merge_changes(parse_porcelain_status(_status(git)))
    if not changes:
        raise NoChangesError("No staged changes")
    logger.debug("Found %d staged file(s)", len(changes))

    try:
        diff_output = git.staged_diff()
    except GitError as exc:
        raise type(exc)(f"Failed to run git diff --staged: {exc}") from exc

    return _assemble(
        context,
        changes,
        diff_output,
        summary_label="Staged changes",
        diff_label="staged",
        empty_changes_line="No staged files detected.",
    )


def generate_against_base(
    context: AppContext,
    base_branch: Optional[str] = None,
    git: Optional[GitClient] = None,
) -> PipelineResult:
    """Build the baseline report for the current branch against a base branch.

    Committed changes in ``<base>...HEAD`` are merged with working-tree
    changes against ``HEAD``; the committed range takes precedence for
    files present in both.

    Raises
    ------
    NoWorkspaceError
        If the project root is missing.
    BaseBranchNotFoundError
        If neither the configured branch (nor ``master`` for ``main``)
        exists locally.
    GitUnavailableError, NotARepositoryError, GitError
        If a Git query fails.
    NoChangesError
        If there is nothing to describe.
    """
    _ensure_workspace(context)
    git = git or GitClient(context.repo_root)

    _status(git)
    base = git.resolve_base_branch(base_branch or context.settings.base_branch)

    try:
        range_diff = git.range_diff(base)
        range_files = git.range_name_status(base)
        working_diff = git.working_diff()
        working_files = git.working_name_status()
    except GitError as exc:
        raise type(exc)(f"Failed to run git diff against {base}: {exc}") from exc

    changes = merge_changes(parse_name_status(range_files), parse_name_status(working_files))
    if not changes:
        raise NoChangesError(f"No changes against {base}")
    logger.debug("Found %d changed file(s) against %s", len(changes), base)

    combined_diff = "\n".join(part for part in (range_diff, working_diff) if part)
    return _assemble(
        context,
        changes,
        combined_diff,
        summary_label=f"Changes against {base}",
        diff_label=f"against {base}",
        empty_changes_line=f"No changes detected against {base}.",
    )

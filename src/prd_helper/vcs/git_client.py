"""
Git client implementation for prd_helper.

This module wraps the read-only Git queries required by the report
pipeline. Commands are executed in the project root and return the
standard output with trailing whitespace removed. Failures are raised as
:class:`GitError` or one of its subclasses so that the CLI can tell
"Git is missing" and "this is not a repository" apart from any other
command failure. All subprocess calls go through :meth:`GitClient._run`
so unit tests can mock them easily.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import List, Optional


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class GitUnavailableError(GitError):
    """Raised when the ``git`` executable cannot be found."""

    pass


class NotARepositoryError(GitError):
    """Raised when the working directory is not inside a Git repository."""

    pass


class BaseBranchNotFoundError(GitError):
    """Raised when the configured base branch does not exist locally."""

    pass


_PLAIN_ARG = re.compile(r"^[A-Za-z0-9-]+$")

_UNAVAILABLE_MARKERS = (
    "command not found",
    "not recognized as an internal",
    "git: not found",
    "no such file or directory",
)


def shell_quote(value: str) -> str:
    """Wrap ``value`` in double quotes, escaping ``"``, ``\\``, ``$`` and backtick.

    Arguments are passed to Git as an argument vector, so this is only
    used to render commands for logs and error messages.
    """
    escaped = "".join("\\" + char if char in '"\\$`' else char for char in str(value))
    return f'"{escaped}"'


def classify_failure(message: str, returncode: Optional[int] = None) -> GitError:
    """Build the most specific :class:`GitError` for a failed command."""
    lowered = message.lower()
    if returncode == 127 or any(marker in lowered for marker in _UNAVAILABLE_MARKERS):
        return GitUnavailableError(message)
    if "not a git repository" in lowered:
        return NotARepositoryError(message)
    return GitError(message)


class GitClient:
    """Client for querying a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    @staticmethod
    def render_command(args: List[str]) -> str:
        """Render ``git <args>`` quoting every argument that needs it."""
        rendered = [arg if _PLAIN_ARG.match(arg) else shell_quote(arg) for arg in args]
        return " ".join(["git", *rendered])

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------
    def _run(self, args: List[str]) -> str:
        """Run a Git command in the repository root and return its output.

        Raises
        ------
        GitUnavailableError
            If the ``git`` executable is missing.
        NotARepositoryError
            If Git reports that the directory is not a repository.
        GitError
            For any other non-zero exit.
        """
        full_cmd = ["git"] + args
        command = self.render_command(args)
        logger.debug("Executing Git command: %s", command)
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as exc:
            # Either git itself or the working directory is missing
            logger.error("Unable to execute %s: %s", command, exc)
            raise GitUnavailableError(str(exc)) from exc

        if result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                command,
                result.stdout,
                result.stderr,
            )
            message = result.stderr.strip() or f"Command failed: {command} (exit code {result.returncode})"
            raise classify_failure(message, result.returncode)
        return result.stdout.rstrip()

    # ------------------------------------------------------------------
    # Staged changes
    # ------------------------------------------------------------------
    def status_porcelain(self) -> str:
        """Return ``git status --porcelain`` output."""
        return self._run(["status", "--porcelain"])

    def staged_diff(self) -> str:
        """Return the diff of the staged changes."""
        return self._run(["diff", "--staged", "--no-color"])

    # ------------------------------------------------------------------
    # Branch operations
    # ------------------------------------------------------------------
    def branch_exists(self, branch_name: str) -> bool:
        """Return True if ``refs/heads/<branch_name>`` exists locally.

        Availability and repository errors are propagated; any other
        failure means the ref does not exist.
        """
        try:
            self._run(["show-ref", "--verify", f"refs/heads/{branch_name}"])
        except (GitUnavailableError, NotARepositoryError):
            raise
        except GitError:
            return False
        return True

    def resolve_base_branch(self, configured_base: str) -> str:
        """Return the base branch to compare against.

        When ``configured_base`` is ``main`` and it does not exist,
        ``master`` is tried before giving up.

        Raises
        ------
        BaseBranchNotFoundError
            If no suitable branch exists locally.
        """
        if self.branch_exists(configured_base):
            return configured_base
        if configured_base == "main":
            if self.branch_exists("master"):
                logger.info("Base branch 'main' not found; using 'master'")
                return "master"
            raise BaseBranchNotFoundError("Base branch main or master not found locally")
        raise BaseBranchNotFoundError(f"Base branch {configured_base} not found locally")

    # ------------------------------------------------------------------
    # Range and working tree changes
    # ------------------------------------------------------------------
    @staticmethod
    def _range(base_branch: str) -> str:
        return f"{base_branch}...HEAD"

    def range_name_status(self, base_branch: str) -> str:
        """Return ``git diff --name-status <base>...HEAD``."""
        return self._run(["diff", "--name-status", self._range(base_branch), "--no-color"])

    def range_diff(self, base_branch: str) -> str:
        """Return ``git diff <base>...HEAD``."""
        return self._run(["diff", self._range(base_branch), "--no-color"])

    def working_name_status(self) -> str:
        """Return ``git diff --name-status HEAD`` (working tree vs HEAD)."""
        return self._run(["diff", "--name-status", "HEAD"])

    def working_diff(self) -> str:
        """Return ``git diff HEAD`` (working tree vs HEAD)."""
        return self._run(["diff", "HEAD", "--no-color"])

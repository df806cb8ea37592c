"""
Version control integration.

:mod:`prd_helper.vcs.git_client` runs the handful of read-only Git
commands the report pipeline needs and classifies their failures.
"""

from .git_client import (  # noqa: F401
    BaseBranchNotFoundError,
    GitClient,
    GitError,
    GitUnavailableError,
    NotARepositoryError,
)

"""
Per-process context shared by the pipeline and the generation pass.

The context is built once at start-up and passed explicitly to every
call instead of living in module globals. The prompt template is read
lazily and memoised; recomputing it produces the same value, so a racing
first access is harmless.
"""

from __future__ import annotations

from functools import cached_property
from pathlib import Path
from typing import Optional

from prd_helper.config.loader import Settings
from prd_helper.config.state import ConsentStore
from prd_helper.llm.prompt import load_template


class AppContext:
    """Settings, project root and persisted state for one process."""

    def __init__(
        self,
        repo_root: Path,
        settings: Optional[Settings] = None,
        consent_store: Optional[ConsentStore] = None,
    ) -> None:
        self.repo_root = repo_root
        self.settings = settings or Settings()
        self.consent_store = consent_store or ConsentStore()

    @cached_property
    def prompt_template(self) -> str:
        """The prompt template text; raises ``PromptTemplateError`` if unreadable."""
        custom = self.settings.ai.prompt_template
        return load_template(Path(custom).expanduser() if custom else None)

    def __repr__(self) -> str:
        return f"AppContext(repo_root={self.repo_root!r})"

"""
Prompt construction for the generation pass.

The prompt is a text template with ``{{name}}`` placeholders. Known
placeholders are substituted; unknown ones are left in the output as-is
so that a mismatch between template and code is visible in the preview
instead of silently producing a malformed prompt.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Mapping, Optional

from prd_helper.changes.parser import ChangeRecord
from prd_helper.diff.truncation import AiPreparedDiff


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_TEMPLATE_PATH = Path(__file__).parent / "templates" / "pr_description.md"
_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


class PromptTemplateError(Exception):
    """Raised when the prompt template cannot be read."""

    pass


def load_template(path: Optional[Path] = None) -> str:
    """Read the prompt template from ``path`` or the bundled default."""
    template_path = path or DEFAULT_TEMPLATE_PATH
    try:
        template = template_path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to read prompt template %s: %s", template_path, exc)
        raise PromptTemplateError(f"Prompt template unavailable: {template_path}") from exc
    if not template.strip():
        raise PromptTemplateError(f"Prompt template is empty: {template_path}")
    logger.debug("Loaded prompt template from %s", template_path)
    return template


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders, leaving unknown names verbatim."""

    def substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in values:
            return values[name]
        logger.warning("Prompt template placeholder '%s' has no value; leaving it in place", name)
        return match.group(0)

    return _PLACEHOLDER.sub(substitute, template)


def format_file_list(changes: Iterable[ChangeRecord]) -> str:
    lines = [f"- {record.status.value}: {record.display_path}" for record in changes]
    return "\n".join(lines) if lines else "- (none)"


def build_prompt(
    template: str,
    baseline: str,
    changes: Iterable[ChangeRecord],
    diff: AiPreparedDiff,
    tone: str,
) -> str:
    """Fill ``template`` with the report, file list and bounded diff."""
    values = {
        "baseline": baseline.strip(),
        "files": format_file_list(changes),
        "diff": diff.text,
        "truncated": "true" if diff.truncated else "false",
        "analyzed_lines": str(diff.analyzed_lines),
        "truncation_reason": diff.reason.value,
        "tone": tone,
    }
    return render_template(template, values)

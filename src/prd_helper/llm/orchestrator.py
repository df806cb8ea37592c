"""
Orchestration of the optional generation pass.

The orchestrator walks a small state machine::

    Idle -> ConsentCheck -> (PromptPreview | Confirm) -> Sending
         -> Delivered | FallenBack | Canceled

Every failure other than an explicit cancellation falls back to the
baseline report unchanged, with the error surfaced as a warning only.
Cancellation (declining consent or confirmation, or cancelling while the
request is in flight) yields no report at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

from prd_helper.changes.parser import ChangeRecord
from prd_helper.diff.truncation import truncate_by_chars, truncate_by_lines
from prd_helper.llm.prompt import PromptTemplateError, build_prompt
from prd_helper.llm.providers import (
    CancellationToken,
    GenerationCanceled,
    GenerationRequest,
    LLMError,
    TextGenerationProvider,
    create_provider,
    strip_markdown_fences,
)

if TYPE_CHECKING:
    from prd_helper.context import AppContext


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


PREVIEW_CONFIRM_TOKEN = "SEND"

DISCLOSURE = (
    "Refining the description with AI sends the draft description, the list of "
    "changed file paths and up to the configured amount of diff text to the "
    "configured text-generation endpoint. The provider's own data policies apply."
)


class GenerationState(str, Enum):
    IDLE = "Idle"
    CONSENT_CHECK = "ConsentCheck"
    PROMPT_PREVIEW = "PromptPreview"
    CONFIRM = "Confirm"
    SENDING = "Sending"
    DELIVERED = "Delivered"
    FALLEN_BACK = "FallenBack"
    CANCELED = "Canceled"


class Interaction(Protocol):
    """User-facing prompts needed by the orchestrator."""

    def accept_disclosure(self, disclosure: str) -> bool:
        """Show the data-sharing disclosure; True if the user accepts."""

    def confirm_send(self, message: str) -> bool:
        """Ask for a yes/no confirmation before sending."""

    def review_prompt(self, prompt: str, token: str) -> str:
        """Show the full prompt and return what the user typed."""


@dataclass(frozen=True)
class GenerationOutcome:
    """Terminal state of a generation pass.

    Attributes
    ----------
    state : GenerationState
        One of ``DELIVERED``, ``FALLEN_BACK`` or ``CANCELED``.
    text : Optional[str]
        Text to emit: the generated report, the baseline report, or
        ``None`` when canceled.
    warning : Optional[str]
        Reason for falling back, to show the user once.
    """

    state: GenerationState
    text: Optional[str] = None
    warning: Optional[str] = None


class GenerationOrchestrator:
    """Gate, send and post-process one generation request."""

    def __init__(
        self,
        context: "AppContext",
        interaction: Interaction,
        provider: Optional[TextGenerationProvider] = None,
        auto_confirm: bool = False,
    ) -> None:
        self.context = context
        self.interaction = interaction
        self.provider = provider
        self.auto_confirm = auto_confirm
        self.state = GenerationState.IDLE

    def _transition(self, state: GenerationState) -> None:
        logger.debug("Generation state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _finish(self, state: GenerationState, text: Optional[str] = None, warning: Optional[str] = None) -> GenerationOutcome:
        self._transition(state)
        return GenerationOutcome(state=state, text=text, warning=warning)

    def _fall_back(self, baseline: str, reason: str) -> GenerationOutcome:
        logger.warning("AI generation failed: %s; using the local description.", reason)
        return self._finish(GenerationState.FALLEN_BACK, baseline, f"AI generation failed: {reason}")

    def _check_consent(self) -> bool:
        self._transition(GenerationState.CONSENT_CHECK)
        store = self.context.consent_store
        if store.has_consent():
            return True
        if not self.interaction.accept_disclosure(DISCLOSURE):
            logger.info("AI data-sharing disclosure declined")
            return False
        try:
            store.grant()
        except OSError as exc:
            # Accepted for this run; the disclosure is shown again next time.
            logger.warning("Could not store AI consent in %s: %s", store.path, exc)
        return True

    def _confirm(self, prompt: str) -> bool:
        if self.context.settings.ai.preview_prompt:
            self._transition(GenerationState.PROMPT_PREVIEW)
            answer = self.interaction.review_prompt(prompt, PREVIEW_CONFIRM_TOKEN).strip()
            return answer == "" or answer.lower() == PREVIEW_CONFIRM_TOKEN.lower()
        self._transition(GenerationState.CONFIRM)
        if self.auto_confirm:
            return True
        ai = self.context.settings.ai
        return self.interaction.confirm_send(
            f"Send the description and diff to {ai.provider} ({ai.model}) for refinement?"
        )

    def run(
        self,
        baseline: str,
        changes: Sequence[ChangeRecord],
        raw_diff: str,
        token: Optional[CancellationToken] = None,
    ) -> GenerationOutcome:
        """Refine ``baseline`` with the configured provider.

        Parameters
        ----------
        baseline : str
            The locally assembled Markdown report.
        changes : Sequence[ChangeRecord]
            The change set the report describes.
        raw_diff : str
            The full, untruncated diff; it is bounded here by the AI
            line and character budgets.
        token : CancellationToken, optional
            Token the caller may cancel while the request is in flight.

        Returns
        -------
        GenerationOutcome
            ``DELIVERED`` with the generated text, ``FALLEN_BACK`` with
            ``baseline`` unchanged, or ``CANCELED`` with no text.
        """
        token = token or CancellationToken()
        ai = self.context.settings.ai

        if not self._check_consent():
            return self._finish(GenerationState.CANCELED)

        try:
            template = self.context.prompt_template
        except PromptTemplateError as exc:
            return self._fall_back(baseline, str(exc))

        prepared = truncate_by_chars(truncate_by_lines(raw_diff, ai.max_diff_lines), ai.max_diff_chars)
        prompt = build_prompt(template, baseline, changes, prepared, ai.tone)

        if not self._confirm(prompt):
            logger.info("AI generation not confirmed")
            return self._finish(GenerationState.CANCELED)

        self._transition(GenerationState.SENDING)
        try:
            provider = self.provider or create_provider(ai.provider)
            credential = ai.resolve_api_key()
            if not credential:
                raise LLMError(f"No API key configured (set ai.api_key or ${ai.api_key_env}).")
            request = GenerationRequest(
                prompt=prompt,
                provider_id=ai.provider,
                model=ai.model,
                endpoint_url=ai.endpoint,
                credential=credential,
                timeout_ms=ai.timeout_ms,
                cancellation_token=token,
            )
            text = strip_markdown_fences(provider.generate(request))
        except GenerationCanceled:
            logger.info("AI generation canceled")
            return self._finish(GenerationState.CANCELED)
        except Exception as exc:
            return self._fall_back(baseline, str(exc))

        if not text:
            return self._fall_back(baseline, "AI response did not include any content.")
        return self._finish(GenerationState.DELIVERED, text)

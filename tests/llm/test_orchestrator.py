import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock

from prd_helper.changes.parser import ChangeRecord, ChangeStatus
from prd_helper.config.loader import AISettings, Settings
from prd_helper.config.state import ConsentStore
from prd_helper.context import AppContext
from prd_helper.llm.orchestrator import (
    PREVIEW_CONFIRM_TOKEN,
    GenerationOrchestrator,
    GenerationState,
)
from prd_helper.llm.providers import (
    CancellationToken,
    GenerationCanceled,
    LLMError,
    TextGenerationProvider,
)


BASELINE = "## Summary\n- Staged changes in 1 file.\n"
CHANGES = [ChangeRecord(ChangeStatus.MODIFIED, "app.py", "app.py")]
DIFF = "diff --git a/app.py b/app.py\n+print('hi')\n"


class FakeInteraction:
    def __init__(self, accept=True, confirm=True, typed=""):
        self.accept = accept
        self.confirm = confirm
        self.typed = typed
        self.disclosures = []
        self.confirmations = []
        self.previews = []

    def accept_disclosure(self, disclosure):
        self.disclosures.append(disclosure)
        return self.accept

    def confirm_send(self, message):
        self.confirmations.append(message)
        return self.confirm

    def review_prompt(self, prompt, token):
        self.previews.append(prompt)
        return self.typed


class RecordingProvider(TextGenerationProvider):
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


class TestGenerationOrchestrator(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.store = ConsentStore(Path(self._tmp.name) / "state.json")

    def make_context(self, **ai_overrides) -> AppContext:
        ai = AISettings(enabled=True, api_key="sk-test", **ai_overrides)
        return AppContext(Path(self._tmp.name), Settings(ai=ai), self.store)

    def test_delivered_strips_code_fence(self) -> None:
        self.store.grant()
        provider = RecordingProvider(result="```markdown\n## Summary\n- Better\n```")
        interaction = FakeInteraction()
        outcome = GenerationOrchestrator(self.make_context(), interaction, provider).run(BASELINE, CHANGES, DIFF)
        self.assertEqual(outcome.state, GenerationState.DELIVERED)
        self.assertEqual(outcome.text, "## Summary\n- Better")
        self.assertIsNone(outcome.warning)
        self.assertEqual(interaction.disclosures, [])
        self.assertEqual(len(interaction.confirmations), 1)
        request = provider.requests[0]
        self.assertEqual(request.credential, "sk-test")
        self.assertIn("- Modified: app.py", request.prompt)
        self.assertIn("+print('hi')", request.prompt)

    def test_first_use_asks_for_consent_and_persists_it(self) -> None:
        interaction = FakeInteraction(accept=True)
        orchestrator = GenerationOrchestrator(self.make_context(), interaction, RecordingProvider(result="ok"))
        outcome = orchestrator.run(BASELINE, CHANGES, DIFF)
        self.assertEqual(outcome.state, GenerationState.DELIVERED)
        self.assertEqual(len(interaction.disclosures), 1)
        self.assertTrue(self.store.has_consent())

    def test_unwritable_consent_file_still_proceeds(self) -> None:
        blocker = Path(self._tmp.name) / "blocker"
        blocker.write_text("not a directory")
        self.store = ConsentStore(blocker / "state.json")
        interaction = FakeInteraction(accept=True)
        provider = RecordingProvider(result="ok")
        outcome = GenerationOrchestrator(self.make_context(), interaction, provider).run(BASELINE, CHANGES, DIFF)
        self.assertEqual(outcome.state, GenerationState.DELIVERED)
        self.assertEqual(outcome.text, "ok")
        self.assertEqual(len(provider.requests), 1)
        self.assertFalse(self.store.has_consent())

    def test_consent_refused_cancels_without_calling(self) -> None:
        provider = RecordingProvider(result="ok")
        interaction = FakeInteraction(accept=False)
        outcome = GenerationOrchestrator(self.make_context(), interaction, provider).run(BASELINE, CHANGES, DIFF)
        self.assertEqual(outcome.state, GenerationState.CANCELED)
        self.assertIsNone(outcome.text)
        self.assertEqual(provider.requests, [])
        self.assertFalse(self.store.has_consent())

    def test_confirmation_declined(self) -> None:
        self.store.grant()
        provider = RecordingProvider(result="ok")
        outcome = GenerationOrchestrator(self.make_context(), FakeInteraction(confirm=False), provider).run(BASELINE, CHANGES, DIFF)
        self.assertEqual(outcome.state, GenerationState.CANCELED)
        self.assertEqual(provider.requests, [])

    def test_auto_confirm_skips_question(self) -> None:
        self.store.grant()
        interaction = FakeInteraction(confirm=False)
        orchestrator = GenerationOrchestrator(self.make_context(), interaction, RecordingProvider(result="ok"), auto_confirm=True)
        self.assertEqual(orchestrator.run(BASELINE, CHANGES, DIFF).state, GenerationState.DELIVERED)
        self.assertEqual(interaction.confirmations, [])

    def test_preview_accepts_empty_or_token(self) -> None:
        self.store.grant()
        for typed in ("", "  ", PREVIEW_CONFIRM_TOKEN, PREVIEW_CONFIRM_TOKEN.lower()):
            with self.subTest(typed=typed):
                interaction = FakeInteraction(typed=typed)
                context = self.make_context(preview_prompt=True)
                outcome = GenerationOrchestrator(context, interaction, RecordingProvider(result="ok")).run(BASELINE, CHANGES, DIFF)
                self.assertEqual(outcome.state, GenerationState.DELIVERED)
                self.assertEqual(len(interaction.previews), 1)
                self.assertEqual(interaction.confirmations, [])

    def test_preview_rejects_anything_else(self) -> None:
        self.store.grant()
        provider = RecordingProvider(result="ok")
        context = self.make_context(preview_prompt=True)
        outcome = GenerationOrchestrator(context, FakeInteraction(typed="no"), provider).run(BASELINE, CHANGES, DIFF)
        self.assertEqual(outcome.state, GenerationState.CANCELED)
        self.assertEqual(provider.requests, [])

    def test_provider_failure_falls_back_to_baseline(self) -> None:
        self.store.grant()
        for error in (LLMError("AI request failed (500)."), RuntimeError("boom")):
            with self.subTest(error=error):
                provider = RecordingProvider(error=error)
                outcome = GenerationOrchestrator(self.make_context(), FakeInteraction(), provider).run(BASELINE, CHANGES, DIFF)
                self.assertEqual(outcome.state, GenerationState.FALLEN_BACK)
                self.assertEqual(outcome.text, BASELINE)
                self.assertIn(str(error), outcome.warning)

    def test_empty_response_falls_back(self) -> None:
        self.store.grant()
        outcome = GenerationOrchestrator(self.make_context(), FakeInteraction(), RecordingProvider(result="  ")).run(BASELINE, CHANGES, DIFF)
        self.assertEqual(outcome.state, GenerationState.FALLEN_BACK)
        self.assertEqual(outcome.text, BASELINE)

    def test_cancellation_yields_nothing(self) -> None:
        self.store.grant()
        provider = RecordingProvider(error=GenerationCanceled("Generation canceled"))
        outcome = GenerationOrchestrator(self.make_context(), FakeInteraction(), provider).run(BASELINE, CHANGES, DIFF)
        self.assertEqual(outcome.state, GenerationState.CANCELED)
        self.assertIsNone(outcome.text)

    def test_token_is_passed_to_provider(self) -> None:
        self.store.grant()
        token = CancellationToken()
        provider = RecordingProvider(result="ok")
        GenerationOrchestrator(self.make_context(), FakeInteraction(), provider).run(BASELINE, CHANGES, DIFF, token)
        self.assertIs(provider.requests[0].cancellation_token, token)

    def test_missing_credential_falls_back(self) -> None:
        self.store.grant()
        context = AppContext(
            Path(self._tmp.name),
            Settings(ai=AISettings(enabled=True, api_key_env="PRD_HELPER_TEST_UNSET_KEY")),
            self.store,
        )
        provider = RecordingProvider(result="ok")
        outcome = GenerationOrchestrator(context, FakeInteraction(), provider).run(BASELINE, CHANGES, DIFF)
        self.assertEqual(outcome.state, GenerationState.FALLEN_BACK)
        self.assertIn("No API key", outcome.warning)
        self.assertEqual(provider.requests, [])

    def test_unsupported_provider_falls_back(self) -> None:
        self.store.grant()
        context = self.make_context(provider="mystery")
        outcome = GenerationOrchestrator(context, FakeInteraction()).run(BASELINE, CHANGES, DIFF)
        self.assertEqual(outcome.state, GenerationState.FALLEN_BACK)
        self.assertIn("Unsupported AI provider", outcome.warning)

    def test_missing_template_falls_back_before_confirmation(self) -> None:
        self.store.grant()
        interaction = FakeInteraction()
        context = self.make_context(prompt_template="/nonexistent/template.md")
        outcome = GenerationOrchestrator(context, interaction, RecordingProvider(result="ok")).run(BASELINE, CHANGES, DIFF)
        self.assertEqual(outcome.state, GenerationState.FALLEN_BACK)
        self.assertEqual(interaction.confirmations, [])

    def test_diff_budgets_apply_to_prompt(self) -> None:
        self.store.grant()
        provider = RecordingProvider(result="ok")
        context = self.make_context(max_diff_lines=1, max_diff_chars=0)
        GenerationOrchestrator(context, FakeInteraction(), provider).run(BASELINE, CHANGES, DIFF)
        prompt = provider.requests[0].prompt
        self.assertNotIn("+print('hi')", prompt)
        self.assertIn("reason: maxLines", prompt)


class TestPromptTemplateMemoisation(unittest.TestCase):
    def test_template_is_read_once(self) -> None:
        context = AppContext(Path("."), Settings())
        with unittest.mock.patch("prd_helper.context.load_template", Mock(return_value="T")) as loader:
            self.assertEqual(context.prompt_template, "T")
            self.assertEqual(context.prompt_template, "T")
        loader.assert_called_once_with(None)


if __name__ == "__main__":
    unittest.main()

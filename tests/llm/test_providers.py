import json
import unittest
from types import SimpleNamespace
from unittest.mock import patch

import requests

from prd_helper.llm.providers import (
    SYSTEM_PERSONA,
    CancellationToken,
    EmptyResponseError,
    GenerationCanceled,
    GenerationRequest,
    InvalidResponseError,
    LLMError,
    OpenAICompatibleProvider,
    UnsupportedProviderError,
    create_provider,
    strip_markdown_fences,
)


class DummyResponse(SimpleNamespace):
    """Minimal stand-in for a streamed ``requests.Response``."""

    closed = False

    def iter_content(self, chunk_size=1):
        data = self.text.encode("utf-8")
        for start in range(0, len(data), 4):
            yield data[start:start + 4]

    def close(self):
        self.closed = True


def make_request(token=None) -> GenerationRequest:
    return GenerationRequest(
        prompt="Describe this",
        provider_id="openai",
        model="gpt-test",
        endpoint_url="https://example.test/v1/chat/completions",
        credential="sk-test",
        timeout_ms=5000,
        cancellation_token=token or CancellationToken(),
    )


class TestOpenAICompatibleProvider(unittest.TestCase):
    def test_generate_success(self) -> None:
        captured = {}

        def fake_post(url, *_args, **kwargs):
            captured["url"] = url
            captured.update(kwargs)
            body = {"choices": [{"message": {"content": "## Summary\n- Done"}}]}
            return DummyResponse(status_code=200, text=json.dumps(body))

        with patch("requests.post", fake_post):
            text = OpenAICompatibleProvider().generate(make_request())

        self.assertEqual(text, "## Summary\n- Done")
        self.assertEqual(captured["url"], "https://example.test/v1/chat/completions")
        self.assertEqual(captured["headers"]["Authorization"], "Bearer sk-test")
        self.assertEqual(captured["timeout"], 5.0)
        self.assertEqual(
            captured["json"],
            {
                "model": "gpt-test",
                "messages": [
                    {"role": "system", "content": SYSTEM_PERSONA},
                    {"role": "user", "content": "Describe this"},
                ],
                "temperature": 0.2,
            },
        )

    def test_content_is_returned_verbatim(self) -> None:
        content = "- Adds <reasoning>x</reasoning> parsing to the XML reader.\n<think>kept</think>"

        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text=json.dumps({"choices": [{"message": {"content": content}}]}))

        with patch("requests.post", fake_post):
            self.assertEqual(OpenAICompatibleProvider().generate(make_request()), content)

    def test_legacy_text_field(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=201, text=json.dumps({"choices": [{"text": "plain"}]}))

        with patch("requests.post", fake_post):
            self.assertEqual(OpenAICompatibleProvider().generate(make_request()), "plain")

    def test_error_status_uses_error_message(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=401, text=json.dumps({"error": {"message": "Invalid API key"}}))

        with patch("requests.post", fake_post):
            with self.assertRaises(LLMError) as ctx:
                OpenAICompatibleProvider().generate(make_request())
        self.assertEqual(str(ctx.exception), "Invalid API key")
        self.assertEqual(ctx.exception.status_code, 401)

    def test_error_status_without_message(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=503, text="{}")

        with patch("requests.post", fake_post):
            with self.assertRaises(LLMError) as ctx:
                OpenAICompatibleProvider().generate(make_request())
        self.assertEqual(str(ctx.exception), "AI request failed (503).")

    def test_invalid_json(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text="not json")

        with patch("requests.post", fake_post):
            with self.assertRaises(InvalidResponseError):
                OpenAICompatibleProvider().generate(make_request())

    def test_empty_content(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text=json.dumps({"choices": [{"message": {"content": ""}}]}))

        with patch("requests.post", fake_post):
            with self.assertRaises(EmptyResponseError):
                OpenAICompatibleProvider().generate(make_request())

    def test_connection_error(self) -> None:
        with patch("requests.post", side_effect=requests.ConnectionError("refused")):
            with self.assertRaises(LLMError):
                OpenAICompatibleProvider().generate(make_request())

    def test_timeout(self) -> None:
        with patch("requests.post", side_effect=requests.Timeout("slow")):
            with self.assertRaises(LLMError) as ctx:
                OpenAICompatibleProvider().generate(make_request())
        self.assertIn("timed out", str(ctx.exception))

    def test_cancelled_before_sending(self) -> None:
        token = CancellationToken()
        token.cancel()
        with patch("requests.post") as mock_post:
            with self.assertRaises(GenerationCanceled):
                OpenAICompatibleProvider().generate(make_request(token))
        mock_post.assert_not_called()

    def test_cancelled_while_receiving(self) -> None:
        token = CancellationToken()
        response = DummyResponse(status_code=200, text=json.dumps({"choices": [{"text": "a long answer"}]}))
        original = response.iter_content

        def cancelling_iter(chunk_size=1):
            for index, chunk in enumerate(original(chunk_size)):
                if index == 1:
                    token.cancel()
                yield chunk

        response.iter_content = cancelling_iter
        with patch("requests.post", return_value=response):
            with self.assertRaises(GenerationCanceled):
                OpenAICompatibleProvider().generate(make_request(token))
        self.assertTrue(response.closed)

    def test_keyboard_interrupt_cancels(self) -> None:
        token = CancellationToken()
        with patch("requests.post", side_effect=KeyboardInterrupt):
            with self.assertRaises(GenerationCanceled):
                OpenAICompatibleProvider().generate(make_request(token))
        self.assertTrue(token.is_cancelled)


class TestProviderRegistry(unittest.TestCase):
    def test_openai_is_registered(self) -> None:
        self.assertIsInstance(create_provider(" OpenAI "), OpenAICompatibleProvider)

    def test_unknown_provider(self) -> None:
        with self.assertRaises(UnsupportedProviderError) as ctx:
            create_provider("mystery")
        self.assertIn("mystery", str(ctx.exception))


class TestResponseCleanup(unittest.TestCase):
    def test_strip_markdown_fences(self) -> None:
        cases = [
            ("```markdown\n## Summary\n- x\n```", "## Summary\n- x"),
            ("  ```\nbody\n```  ", "body"),
            ("```only```", "```only```"),
            ("```\n```", "```\n```"),
            ("no fence", "no fence"),
        ]
        for raw, expected in cases:
            with self.subTest(raw=raw):
                self.assertEqual(strip_markdown_fences(raw), expected)


if __name__ == "__main__":
    unittest.main()

"""
Text-generation providers.

A provider turns a :class:`GenerationRequest` into text. Only an
OpenAI-compatible chat-completions provider is implemented; others are
added by registering a :class:`TextGenerationProvider` subclass in
:data:`PROVIDERS`. On error conditions (HTTP errors, timeouts, malformed
responses) an :class:`LLMError` is raised. Cancellation is cooperative:
the :class:`CancellationToken` is checked before the request is sent and
while the response body is received, and pressing Ctrl-C during the call
cancels it.
"""

from __future__ import annotations

import json
import logging
import re
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type

import requests


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


SYSTEM_PERSONA = "You are a senior engineer writing concise, reviewer-friendly PR descriptions."
TEMPERATURE = 0.2
_CHUNK_SIZE = 8192


class LLMError(Exception):
    """Raised when communication with the text-generation service fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidResponseError(LLMError):
    """Raised when the service answers with something that is not JSON."""

    pass


class EmptyResponseError(LLMError):
    """Raised when the service answers without any generated content."""

    pass


class UnsupportedProviderError(LLMError):
    """Raised for a provider identifier with no registered implementation."""

    pass


class GenerationCanceled(Exception):
    """Raised when the user cancels an in-flight generation request."""

    pass


class CancellationToken:
    """Cooperative cancellation flag shared between the caller and a provider.

    The token may be cancelled from any thread; providers only observe it
    at their suspension points.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCanceled("Generation canceled")


@dataclass(frozen=True)
class GenerationRequest:
    """Everything a provider needs for one call."""

    prompt: str
    provider_id: str
    model: str
    endpoint_url: str
    credential: str
    timeout_ms: int
    cancellation_token: CancellationToken = field(default_factory=CancellationToken, compare=False)


def strip_markdown_fences(text: str) -> str:
    """Drop a surrounding Markdown code fence from ``text``.

    Only applies when the trimmed text starts with a fence and has more
    than two lines; the first and last line are removed.
    """
    trimmed = text.strip()
    if not trimmed.startswith("```"):
        return trimmed
    lines = re.split(r"\r?\n", trimmed)
    if len(lines) <= 2:
        return trimmed
    return "\n".join(lines[1:-1]).strip()


class TextGenerationProvider(ABC):
    """Capability to generate text from a prompt."""

    @abstractmethod
    def generate(self, request: GenerationRequest) -> str:
        """Return generated text for ``request``.

        Raises
        ------
        LLMError
            If the request fails for any reason other than cancellation.
        GenerationCanceled
            If ``request.cancellation_token`` was cancelled before the
            response was fully received.
        """


class OpenAICompatibleProvider(TextGenerationProvider):
    """Provider for OpenAI-style ``/chat/completions`` endpoints."""

    def _payload(self, request: GenerationRequest) -> Dict[str, Any]:
        return {
            "model": request.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PERSONA},
                {"role": "user", "content": request.prompt},
            ],
            "temperature": TEMPERATURE,
        }

    def _read_body(self, response: requests.Response, request: GenerationRequest, deadline: float) -> str:
        chunks = []
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            request.cancellation_token.raise_if_cancelled()
            if time.monotonic() > deadline:
                raise LLMError("AI request timed out.")
            if chunk:
                chunks.append(chunk)
        return b"".join(chunks).decode("utf-8", errors="replace")

    def _post(self, request: GenerationRequest) -> requests.Response:
        timeout = request.timeout_ms / 1000.0
        logger.debug(
            "Sending generation request to %s (model=%s, prompt=%d chars)",
            request.endpoint_url,
            request.model,
            len(request.prompt),
        )
        try:
            return requests.post(
                request.endpoint_url,
                json=self._payload(request),
                headers={
                    "Authorization": f"Bearer {request.credential}",
                    "Content-Type": "application/json",
                },
                timeout=timeout,
                stream=True,
            )
        except requests.Timeout as exc:
            logger.error("Generation request timed out: %s", exc)
            raise LLMError("AI request timed out.") from exc
        except requests.RequestException as exc:
            logger.error("Failed to connect to text-generation service: %s", exc)
            raise LLMError(str(exc)) from exc

    def generate(self, request: GenerationRequest) -> str:
        token = request.cancellation_token
        token.raise_if_cancelled()
        deadline = time.monotonic() + request.timeout_ms / 1000.0
        try:
            response = self._post(request)
            try:
                body = self._read_body(response, request, deadline)
            except requests.RequestException as exc:
                logger.error("Failed to read generation response: %s", exc)
                raise LLMError(str(exc)) from exc
            finally:
                response.close()
        except KeyboardInterrupt as exc:
            token.cancel()
            raise GenerationCanceled("Generation canceled") from exc

        try:
            data = json.loads(body)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse generation response: %s", exc)
            raise InvalidResponseError("AI response was not valid JSON.", response.status_code) from exc

        status = response.status_code
        if status < 200 or status >= 300:
            message = None
            if isinstance(data, dict) and isinstance(data.get("error"), dict):
                message = data["error"].get("message")
            logger.error("Text-generation service returned status %s: %s", status, body)
            raise LLMError(message or f"AI request failed ({status}).", status)

        content = _extract_content(data)
        if not content:
            raise EmptyResponseError("AI response did not include any content.", status)
        return content


def _extract_content(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    first = choices[0]
    message = first.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str) and message["content"]:
        return message["content"]
    text = first.get("text")
    return text if isinstance(text, str) else ""


PROVIDERS: Dict[str, Type[TextGenerationProvider]] = {
    "openai": OpenAICompatibleProvider,
}


def create_provider(provider_id: str) -> TextGenerationProvider:
    """Return the provider registered under ``provider_id`` (case-insensitive).

    Raises
    ------
    UnsupportedProviderError
        If no provider is registered for the identifier.
    """
    normalized = provider_id.strip().lower()
    provider_cls = PROVIDERS.get(normalized)
    if provider_cls is None:
        raise UnsupportedProviderError(f"Unsupported AI provider: {provider_id}")
    return provider_cls()

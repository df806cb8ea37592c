"""
Optional text-generation pass for prd_helper.

This package contains the provider abstraction and the
OpenAI-compatible implementation (:mod:`prd_helper.llm.providers`), the
prompt template handling (:mod:`prd_helper.llm.prompt`) and the
:class:`GenerationOrchestrator` that gates the remote call behind consent
and confirmation and falls back to the local report on failure.
"""

from .orchestrator import GenerationOrchestrator, GenerationOutcome, GenerationState  # noqa: F401
from .providers import (  # noqa: F401
    CancellationToken,
    GenerationCanceled,
    GenerationRequest,
    LLMError,
    TextGenerationProvider,
    UnsupportedProviderError,
    create_provider,
)

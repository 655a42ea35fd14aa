"""Answer generation clients."""

from .client import (
    GeminiClient,
    HuggingFaceClient,
    LLMClient,
    LLMConfig,
    LLMResponse,
    create_client,
)

__all__ = [
    "GeminiClient",
    "HuggingFaceClient",
    "LLMClient",
    "LLMConfig",
    "LLMResponse",
    "create_client",
]

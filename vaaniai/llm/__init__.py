"""
Completion client package: system prompt, OpenRouter client, response cleanup.
"""

from .client import (
    CompletionClient,
    CompletionResponse,
    OpenRouterClient,
    build_messages,
    test_connection,
)
from .prompts import SYSTEM_PROMPT
from .text_processing import clean_model_response, estimate_tokens

__all__ = [
    "CompletionClient",
    "CompletionResponse",
    "OpenRouterClient",
    "SYSTEM_PROMPT",
    "build_messages",
    "clean_model_response",
    "estimate_tokens",
    "test_connection",
]

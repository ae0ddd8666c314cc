"""
Completion client for the OpenRouter chat completions API.

The pipeline only talks to the CompletionClient interface. OpenRouterClient
is built per request from the current admin configuration, so a key or
model change made in the back-office applies to the very next message.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from ..config import settings
from ..config.constants import APP_TITLE, DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from ..exceptions import ConfigMissingError, UpstreamUnavailableError
from ..types import ConnectionTestDict
from .prompts import CONNECTION_TEST_PROMPT, SYSTEM_PROMPT
from .text_processing import clean_model_response, estimate_tokens

logger = logging.getLogger(__name__)

# Sampling parameters that are not admin-configurable
TOP_P = 0.9
FREQUENCY_PENALTY = 0.1
PRESENCE_PENALTY = 0.1


@dataclass
class CompletionResponse:
    """Reply from a completion backend."""

    text: str
    model: str
    tokens_estimate: int = 0
    raw: Any = None


def build_messages(text: str, image: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Chat messages for one request: the system prompt and the user's text.

    With an image (URL or base64 data URL) the user content becomes a
    multi-part list with a text part and an image_url part.
    """
    if image:
        user_content: Any = [
            {"type": "text", "text": text},
            {"type": "image_url", "image_url": {"url": image}},
        ]
    else:
        user_content = text

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_content},
    ]


class CompletionClient(ABC):
    """Interface the message pipeline sends through."""

    @abstractmethod
    async def complete(self, text: str) -> CompletionResponse:
        """Reply to a text message. Raises UpstreamUnavailableError on any failure."""
        ...

    @abstractmethod
    async def complete_with_image(self, text: str, image: str) -> CompletionResponse:
        """Reply to a text message with an attached image, using the vision model."""
        ...


class OpenRouterClient(CompletionClient):
    """OpenRouter backend using the OpenAI SDK."""

    def __init__(
        self,
        api_key: str,
        model: str,
        vision_model: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        if not api_key:
            raise ConfigMissingError()

        self.model = model
        self.vision_model = vision_model or model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or settings.openrouter_base_url,
            timeout=timeout or settings.completion_timeout_seconds,
            max_retries=0,
            default_headers={
                "HTTP-Referer": settings.frontend_url,
                "X-Title": APP_TITLE,
            },
        )

    @classmethod
    def from_config(cls, config) -> "OpenRouterClient":
        """Build a client from an AdminApiConfig row."""
        if config is None or not (config.api_key or "").strip():
            raise ConfigMissingError()
        return cls(
            api_key=config.api_key.strip(),
            model=config.selected_model,
            vision_model=config.vision_model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )

    async def complete(self, text: str) -> CompletionResponse:
        return await self._create(self.model, build_messages(text))

    async def complete_with_image(self, text: str, image: str) -> CompletionResponse:
        return await self._create(self.vision_model, build_messages(text, image))

    async def _create(self, model: str, messages: List[Dict[str, Any]]) -> CompletionResponse:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                top_p=TOP_P,
                frequency_penalty=FREQUENCY_PENALTY,
                presence_penalty=PRESENCE_PENALTY,
            )
        except openai.APIStatusError as e:
            logger.error(f"[LLM] OpenRouter returned {e.status_code} for model {model}: {e.message}")
            raise UpstreamUnavailableError(f"API request failed: {e.status_code}", status_code=e.status_code) from e
        except openai.APITimeoutError as e:
            raise UpstreamUnavailableError(f"Timeout calling model {model}") from e
        except openai.APIError as e:
            raise UpstreamUnavailableError(f"Error calling model {model}: {e}") from e

        if not response.choices or response.choices[0].message is None:
            raise UpstreamUnavailableError("Invalid response format from API")

        content = response.choices[0].message.content
        if not content or not content.strip():
            raise UpstreamUnavailableError("Empty response from API")

        text = clean_model_response(content)
        return CompletionResponse(text=text, model=model, tokens_estimate=estimate_tokens(text), raw=response)


async def test_connection(client: CompletionClient) -> ConnectionTestDict:
    """
    Send a short greeting through the client and report whether it worked.

    Used by the admin "test API" action; failures are reported, not raised.
    """
    start_time = time.time()
    try:
        response = await client.complete(CONNECTION_TEST_PROMPT)
    except UpstreamUnavailableError as e:
        return {
            "success": False,
            "response_time": round(time.time() - start_time, 3),
            "error": e.detail,
        }

    return {
        "success": True,
        "model": response.model,
        "response_time": round(time.time() - start_time, 3),
        "reply_preview": response.text[:100],
    }

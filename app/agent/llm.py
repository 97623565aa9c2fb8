"""
Generation client: OpenAI (primary) or Hugging Face router (fallback).
When OPENAI_API_KEY is set, uses OpenAI chat completions; otherwise uses HF router.

Provider failures are mapped to typed errors (RateLimitedError, QuotaExceededError,
GenerationUnavailableError). No local retries: the caller decides what to do.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
import openai
from openai import OpenAI

from app.core.config import (
    HF_API_KEY,
    HF_CHAT_URL,
    HF_LLM_MODEL,
    LLM_API_TIMEOUT,
    LLM_MAX_TOKENS,
    OPENAI_API_KEY,
    OPENAI_LLM_MODEL,
)
from app.core.errors import GenerationUnavailableError, QuotaExceededError, RateLimitedError

logger = logging.getLogger(__name__)

# messages: list of {"role": "system"|"user"|"assistant", "content": str}
Messages = list[dict[str, str]]


@dataclass
class Generation:
    """One completion: the answer text plus the provider's raw payload."""

    text: str
    raw: dict[str, Any] = field(default_factory=dict)
    model: str | None = None


class GenerationClient(Protocol):
    def generate(self, messages: Messages) -> Generation: ...


def _error_for_status(status: int, detail: str) -> Exception:
    if status == 429:
        return RateLimitedError("Rate limit exceeded. Please try again later.")
    if status == 402:
        return QuotaExceededError("Service quota exceeded. Please contact support.")
    return GenerationUnavailableError(f"Generation service error ({status}): {detail[:200]}")


class OpenAIGenerationClient:
    """OpenAI chat completions. Client-side timeout; retries disabled."""

    def __init__(
        self,
        api_key: str = OPENAI_API_KEY,
        model: str = OPENAI_LLM_MODEL,
        timeout: float = LLM_API_TIMEOUT,
        max_tokens: int = LLM_MAX_TOKENS,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def generate(self, messages: Messages) -> Generation:
        logger.info("[llm:openai] IN  messages=%d model=%s", len(messages), self.model)
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
            )
        except openai.RateLimitError as e:
            if getattr(e, "code", None) == "insufficient_quota":
                raise QuotaExceededError("Service quota exceeded. Please contact support.") from e
            raise RateLimitedError("Rate limit exceeded. Please try again later.") from e
        except openai.APIStatusError as e:
            logger.warning("[llm:openai] status error %s", e.status_code)
            raise _error_for_status(e.status_code, str(e)) from e
        except openai.APIError as e:
            logger.warning("[llm:openai] request failed: %s", e)
            raise GenerationUnavailableError("Generation service unavailable") from e
        msg = response.choices[0].message if response.choices else None
        out = ((msg.content if msg else None) or "").strip()
        if not out:
            raise GenerationUnavailableError("Generation service returned an empty answer")
        logger.info("[llm:openai] OUT response_len=%d", len(out))
        return Generation(text=out, raw=response.model_dump(), model=response.model or self.model)


class HFGenerationClient:
    """Hugging Face router chat completions over httpx."""

    def __init__(
        self,
        api_key: str = HF_API_KEY,
        model: str = HF_LLM_MODEL,
        url: str = HF_CHAT_URL,
        timeout: float = LLM_API_TIMEOUT,
        max_tokens: int = LLM_MAX_TOKENS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.url = url
        self.timeout = timeout
        self.max_tokens = max_tokens
        self._transport = transport

    def generate(self, messages: Messages) -> Generation:
        logger.info("[llm:hf] IN  messages=%d model=%s", len(messages), self.model)
        if not self.api_key:
            logger.error("[llm:hf] no HF_API_KEY")
            raise GenerationUnavailableError("Service temporarily unavailable")
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        payload = {"model": self.model, "messages": messages, "max_tokens": self.max_tokens}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("[llm:hf] request failed: %s", e)
            raise GenerationUnavailableError("Generation service unavailable") from e
        if response.status_code != 200:
            logger.warning("[llm:hf] HF LLM error %s: %s", response.status_code, response.text[:200])
            raise _error_for_status(response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as e:
            raise GenerationUnavailableError("Generation service returned invalid JSON") from e
        choices = data.get("choices") or []
        out = ""
        if choices and isinstance(choices[0], dict):
            msg = choices[0].get("message") or {}
            out = (msg.get("content") or "").strip()
        if not out:
            raise GenerationUnavailableError("Generation service returned an empty answer")
        logger.info("[llm:hf] OUT response_len=%d", len(out))
        return Generation(text=out, raw=data, model=data.get("model") or self.model)


def build_generation_client() -> GenerationClient:
    """OpenAI when OPENAI_API_KEY is set, else Hugging Face router."""
    if OPENAI_API_KEY:
        return OpenAIGenerationClient()
    return HFGenerationClient()

"""Generation provider interface and its OpenAI binding."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from openai import AsyncOpenAI

from src.config import settings
from src.modules.assistant.constants import MAX_OUTPUT_TOKENS, TEMPERATURE, TOP_K, TOP_P

logger = logging.getLogger(__name__)


@dataclass
class GenerationRequest:
    system_instruction: str
    messages: list[dict[str, str]] = field(default_factory=list)
    temperature: float = TEMPERATURE
    max_output_tokens: int = MAX_OUTPUT_TOKENS
    top_p: float = TOP_P
    top_k: int = TOP_K


@dataclass
class GenerationResult:
    text: str | None


class GenerationProvider(Protocol):
    async def generate(self, request: GenerationRequest) -> GenerationResult: ...


class OpenAIGenerationProvider:
    """Chat completions backend. ``top_k`` has no OpenAI counterpart and is ignored."""

    def __init__(self, client: AsyncOpenAI | None = None, model: str | None = None) -> None:
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.generation_timeout_seconds,
            max_retries=0,
        )
        self.model = model or settings.openai_model

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        messages = [{"role": "system", "content": request.system_instruction}, *request.messages]
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=request.temperature,
            max_tokens=request.max_output_tokens,
            top_p=request.top_p,
        )
        if not response.choices:
            logger.warning("Generation returned no choices (model=%s)", self.model)
            return GenerationResult(text=None)
        return GenerationResult(text=response.choices[0].message.content)

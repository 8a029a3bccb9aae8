from __future__ import annotations
from typing import Optional

import httpx
from google import genai
from google.genai import errors, types

from repo_health.core.config import settings
from repo_health.core.errors import GenerationError
from repo_health.services.llm.base import SYSTEM_INSTRUCTION, LLMRateLimitError


class GeminiChatLLM:
    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ):
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_CHAT_MODEL
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.max_output_tokens = max_output_tokens or settings.LLM_MAX_OUTPUT_TOKENS
        # without a key generate() reports the missing setting
        self.client = genai.Client(api_key=self.api_key) if self.api_key else None

    def _config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            response_mime_type="application/json",
        )

    async def generate(self, prompt: str) -> str:
        if self.client is None:
            raise GenerationError("GEMINI_API_KEY is not set", provider=self.name)

        try:
            res = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._config(),
            )
        except errors.APIError as e:
            code = getattr(e, "code", None)
            msg = str(e)
            if code == 429:
                raise LLMRateLimitError(
                    "Gemini quota or rate limit exceeded. Wait and retry, or enable billing for the key.",
                    provider=self.name,
                    details=msg,
                ) from e
            if "API_KEY_INVALID" in msg or code in (401, 403):
                raise GenerationError(
                    "Invalid Gemini API key. Create a new key at https://aistudio.google.com/apikey",
                    provider=self.name,
                    details=msg,
                ) from e
            if code == 404:
                raise GenerationError(
                    f"Gemini model {self.model} is not available for this key",
                    provider=self.name,
                    details=msg,
                ) from e
            raise GenerationError(f"Gemini Error: {msg}", provider=self.name, details=msg) from e
        except httpx.HTTPError as e:
            raise GenerationError(
                f"Network error while calling Gemini: {e.__class__.__name__}",
                provider=self.name,
                details=str(e),
            ) from e

        return (res.text or "").strip()

from __future__ import annotations
from typing import Optional

import httpx

from repo_health.core.config import settings
from repo_health.core.errors import GenerationError
from repo_health.services.llm.base import SYSTEM_INSTRUCTION, LLMRateLimitError


class GroqChatLLM:
    """Groq chat completions over its OpenAI-compatible REST endpoint."""

    name = "groq"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.GROQ_API_KEY
        self.model = model or settings.GROQ_MODEL
        self.url = f"{(base_url or settings.GROQ_BASE_URL).rstrip('/')}/chat/completions"
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self._transport = transport

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise GenerationError("GROQ_API_KEY is not set", provider=self.name)

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt},
            ],
            "temperature": settings.LLM_TEMPERATURE,
            "max_tokens": settings.LLM_MAX_OUTPUT_TOKENS,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise GenerationError(
                f"Network error while calling Groq: {e.__class__.__name__}",
                provider=self.name,
                details=str(e),
            ) from e

        if r.status_code == 401:
            raise GenerationError(
                "Invalid Groq API key. Check GROQ_API_KEY.",
                provider=self.name,
                details=r.text[:300],
            )
        if r.status_code == 429:
            raise LLMRateLimitError(
                "Groq rate limit or quota exceeded. Wait and retry.",
                provider=self.name,
                details=r.text[:300],
            )
        if r.status_code >= 400:
            raise GenerationError(
                f"Groq API Error: status={r.status_code}",
                provider=self.name,
                details=r.text[:300],
            )

        try:
            data = r.json()
        except ValueError as e:
            raise GenerationError(
                "Groq returned a response that is not JSON",
                provider=self.name,
                details=r.text[:300],
            ) from e
        choices = data.get("choices") or []
        if not choices:
            return ""
        return ((choices[0].get("message") or {}).get("content") or "").strip()

from __future__ import annotations
from typing import Optional

import httpx

from repo_health.core.config import settings
from repo_health.core.errors import GenerationError
from repo_health.services.llm.base import SYSTEM_INSTRUCTION


class OllamaLLM:
    name = "ollama"

    def __init__(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.model = model or settings.OLLAMA_MODEL
        self.url = f"{(base_url or settings.OLLAMA_BASE_URL).rstrip('/')}/api/generate"
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self._transport = transport

    async def generate(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "system": SYSTEM_INSTRUCTION,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {
                "temperature": settings.LLM_TEMPERATURE,
                "num_predict": settings.LLM_MAX_OUTPUT_TOKENS,
            },
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise GenerationError(
                f"Could not reach Ollama at {self.url}: {e.__class__.__name__}",
                provider=self.name,
                details=str(e),
            ) from e

        if r.status_code >= 400:
            raise GenerationError(
                f"Ollama error status={r.status_code}",
                provider=self.name,
                details=r.text[:300],
            )

        try:
            data = r.json()
        except ValueError as e:
            raise GenerationError(
                "Ollama returned a response that is not JSON",
                provider=self.name,
                details=r.text[:300],
            ) from e
        return (data.get("response") or "").strip()

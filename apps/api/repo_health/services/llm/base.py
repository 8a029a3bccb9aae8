from __future__ import annotations

from typing import Protocol

from repo_health.core.errors import GenerationError

SYSTEM_INSTRUCTION = (
    "You are an expert Senior Software Architect specializing in code analysis. "
    "You must output strictly valid JSON matching the requested schema. "
    "Do not output markdown code blocks, just the raw JSON object."
)


class LLMRateLimitError(GenerationError):
    pass


class LLMClient(Protocol):
    name: str

    async def generate(self, prompt: str) -> str:
        ...

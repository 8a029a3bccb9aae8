from __future__ import annotations

from loguru import logger

from repo_health.core.config import Settings, settings
from repo_health.services.llm.base import LLMClient
from repo_health.services.llm.demo import DemoLLM
from repo_health.services.llm.gemini_chat import GeminiChatLLM
from repo_health.services.llm.groq_chat import GroqChatLLM
from repo_health.services.llm.ollama_llm import OllamaLLM

PROVIDERS = ("gemini", "groq", "ollama")


def resolve_provider(cfg: Settings = settings) -> str:
    provider = (cfg.LLM_PROVIDER or "groq").lower()
    if provider not in PROVIDERS:
        logger.warning(f"Unknown LLM_PROVIDER={cfg.LLM_PROVIDER!r}, using groq")
        provider = "groq"
    return provider


def provider_configured(cfg: Settings = settings) -> bool:
    provider = resolve_provider(cfg)
    if provider == "gemini":
        return bool(cfg.GEMINI_API_KEY)
    if provider == "groq":
        return bool(cfg.GROQ_API_KEY)
    return True


def get_llm_client(cfg: Settings = settings) -> LLMClient:
    provider = resolve_provider(cfg)

    if not provider_configured(cfg):
        if cfg.DEMO_MODE:
            return DemoLLM()
        # keep the real client: its generate() fails with the missing key named

    if provider == "gemini":
        return GeminiChatLLM(api_key=cfg.GEMINI_API_KEY, model=cfg.GEMINI_CHAT_MODEL)
    if provider == "ollama":
        return OllamaLLM(model=cfg.OLLAMA_MODEL, base_url=cfg.OLLAMA_BASE_URL)
    return GroqChatLLM(api_key=cfg.GROQ_API_KEY, model=cfg.GROQ_MODEL, base_url=cfg.GROQ_BASE_URL)

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "repo-health-api"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TOKEN: str | None = None
    GITHUB_TIMEOUT_SECONDS: float = 30.0

    CONTENT_CACHE_TTL_SECONDS: int = 300
    CONTENT_CACHE_MAX_ENTRIES: int = 512

    TREE_MAX_NODES: int = 50
    IMPORTANT_FILE_MAX_CHARS: int = 4000

    LLM_PROVIDER: str = "groq"  # gemini | groq | ollama
    GEMINI_API_KEY: str | None = None
    GEMINI_CHAT_MODEL: str = "gemini-2.0-flash"
    GROQ_API_KEY: str | None = None
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    OLLAMA_MODEL: str = "qwen2.5-coder:7b-instruct"
    OLLAMA_BASE_URL: str = "http://127.0.0.1:11434"

    LLM_TEMPERATURE: float = 0.3
    LLM_MAX_OUTPUT_TOKENS: int = 8000
    LLM_TIMEOUT_SECONDS: float = 120.0

    # serve a labelled sample analysis when no provider is usable
    DEMO_MODE: bool = False

settings = Settings()

"""Application configuration."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PROMPT_TEMPLATE = """You are a professional subtitle translator. Translate the JSON payload naturally for the target language while keeping each line short enough to read on screen.

Rules:
1. Translate every object in the array; never merge, split, drop or reorder lines
2. Keep the "i" value of each object unchanged
3. Preserve ASS override tags (e.g. {\\i1}) and line breaks (\\N) exactly
4. Keep names and recurring terms consistent across lines
{{glossary}}
Output Format: Return ONLY a valid JSON array with the same structure as the input."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Subtitle Relay"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = []

    # Translation cache database (shared between pipeline instances)
    cache_database_url: str = "sqlite+aiosqlite:///./subrelay_cache.db"
    cache_busy_timeout_ms: int = 5000

    # Checkpoints (one JSON document per job)
    checkpoint_dir: Path = Path(__file__).parent.parent.parent / "data" / "checkpoints"

    # Translation settings
    window_size: int = 50  # units per top-level window
    context_size: int = 3  # trailing translated lines carried as passive context
    fuzzy_threshold: float = 0.95
    fuzzy_candidate_limit: int = 500
    max_split_depth: int = 3  # 50 -> 25 -> 12 -> 6
    provider_timeout_seconds: float = 120.0
    # Abort immediately on authentication failures instead of splitting
    short_circuit_auth_errors: bool = False
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE

    # Cost heuristics for cache statistics
    cache_tokens_per_entry: int = 300
    cache_usd_per_million_tokens: float = 0.15

    # Default provider
    provider: str = "openrouter"
    model: str = "google/gemini-2.0-flash-001"
    temperature: float = 0.3
    local_endpoint: str = "http://localhost:11434"

    # LLM API Keys
    openrouter_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    deepseek_api_key: Optional[str] = None

    # Authentication (optional - for network-exposed deployments)
    api_auth_token: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SUBRELAY_",
    )

    def api_key_for(self, provider: str) -> Optional[str]:
        """Return the configured API key for a provider, if any."""
        return getattr(self, f"{provider.lower()}_api_key", None)


settings = Settings()

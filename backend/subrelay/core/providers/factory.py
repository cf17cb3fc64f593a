"""Translation provider factory."""

from dataclasses import dataclass
from typing import Dict, Optional

from subrelay.core.providers.base import TranslationProvider
from subrelay.core.providers.litellm_provider import LiteLLMProvider


@dataclass
class ProviderInfo:
    """Metadata about a provider."""

    name: str
    type: str  # "cloud" or "local"
    requires_key: bool
    endpoint: Optional[str] = None


class ProviderFactory:
    """Factory for creating translation providers."""

    # Aliases accepted from configuration
    ALIASES: Dict[str, str] = {
        "google": "gemini",
        "google-gemini": "gemini",
        "local": "ollama",
    }

    PROVIDERS: Dict[str, ProviderInfo] = {
        "openrouter": ProviderInfo("OpenRouter", "cloud", True, "https://openrouter.ai/api/v1"),
        "gemini": ProviderInfo("Google Gemini", "cloud", True, "https://generativelanguage.googleapis.com"),
        "openai": ProviderInfo("OpenAI", "cloud", True, "https://api.openai.com/v1"),
        "anthropic": ProviderInfo("Anthropic", "cloud", True, "https://api.anthropic.com"),
        "deepseek": ProviderInfo("DeepSeek", "cloud", True, "https://api.deepseek.com/v1"),
        "ollama": ProviderInfo("Local LLM (Ollama)", "local", False, "http://localhost:11434"),
        "lmstudio": ProviderInfo("Local LLM (LM Studio)", "local", False, "http://localhost:1234/v1"),
    }

    @classmethod
    def normalize(cls, provider: str) -> str:
        name = provider.strip().lower()
        return cls.ALIASES.get(name, name)

    @classmethod
    def create(
        cls,
        provider: str,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.3,
        timeout: float = 120.0,
    ) -> TranslationProvider:
        """Create a provider instance.

        Args:
            provider: Provider name or alias
            model: Model identifier
            api_key: API key (required for cloud providers)
            base_url: Endpoint override (defaults to the local endpoint for local providers)
            temperature: Sampling temperature
            timeout: Request timeout in seconds

        Returns:
            Configured provider

        Raises:
            ValueError: If the provider is unknown or misconfigured
        """
        name = cls.normalize(provider)
        info = cls.PROVIDERS.get(name)
        if info is None:
            raise ValueError(
                f"Unsupported provider: {provider}. Available: {cls.available_providers()}"
            )
        if not model:
            raise ValueError("model not configured")
        if info.requires_key and not api_key:
            raise ValueError(f"API key not configured for {info.name}")

        if info.type == "local" and not base_url:
            base_url = info.endpoint

        return LiteLLMProvider(
            provider=name,
            model=model,
            api_key=api_key,
            base_url=base_url,
            temperature=temperature,
            timeout=timeout,
        )

    @classmethod
    def get_info(cls, provider: str) -> ProviderInfo:
        name = cls.normalize(provider)
        if name not in cls.PROVIDERS:
            raise ValueError(f"Unsupported provider: {provider}")
        return cls.PROVIDERS[name]

    @classmethod
    def available_providers(cls) -> list[str]:
        """List available providers."""
        return list(cls.PROVIDERS.keys())

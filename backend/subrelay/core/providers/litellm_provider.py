"""LiteLLM-backed translation provider.

One implementation covers every hosted and local backend LiteLLM can
route to. Lines are sent as a minified JSON array in the user message and
the reply is expected to be a JSON array of the same shape.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import litellm
from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    AuthenticationError,
    InternalServerError,
    PermissionDeniedError,
    RateLimitError as LiteLLMRateLimitError,
    ServiceUnavailableError,
    Timeout,
)
from pydantic import TypeAdapter, ValidationError

from subrelay.core.errors import (
    AuthError,
    ProviderError,
    RateLimitError,
    ResponseShapeError,
    TransportError,
)
from subrelay.core.providers.base import Line, TranslationProvider

logger = logging.getLogger(__name__)

_LINES = TypeAdapter(List[Line])


class LiteLLMProvider(TranslationProvider):
    """Translation provider using LiteLLM for unified model access."""

    # provider name -> LiteLLM routing prefix
    PROVIDER_PREFIXES: Dict[str, str] = {
        "openrouter": "openrouter/",
        "gemini": "gemini/",
        "openai": "openai/",
        "anthropic": "anthropic/",
        "deepseek": "deepseek/",
        "ollama": "ollama/",
        "lmstudio": "openai/",  # OpenAI-compatible local server
    }

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 8192,
        timeout: float = 120.0,
    ):
        """Initialize the provider.

        Args:
            provider: Provider name (openrouter, gemini, openai, ollama, ...)
            model: Model identifier
            api_key: API key (not needed for local servers)
            base_url: Optional custom endpoint
            temperature: Sampling temperature
            max_tokens: Maximum tokens in the reply
            timeout: Request timeout in seconds
        """
        self._provider = provider.lower()
        self._model = model
        self._api_key = api_key
        self._base_url = base_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        prefix = self.PROVIDER_PREFIXES.get(self._provider, f"{self._provider}/")
        if model.startswith(prefix):
            self._litellm_model = model
        else:
            self._litellm_model = f"{prefix}{model}"

        logger.info(
            f"[LiteLLM Provider] Initialized: provider={self._provider}, model={model}, "
            f"litellm_model={self._litellm_model}, base_url={base_url}"
        )

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def model(self) -> str:
        return self._model

    def _base_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self._litellm_model,
            "temperature": self.temperature,
            "timeout": self.timeout,
        }
        if self._api_key:
            kwargs["api_key"] = self._api_key
        if self._base_url:
            kwargs["api_base"] = self._base_url
        return kwargs

    async def send_batch(self, lines: List[Line], system_prompt: str) -> List[Line]:
        """Send lines as a minified JSON array and parse the reply."""
        payload = json.dumps(
            [line.to_payload() for line in lines],
            ensure_ascii=False,
            separators=(",", ":"),
        )

        kwargs = self._base_kwargs()
        kwargs["max_tokens"] = self.max_tokens
        kwargs["messages"] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": payload},
        ]

        start_time = time.time()
        try:
            response = await acompletion(**kwargs)
        except (AuthenticationError, PermissionDeniedError) as e:
            raise AuthError(str(e), self._provider) from e
        except LiteLLMRateLimitError as e:
            raise RateLimitError(str(e), self._provider) from e
        except (Timeout, APIConnectionError, ServiceUnavailableError, InternalServerError) as e:
            raise TransportError(str(e), self._provider) from e
        except Exception as e:
            raise ProviderError(str(e), self._provider) from e

        latency_ms = int((time.time() - start_time) * 1000)
        total_tokens = response.usage.total_tokens if getattr(response, "usage", None) else 0
        logger.info(
            f"[LiteLLM Provider] {len(lines)} lines: tokens={total_tokens}, latency={latency_ms}ms"
        )

        if not response.choices:
            raise ResponseShapeError("empty response", self._provider)
        return self.parse_lines(response.choices[0].message.content or "")

    def parse_lines(self, content: str) -> List[Line]:
        """Parse a model reply into lines.

        Handles plain JSON, JSON wrapped in a markdown code block, and an
        object holding the array under a single key.

        Raises:
            ResponseShapeError: If the reply is not a list of lines
        """
        content = content.strip()
        if content.startswith("```"):
            content_lines = content.split("\n")
            if len(content_lines) >= 3:
                content = "\n".join(content_lines[1:-1])

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ResponseShapeError(f"reply is not JSON: {e}", self._provider) from e

        if isinstance(data, dict) and len(data) == 1:
            data = next(iter(data.values()))

        try:
            return _LINES.validate_python(data)
        except ValidationError as e:
            raise ResponseShapeError(f"reply is not a list of lines: {e}", self._provider) from e

    async def validate_key(self) -> bool:
        """Check provider availability with a minimal completion."""
        try:
            kwargs = self._base_kwargs()
            kwargs["messages"] = [{"role": "user", "content": "Hi"}]
            kwargs["max_tokens"] = 5
            await acompletion(**kwargs)
            return True
        except Exception as e:
            logger.warning(f"[LiteLLM Provider] Key validation failed for {self._provider}: {e}")
            return False

    async def list_models(self) -> List[str]:
        """List models LiteLLM knows for this provider."""
        provider_key = "openai" if self._provider == "lmstudio" else self._provider
        models = litellm.models_by_provider.get(provider_key)
        if not models:
            raise ProviderError(f"no model catalogue for provider '{self._provider}'", self._provider)
        return sorted(models)

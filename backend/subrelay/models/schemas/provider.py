"""Shared provider-related request schemas.

These base classes avoid repeating provider configuration fields across
endpoints that need a translation backend.
"""

from typing import Optional

from pydantic import BaseModel


class ProviderConfigMixin(BaseModel):
    """Mixin for provider configuration fields.

    Every field falls back to the server settings when omitted.
    """

    provider: Optional[str] = None  # "openrouter" | "gemini" | "openai" | "ollama" | ...
    model: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: Optional[float] = None

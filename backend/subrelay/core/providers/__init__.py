"""Translation providers package.

This package provides:
- TranslationProvider: the contract the batch scheduler calls
- LiteLLMProvider: implementation for hosted and local backends
- ProviderFactory: creation from configuration
"""

from .base import Line, TranslationProvider
from .factory import ProviderFactory, ProviderInfo
from .litellm_provider import LiteLLMProvider

__all__ = [
    "Line",
    "TranslationProvider",
    "LiteLLMProvider",
    "ProviderFactory",
    "ProviderInfo",
]

"""Shared API request schemas."""

from .provider import ProviderConfigMixin

__all__ = ["ProviderConfigMixin"]

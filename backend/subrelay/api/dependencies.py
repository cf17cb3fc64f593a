"""API dependencies for shared handles, provider creation and authentication.

This module provides:
- Accessors for the handles created in the application lifespan
- Provider construction from request fields and server settings
- Optional API key authentication for network-exposed deployments
"""

import logging
import secrets
from typing import Annotated, Callable, Optional

from fastapi import Depends, Header, HTTPException, Request

from subrelay.config import settings
from subrelay.core.cache import TranslationCache
from subrelay.core.providers import ProviderFactory, TranslationProvider
from subrelay.core.translation import CheckpointManager, JobRegistry
from subrelay.models.schemas import ProviderConfigMixin

logger = logging.getLogger(__name__)


# =============================================================================
# Authentication Dependencies
# =============================================================================


def _presented_token(authorization: Optional[str], x_api_key: Optional[str]) -> Optional[str]:
    scheme, _, credentials = (authorization or "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return x_api_key or None


async def verify_api_token(
    request: Request,
    authorization: Annotated[Optional[str], Header()] = None,
    x_api_key: Annotated[Optional[str], Header(alias="X-API-Key")] = None,
) -> None:
    """Guard for endpoints that start jobs or modify the cache.

    Accepts ``Authorization: Bearer <token>`` or ``X-API-Key: <token>``.
    Open when ``SUBRELAY_API_AUTH_TOKEN`` is unset.

    Raises:
        HTTPException: 401 when a token is configured and not presented
    """
    expected = settings.api_auth_token
    if not expected:
        return

    presented = _presented_token(authorization, x_api_key)
    if presented is None or not secrets.compare_digest(
        presented.encode("utf-8"), expected.encode("utf-8")
    ):
        logger.warning(
            f"[Auth] Rejected {request.method} {request.url.path}: "
            f"{'missing' if presented is None else 'invalid'} token"
        )
        raise HTTPException(
            status_code=401,
            detail="Missing or invalid API token",
            headers={"WWW-Authenticate": "Bearer"},
        )


RequireAuth = Annotated[None, Depends(verify_api_token)]


# =============================================================================
# Application handles
# =============================================================================


def get_cache(request: Request) -> TranslationCache:
    return request.app.state.cache


def get_checkpoints(request: Request) -> CheckpointManager:
    return request.app.state.checkpoints


def get_job_registry(request: Request) -> JobRegistry:
    return request.app.state.jobs


CacheDep = Annotated[TranslationCache, Depends(get_cache)]
CheckpointsDep = Annotated[CheckpointManager, Depends(get_checkpoints)]
JobsDep = Annotated[JobRegistry, Depends(get_job_registry)]


# =============================================================================
# Providers
# =============================================================================

ProviderBuilder = Callable[[ProviderConfigMixin], TranslationProvider]


def build_provider(config: ProviderConfigMixin) -> TranslationProvider:
    """Create a provider from request fields, falling back to settings.

    Raises:
        HTTPException: 400 if the provider is unknown or misconfigured
    """
    provider = config.provider or settings.provider
    name = ProviderFactory.normalize(provider)
    base_url = config.base_url
    if base_url is None and name == "ollama":
        base_url = settings.local_endpoint

    try:
        return ProviderFactory.create(
            provider=name,
            model=config.model or settings.model,
            api_key=config.api_key or settings.api_key_for(name),
            base_url=base_url,
            temperature=(
                config.temperature if config.temperature is not None else settings.temperature
            ),
            timeout=settings.provider_timeout_seconds,
        )
    except ValueError as e:
        logger.warning(f"[API] Rejected provider configuration: {e}")
        raise HTTPException(status_code=400, detail=str(e))


def get_provider_builder() -> ProviderBuilder:
    """Dependency returning the provider constructor (overridable in tests)."""
    return build_provider


ProviderBuilderDep = Annotated[ProviderBuilder, Depends(get_provider_builder)]

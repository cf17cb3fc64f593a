"""Provider discovery and credential check routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from subrelay.api.dependencies import ProviderBuilderDep
from subrelay.core.errors import ProviderError
from subrelay.core.providers import ProviderFactory
from subrelay.models.schemas import ProviderConfigMixin

logger = logging.getLogger(__name__)

router = APIRouter()


class ProviderSummary(BaseModel):
    """Provider information."""
    id: str
    name: str
    type: str
    requires_key: bool
    endpoint: Optional[str] = None


class ValidateResponse(BaseModel):
    provider: str
    valid: bool


class ModelsResponse(BaseModel):
    provider: str
    models: List[str]


@router.get("/providers")
async def list_providers() -> List[ProviderSummary]:
    """List supported translation providers."""
    summaries = []
    for provider_id in ProviderFactory.available_providers():
        info = ProviderFactory.get_info(provider_id)
        summaries.append(
            ProviderSummary(
                id=provider_id,
                name=info.name,
                type=info.type,
                requires_key=info.requires_key,
                endpoint=info.endpoint,
            )
        )
    return summaries


@router.post("/providers/validate")
async def validate_provider(
    request: ProviderConfigMixin,
    build_provider: ProviderBuilderDep,
) -> ValidateResponse:
    """Check that the provider accepts the given credentials."""
    provider = build_provider(request)
    try:
        valid = await provider.validate_key()
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e))
    logger.info(f"[Providers API] {provider.provider_name} key valid={valid}")
    return ValidateResponse(provider=provider.provider_name, valid=valid)


@router.post("/providers/models")
async def list_provider_models(
    request: ProviderConfigMixin,
    build_provider: ProviderBuilderDep,
) -> ModelsResponse:
    """List models offered by a provider."""
    provider = build_provider(request)
    try:
        models = await provider.list_models()
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return ModelsResponse(provider=provider.provider_name, models=models)

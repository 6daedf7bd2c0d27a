from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..config import get_config, update_config
from ..llm.registry import reset_providers
from ..providers import AI_PROVIDERS, get_provider_by_id, validate_api_key

router = APIRouter(prefix="/api/settings", tags=["settings"])


class SettingsRequest(BaseModel):
    default_provider: Optional[str] = None


class ApiKeyRequest(BaseModel):
    api_key: str


def _settings_view() -> dict:
    llm = get_config().llm
    configured = llm.configured_providers()
    return {
        "default_provider": llm.default_provider,
        "api_keys": {p.id: p.id in configured for p in AI_PROVIDERS},
    }


@router.get("")
async def get_settings():
    return _settings_view()


@router.put("")
async def update_settings(req: SettingsRequest):
    config = get_config().model_copy(deep=True)
    if req.default_provider is not None:
        if not get_provider_by_id(req.default_provider):
            raise HTTPException(status_code=400, detail=f"Unknown provider: {req.default_provider}")
        config.llm.default_provider = req.default_provider
    update_config(config)
    return _settings_view()


@router.put("/api-keys/{provider_id}")
async def set_api_key(provider_id: str, req: ApiKeyRequest):
    provider = get_provider_by_id(provider_id)
    if not provider:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider_id}")
    api_key = req.api_key.strip()
    if not validate_api_key(provider_id, api_key):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {provider.name} API key format. Keys start with '{provider.key_prefix}'.",
        )
    config = get_config().model_copy(deep=True)
    config.llm.set_api_key(provider_id, api_key)
    update_config(config)
    reset_providers()
    return _settings_view()


@router.delete("/api-keys/{provider_id}")
async def remove_api_key(provider_id: str):
    if not get_provider_by_id(provider_id):
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider_id}")
    config = get_config().model_copy(deep=True)
    config.llm.set_api_key(provider_id, "")
    update_config(config)
    reset_providers()
    return _settings_view()

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..context.capacity import get_context_limit
from ..providers import AI_PROVIDERS, ModelPreferences, get_provider_by_id

router = APIRouter(prefix="/api/providers", tags=["providers"])

_preferences = ModelPreferences()


class AddModelRequest(BaseModel):
    name: str


class SelectModelRequest(BaseModel):
    model_name: str


def _require_provider(provider_id: str) -> None:
    if not get_provider_by_id(provider_id):
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider_id}")


@router.get("")
async def list_providers():
    return {"providers": [p.model_dump(exclude={"available_models"}) for p in AI_PROVIDERS]}


@router.get("/{provider_id}/models")
async def list_models(provider_id: str):
    _require_provider(provider_id)
    models = await _preferences.get_available_models(provider_id)
    return {
        "models": [
            {**m.model_dump(), "context_limit": get_context_limit(m.name)} for m in models
        ]
    }


@router.post("/{provider_id}/models")
async def add_custom_model(provider_id: str, req: AddModelRequest):
    _require_provider(provider_id)
    name = req.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Model name is required")
    try:
        model = await _preferences.add_custom_model(provider_id, name)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"model": model.model_dump()}


@router.delete("/{provider_id}/models/{model_id:path}")
async def remove_custom_model(provider_id: str, model_id: str):
    _require_provider(provider_id)
    await _preferences.remove_custom_model(provider_id, model_id)
    return {"status": "deleted"}


@router.get("/{provider_id}/selected-model")
async def get_selected_model(provider_id: str):
    _require_provider(provider_id)
    return {"model_name": await _preferences.get_selected_model(provider_id)}


@router.put("/{provider_id}/selected-model")
async def set_selected_model(provider_id: str, req: SelectModelRequest):
    _require_provider(provider_id)
    await _preferences.set_selected_model(provider_id, req.model_name)
    return {"model_name": req.model_name}

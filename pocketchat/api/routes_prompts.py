from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..conversation.models import SystemPrompt
from ..prompts import SystemPromptCatalog

router = APIRouter(prefix="/api/prompts", tags=["prompts"])

_catalog = SystemPromptCatalog()


class SavePromptRequest(BaseModel):
    id: Optional[str] = None
    name: str
    prompt: str
    provider_id: Optional[str] = None
    model_name: Optional[str] = None


class SelectPromptRequest(BaseModel):
    prompt_id: str


@router.get("")
async def list_prompts():
    prompts = await _catalog.list_prompts()
    return {"prompts": [p.model_dump() for p in prompts]}


@router.post("")
async def save_prompt(req: SavePromptRequest):
    data = req.model_dump(exclude_none=True)
    try:
        prompt = await _catalog.save_prompt(SystemPrompt(**data))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"prompt": prompt.model_dump()}


@router.delete("/{prompt_id}")
async def delete_prompt(prompt_id: str):
    await _catalog.delete_prompt(prompt_id)
    return {"status": "deleted"}


@router.get("/selected/{provider_id}/{model_name:path}")
async def get_selected_prompt(provider_id: str, model_name: str):
    return {"prompt": await _catalog.get_selected_prompt(provider_id, model_name)}


@router.put("/selected/{provider_id}/{model_name:path}")
async def set_selected_prompt(provider_id: str, model_name: str, req: SelectPromptRequest):
    await _catalog.set_selected_prompt(provider_id, model_name, req.prompt_id)
    return {"status": "ok"}

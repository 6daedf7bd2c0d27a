from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from ..chat import ChatService, ConversationNotFound
from ..config import get_config
from ..conversation.storage import ConversationStore, export_as_text

router = APIRouter(prefix="/api/conversations", tags=["conversations"])

_store = ConversationStore()
_chat = ChatService(conversations=_store)


class CreateConversationRequest(BaseModel):
    title: str = ""
    provider_id: str = ""
    model_name: Optional[str] = None


class UpdateConversationRequest(BaseModel):
    title: Optional[str] = None
    provider_id: Optional[str] = None
    model_name: Optional[str] = None
    prompt_id: Optional[str] = None


class SetCurrentRequest(BaseModel):
    conversation_id: str


@router.get("")
async def list_conversations():
    conversations = await _store.list_conversations()
    return {"conversations": [c.model_dump(mode="json") for c in conversations]}


@router.post("")
async def create_conversation(req: CreateConversationRequest):
    provider_id = req.provider_id or get_config().llm.default_provider
    conv = await _chat.new_conversation(provider_id, req.model_name, title=req.title)
    return {"conversation": conv.model_dump(mode="json")}


@router.get("/current")
async def get_current_conversation():
    return {"conversation_id": await _store.get_current_conversation_id()}


@router.put("/current")
async def set_current_conversation(req: SetCurrentRequest):
    if not await _store.get_conversation(req.conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    await _store.set_current_conversation_id(req.conversation_id)
    return {"conversation_id": req.conversation_id}


@router.get("/{conv_id}")
async def get_conversation(conv_id: str):
    conv = await _store.get_conversation(conv_id)
    if not conv:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"conversation": conv.model_dump(mode="json")}


@router.get("/{conv_id}/export", response_class=PlainTextResponse)
async def export_conversation(conv_id: str):
    conv = await _store.get_conversation(conv_id)
    if not conv:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return export_as_text(conv)


@router.put("/{conv_id}")
async def update_conversation(conv_id: str, req: UpdateConversationRequest):
    try:
        if req.provider_id or req.model_name:
            conv = await _chat.conversations.get_conversation(conv_id)
            if conv:
                await _chat.switch_model(
                    conv_id,
                    req.provider_id or conv.provider_id,
                    req.model_name or conv.model_name,
                )
        if req.prompt_id:
            await _chat.switch_system_prompt(conv_id, req.prompt_id)
    except ConversationNotFound:
        raise HTTPException(status_code=404, detail="Conversation not found")

    conv = await _store.get_conversation(conv_id)
    if not conv:
        raise HTTPException(status_code=404, detail="Conversation not found")
    if req.title:
        conv.title = req.title
        await _store.save_conversation(conv)
    return {"conversation": conv.model_dump(mode="json")}


@router.delete("/{conv_id}")
async def delete_conversation(conv_id: str):
    if not await _store.get_conversation(conv_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    await _store.delete_conversation(conv_id)
    return {"status": "deleted"}

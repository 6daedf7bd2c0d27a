import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..chat import ChatService, ConversationNotFound
from ..config import get_config
from ..llm.base import MissingApiKeyError, ProviderError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])

_service = ChatService()


class ChatRequest(BaseModel):
    message: str
    conversation_id: Optional[str] = None
    provider_id: Optional[str] = None
    model_name: Optional[str] = None
    max_tokens: Optional[int] = None  # Overrides the model's context window


@router.post("/send")
async def send_message(req: ChatRequest):
    if not req.message.strip():
        raise HTTPException(status_code=400, detail="Message is empty")

    if req.conversation_id:
        conv_id = req.conversation_id
    else:
        provider_id = req.provider_id or get_config().llm.default_provider
        conv = await _service.current_conversation(provider_id, req.model_name)
        conv_id = conv.id

    try:
        conv, response = await _service.send_message(conv_id, req.message, max_tokens=req.max_tokens)
    except ConversationNotFound:
        raise HTTPException(status_code=404, detail="Conversation not found")
    except MissingApiKeyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {
        "conversation": conv.model_dump(mode="json"),
        "reply": conv.messages[-1].model_dump(mode="json"),
        "usage": response.usage.model_dump() if response.usage else None,
    }

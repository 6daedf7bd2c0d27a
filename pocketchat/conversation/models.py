import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from ..context.tokens import estimate_tokens


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    id: str = Field(default_factory=_new_id)
    text: str
    is_user: bool
    timestamp: datetime = Field(default_factory=_now)
    tokens: Optional[int] = None  # Cached estimate_tokens(text)

    @classmethod
    def create(cls, text: str, is_user: bool) -> "Message":
        return cls(text=text, is_user=is_user, tokens=estimate_tokens(text))

    @property
    def role(self) -> str:
        return "user" if self.is_user else "assistant"


class Conversation(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    messages: list[Message] = []
    provider_id: str
    model_name: str
    system_prompt: Optional[str] = None  # Pinned copy, not synced with the global selection
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class SystemPrompt(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    prompt: str
    is_default: bool = False
    provider_id: Optional[str] = None
    model_name: Optional[str] = None

# app/models/chat.py
from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_SYSTEM = "system"
MESSAGE_ROLES = {ROLE_USER, ROLE_ASSISTANT}

Role = Literal["user", "assistant"]


class ChatMessage(BaseModel):
    role: Role
    content: str


class RelayRequest(BaseModel):
    """Body of the relay endpoint. Oldest message first; no system prompt."""

    # unknown fields (model overrides and the like) are ignored
    model_config = ConfigDict(extra="ignore")

    messages: List[ChatMessage]

    def upstream_messages(self) -> List[dict]:
        return [m.model_dump() for m in self.messages]

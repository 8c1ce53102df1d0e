# app/api/deps.py
from fastapi import Depends, HTTPException

from app.auth.permissions import AuthContext, get_auth_context
from app.models.schemas import ConversationResponse
from app.services.conversation_store import ConversationStore, SqlConversationStore

_store = SqlConversationStore()


def get_store() -> ConversationStore:
    return _store


def owned_conversation(
    conversation_id: int,
    auth: AuthContext = Depends(get_auth_context),
    store: ConversationStore = Depends(get_store),
) -> ConversationResponse:
    conv = store.get_conversation(conversation_id)
    # other users' conversations are indistinguishable from missing ones
    if conv is None or conv.user_id != auth.user_id:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conv

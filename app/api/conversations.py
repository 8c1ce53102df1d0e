# app/api/conversations.py
"""
Conversation and message CRUD for the signed-in user.
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, Response

from app.api.deps import get_store, owned_conversation
from app.auth.permissions import AuthContext, get_auth_context
from app.models.schemas import (
    ConversationCreate,
    ConversationResponse,
    ConversationUpdate,
    MessageCreate,
    MessageResponse,
)
from app.services.conversation_store import ConversationStore

logger = logging.getLogger("mememind.api.conversations")
router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("", response_model=List[ConversationResponse])
def list_conversations(
    auth: AuthContext = Depends(get_auth_context),
    store: ConversationStore = Depends(get_store),
):
    """Most recently updated first."""
    items = store.list_conversations(auth.user_id)
    logger.info("GET /api/conversations user=%s count=%d", auth.user_id, len(items))
    return items


@router.post("", response_model=ConversationResponse, status_code=201)
def create_conversation(
    payload: ConversationCreate,
    auth: AuthContext = Depends(get_auth_context),
    store: ConversationStore = Depends(get_store),
):
    return store.create_conversation(auth.user_id, title=payload.title)


@router.patch("/{conversation_id}", response_model=ConversationResponse)
def update_conversation(
    payload: ConversationUpdate,
    conv: ConversationResponse = Depends(owned_conversation),
    store: ConversationStore = Depends(get_store),
):
    """Rename and/or flip public sharing."""
    return store.update_conversation(conv.id, title=payload.title, is_public=payload.is_public)


@router.delete("/{conversation_id}", status_code=204)
def delete_conversation(
    conv: ConversationResponse = Depends(owned_conversation),
    store: ConversationStore = Depends(get_store),
):
    store.delete_conversation(conv.id)
    return Response(status_code=204)


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
def list_messages(
    conv: ConversationResponse = Depends(owned_conversation),
    store: ConversationStore = Depends(get_store),
):
    """Oldest first."""
    return store.list_messages(conv.id)


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
def add_message(
    payload: MessageCreate,
    conv: ConversationResponse = Depends(owned_conversation),
    store: ConversationStore = Depends(get_store),
):
    return store.add_message(conv.id, payload.role, payload.content)

# app/api/share.py
import logging
from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_store
from app.models.schemas import SharedConversationResponse
from app.services.conversation_store import ConversationStore

logger = logging.getLogger("mememind.api.share")
router = APIRouter(prefix="/api/share", tags=["share"])


@router.get("/{share_id}", response_model=SharedConversationResponse)
def shared_conversation(share_id: str, store: ConversationStore = Depends(get_store)):
    """Read-only transcript behind a public link. No auth."""
    conv = store.get_by_share_id(share_id)
    if conv is None:
        logger.info("GET /api/share/%s -> not found", share_id)
        raise HTTPException(status_code=404, detail="Conversation not found")
    if not conv.is_public:
        logger.info("GET /api/share/%s -> private", share_id)
        raise HTTPException(status_code=403, detail="This conversation is private")

    messages = store.list_messages(conv.id)
    logger.info("GET /api/share/%s count=%d", share_id, len(messages))
    return SharedConversationResponse(title=conv.title, messages=messages)

# app/services/conversation_store.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, ContextManager, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import DEFAULT_TITLE
from app.core.db import session_scope
from app.models.chat import MESSAGE_ROLES
from app.models.orm import Conversation, Message
from app.models.schemas import ConversationResponse, MessageResponse
from app.services.errors import PersistenceError

logger = logging.getLogger("mememind.conversation_store")


class ConversationStore(ABC):
    """CRUD surface the chat controller and the REST API need from storage."""

    @abstractmethod
    def list_conversations(self, user_id: int) -> List[ConversationResponse]:
        """Newest update first."""

    @abstractmethod
    def get_conversation(self, conversation_id: int) -> Optional[ConversationResponse]:
        ...

    @abstractmethod
    def get_by_share_id(self, share_id: str) -> Optional[ConversationResponse]:
        ...

    @abstractmethod
    def create_conversation(self, user_id: int, title: str = DEFAULT_TITLE) -> ConversationResponse:
        ...

    @abstractmethod
    def update_conversation(
        self,
        conversation_id: int,
        *,
        title: Optional[str] = None,
        is_public: Optional[bool] = None,
    ) -> ConversationResponse:
        ...

    @abstractmethod
    def delete_conversation(self, conversation_id: int) -> None:
        ...

    @abstractmethod
    def list_messages(self, conversation_id: int) -> List[MessageResponse]:
        """Oldest first."""

    @abstractmethod
    def add_message(self, conversation_id: int, role: str, content: str) -> MessageResponse:
        ...


class SqlConversationStore(ConversationStore):
    def __init__(self, scope: Callable[[], ContextManager[Session]] = session_scope):
        self._scope = scope

    def _run(self, op: str, fn):
        try:
            with self._scope() as db:
                return fn(db)
        except PersistenceError:
            raise
        except SQLAlchemyError as e:
            logger.exception("store %s failed", op)
            raise PersistenceError(f"Could not {op}") from e

    @staticmethod
    def _require(db: Session, conversation_id: int) -> Conversation:
        conv = db.get(Conversation, conversation_id)
        if conv is None:
            raise PersistenceError("Conversation not found", status_code=404)
        return conv

    def list_conversations(self, user_id: int) -> List[ConversationResponse]:
        def q(db: Session):
            rows = db.execute(
                select(Conversation)
                .where(Conversation.user_id == user_id)
                .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            ).scalars().all()
            return [ConversationResponse.model_validate(r) for r in rows]
        return self._run("load conversations", q)

    def get_conversation(self, conversation_id: int) -> Optional[ConversationResponse]:
        def q(db: Session):
            conv = db.get(Conversation, conversation_id)
            return ConversationResponse.model_validate(conv) if conv else None
        return self._run("load conversation", q)

    def get_by_share_id(self, share_id: str) -> Optional[ConversationResponse]:
        def q(db: Session):
            conv = db.execute(
                select(Conversation).where(Conversation.share_id == share_id)
            ).scalar_one_or_none()
            return ConversationResponse.model_validate(conv) if conv else None
        return self._run("load shared conversation", q)

    def create_conversation(self, user_id: int, title: str = DEFAULT_TITLE) -> ConversationResponse:
        def q(db: Session):
            conv = Conversation(user_id=user_id, title=title)
            db.add(conv)
            db.flush()
            logger.info("WRITE conversation id=%s user=%s", conv.id, user_id)
            return ConversationResponse.model_validate(conv)
        return self._run("create conversation", q)

    def update_conversation(
        self,
        conversation_id: int,
        *,
        title: Optional[str] = None,
        is_public: Optional[bool] = None,
    ) -> ConversationResponse:
        def q(db: Session):
            conv = self._require(db, conversation_id)
            if title is not None:
                conv.title = title
            if is_public is not None:
                conv.is_public = is_public
            conv.updated_at = datetime.utcnow()
            db.flush()
            logger.info("UPDATE conversation id=%s title=%r public=%s", conv.id, conv.title, conv.is_public)
            return ConversationResponse.model_validate(conv)
        return self._run("update conversation", q)

    def delete_conversation(self, conversation_id: int) -> None:
        def q(db: Session):
            conv = self._require(db, conversation_id)
            db.delete(conv)
            logger.info("DELETE conversation id=%s", conversation_id)
        self._run("delete conversation", q)

    def list_messages(self, conversation_id: int) -> List[MessageResponse]:
        def q(db: Session):
            rows = db.execute(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.asc(), Message.id.asc())
            ).scalars().all()
            return [MessageResponse.model_validate(r) for r in rows]
        return self._run("load messages", q)

    def add_message(self, conversation_id: int, role: str, content: str) -> MessageResponse:
        if role not in MESSAGE_ROLES or not content:
            raise ValueError("invalid message")

        def q(db: Session):
            conv = self._require(db, conversation_id)
            msg = Message(conversation_id=conversation_id, role=role, content=content)
            db.add(msg)
            conv.updated_at = datetime.utcnow()
            db.flush()
            logger.info("WRITE message conv=%s role=%s len=%d", conversation_id, role, len(content))
            return MessageResponse.model_validate(msg)
        return self._run("save message", q)

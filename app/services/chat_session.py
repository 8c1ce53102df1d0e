# app/services/chat_session.py
"""
Client-side chat controller: conversation list, history, and one streamed
turn at a time per conversation.

Turn lifecycle (TurnState):

    IDLE -> USER_MESSAGE_PERSISTED -> STREAMING -> FINALIZED
      \\______________\\___________________\\______> FAILED

The user message is shown optimistically under a `temp-` id and swapped for
the stored row once saved. The assistant reply grows in a `temp-assistant-`
placeholder while deltas arrive and is only persisted once the stream ends.
On failure every `temp-` entry is dropped and a notice is raised; nothing
partial is written.
"""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

import requests

from app.auth.session import AuthChange, AuthSession, SessionProvider
from app.core import config
from app.models.chat import ROLE_ASSISTANT, ROLE_USER
from app.models.schemas import ConversationResponse, MessageResponse
from app.services.conversation_store import ConversationStore
from app.services.errors import (
    PersistenceError,
    RelayError,
    TruncatedStreamError,
    TurnRejected,
)
from app.services.relay_client import RelayClient
from app.services.stream_decoder import StreamDecoder, iter_deltas

logger = logging.getLogger("mememind.chat_session")

TEMP_PREFIX = "temp-"


class TurnState(str, Enum):
    IDLE = "idle"
    USER_MESSAGE_PERSISTED = "user_message_persisted"
    STREAMING = "streaming"
    FINALIZED = "finalized"
    FAILED = "failed"


@dataclass
class DisplayMessage:
    id: str
    role: str
    content: str

    @property
    def is_temp(self) -> bool:
        return self.id.startswith(TEMP_PREFIX)

    @classmethod
    def from_record(cls, m: MessageResponse) -> "DisplayMessage":
        return cls(id=str(m.id), role=m.role, content=m.content)


@dataclass
class Notice:
    title: str
    description: str = ""
    variant: str = "default"  # "default" | "destructive"


@dataclass
class Turn:
    conversation_id: int
    user_text: str
    state: TurnState = TurnState.IDLE
    assistant_text: str = ""
    error: Optional[str] = None
    history: List[dict] = field(default_factory=list)


def derive_title(text: str, limit: int = config.TITLE_MAX_CHARS) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _temp_id(kind: str = "") -> str:
    return f"{TEMP_PREFIX}{kind}{uuid.uuid4().hex[:12]}"


class ChatSession:
    def __init__(
        self,
        store: ConversationStore,
        relay: RelayClient,
        auth: SessionProvider,
        public_origin: str = config.PUBLIC_ORIGIN,
        on_update: Optional[Callable[[DisplayMessage], None]] = None,
    ):
        self.store = store
        self.relay = relay
        self.auth = auth
        self.public_origin = public_origin.rstrip("/")
        self.on_update = on_update

        self.user: Optional[AuthSession] = None
        self.conversations: List[ConversationResponse] = []
        self.current_conversation: Optional[int] = None
        self.messages: List[DisplayMessage] = []
        self.notices: List[Notice] = []
        self.last_turn: Optional[Turn] = None

        self._lock = threading.Lock()
        self._active: Dict[int, Turn] = {}
        self._closed = threading.Event()

        self._unsubscribe = auth.subscribe(self._on_auth_change)
        if auth.current is not None:
            self._on_auth_change(AuthChange.SIGNED_IN, auth.current)

    # ------------------------------------------------------------------ auth
    def _on_auth_change(self, change: AuthChange, session: Optional[AuthSession]) -> None:
        if change is AuthChange.SIGNED_IN and session is not None:
            self.user = session
            self.load_conversations()
            return
        self.user = None
        self.conversations = []
        self.current_conversation = None
        self.messages = []

    def _notify(self, title: str, description: str = "", variant: str = "default") -> None:
        self.notices.append(Notice(title, description, variant))
        log = logger.warning if variant == "destructive" else logger.info
        log("notice: %s %s", title, description)

    def _touch(self, msg: DisplayMessage) -> None:
        if self.on_update is not None:
            self.on_update(msg)

    # --------------------------------------------------------- conversations
    def load_conversations(self) -> None:
        if self.user is None:
            return
        try:
            self.conversations = self.store.list_conversations(self.user.user_id)
        except PersistenceError as e:
            logger.error("Error loading conversations: %s", e.message)
            return
        if self.conversations and self.current_conversation is None:
            self.select_conversation(self.conversations[0].id)

    def load_messages(self, conversation_id: int) -> None:
        try:
            records = self.store.list_messages(conversation_id)
        except PersistenceError as e:
            logger.error("Error loading messages: %s", e.message)
            return
        self.messages = [DisplayMessage.from_record(m) for m in records]

    def select_conversation(self, conversation_id: int) -> None:
        self.current_conversation = conversation_id
        self.load_messages(conversation_id)

    def create_conversation(self) -> Optional[ConversationResponse]:
        if self.user is None:
            return None
        try:
            conv = self.store.create_conversation(self.user.user_id, config.DEFAULT_TITLE)
        except PersistenceError as e:
            self._notify("Error creating chat", e.message, "destructive")
            return None
        self.conversations = [conv, *self.conversations]
        self.current_conversation = conv.id
        self.messages = []
        return conv

    def delete_conversation(self, conversation_id: int) -> bool:
        try:
            self.store.delete_conversation(conversation_id)
        except PersistenceError as e:
            self._notify("Error deleting chat", e.message, "destructive")
            return False
        remaining = [c for c in self.conversations if c.id != conversation_id]
        self.conversations = remaining
        if self.current_conversation == conversation_id:
            self.current_conversation = remaining[0].id if remaining else None
            self.messages = []
        return True

    def share_url(self, conversation: ConversationResponse) -> str:
        return f"{self.public_origin}/share/{conversation.share_id}"

    def toggle_share(self, conversation: ConversationResponse) -> Optional[str]:
        """Flip public visibility; returns the share link when it becomes public."""
        make_public = not conversation.is_public
        try:
            updated = self.store.update_conversation(conversation.id, is_public=make_public)
        except PersistenceError as e:
            self._notify("Error updating share settings", e.message, "destructive")
            return None

        self.conversations = [updated if c.id == updated.id else c for c in self.conversations]
        if make_public:
            self._notify("Link copied! 🔗", "Share this conversation with anyone.")
            return self.share_url(updated)
        return None

    # ------------------------------------------------------------------ turns
    def is_streaming(self, conversation_id: Optional[int] = None) -> bool:
        cid = self.current_conversation if conversation_id is None else conversation_id
        with self._lock:
            return cid in self._active

    def _begin_turn(self, text: str) -> Turn:
        user_text = (text or "").strip()
        if not user_text:
            raise TurnRejected("Message is empty", status_code=400)
        conversation_id = self.current_conversation
        if conversation_id is None:
            raise TurnRejected("No conversation selected", status_code=400)
        with self._lock:
            if conversation_id in self._active:
                raise TurnRejected("Still answering the previous message")
            turn = Turn(conversation_id=conversation_id, user_text=user_text)
            self._active[conversation_id] = turn
        self.last_turn = turn
        return turn

    def _drop_temp(self) -> None:
        self.messages = [m for m in self.messages if not m.is_temp]

    def _replace(self, temp_id: str, record: MessageResponse) -> None:
        stored = DisplayMessage.from_record(record)
        self.messages = [stored if m.id == temp_id else m for m in self.messages]

    def _fail(self, turn: Turn, description: str) -> None:
        turn.state = TurnState.FAILED
        turn.error = description
        self._drop_temp()
        self._notify("Error 💀", description or "Failed to send message", "destructive")

    def send_message(self, text: str) -> Turn:
        """
        Run one full turn and return it. Rejects (TurnRejected) empty input,
        a missing conversation, or a turn already in flight for it. Every
        other failure is reported through `notices` and `Turn.state`.
        """
        turn = self._begin_turn(text)
        conversation_id = turn.conversation_id
        first_turn = not self.messages
        turn.history = [{"role": m.role, "content": m.content} for m in self.messages]
        turn.history.append({"role": ROLE_USER, "content": turn.user_text})

        temp_user = DisplayMessage(_temp_id(), ROLE_USER, turn.user_text)
        self.messages.append(temp_user)
        self._touch(temp_user)
        logger.info("turn start conv=%s history=%d", conversation_id, len(turn.history))

        try:
            try:
                saved_user = self.store.add_message(conversation_id, ROLE_USER, turn.user_text)
            except PersistenceError as e:
                self._fail(turn, e.message)
                return turn
            self._replace(temp_user.id, saved_user)
            turn.state = TurnState.USER_MESSAGE_PERSISTED

            try:
                placeholder = self._stream_reply(turn)
            except (RelayError, TruncatedStreamError) as e:
                self._fail(turn, e.message)
                return turn
            except requests.RequestException as e:
                logger.error("relay call failed conv=%s: %r", conversation_id, e)
                self._fail(turn, "Failed to get AI response")
                return turn

            if self._closed.is_set():
                # torn down mid-stream: nothing to persist
                turn.state = TurnState.FAILED
                turn.error = "closed"
                self._drop_temp()
                return turn

            self._finalize(turn, placeholder, first_turn)
            return turn
        finally:
            with self._lock:
                self._active.pop(conversation_id, None)
            logger.info("turn end conv=%s state=%s chars=%d",
                        conversation_id, turn.state.value, len(turn.assistant_text))

    def _stream_reply(self, turn: Turn) -> DisplayMessage:
        stream = self.relay.open(turn.history)
        placeholder = DisplayMessage(_temp_id("assistant-"), ROLE_ASSISTANT, "")
        self.messages.append(placeholder)
        turn.state = TurnState.STREAMING

        decoder = StreamDecoder()
        with stream:
            for delta in iter_deltas(stream.chunks(), should_stop=self._closed.is_set, decoder=decoder):
                placeholder.content += delta
                turn.assistant_text = decoder.text
                self._touch(placeholder)
        return placeholder

    def _finalize(self, turn: Turn, placeholder: DisplayMessage, first_turn: bool) -> None:
        if not turn.assistant_text:
            # nothing came back; leave no empty bubble behind
            self.messages = [m for m in self.messages if m is not placeholder]
            turn.state = TurnState.FINALIZED
            return

        try:
            saved = self.store.add_message(turn.conversation_id, ROLE_ASSISTANT, turn.assistant_text)
        except PersistenceError as e:
            self._fail(turn, e.message)
            return
        self._replace(placeholder.id, saved)

        if first_turn:
            try:
                self.store.update_conversation(turn.conversation_id, title=derive_title(turn.user_text))
            except PersistenceError as e:
                self._notify("Error renaming chat", e.message, "destructive")
            self.load_conversations()

        turn.state = TurnState.FINALIZED

    # -------------------------------------------------------------- teardown
    def close(self) -> None:
        """Stop any in-flight decode and detach from the session provider."""
        self._closed.set()
        self._unsubscribe()

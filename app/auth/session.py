# app/auth/session.py
"""
Current-session capability for the chat controller.

A SessionProvider holds at most one signed-in session and notifies
subscribers on every transition:

    unsubscribe = provider.subscribe(lambda change, session: ...)
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ContextManager, List, Optional

from sqlalchemy.orm import Session

from .accounts import authenticate, register, user_for_token
from .security import create_token
from app.core.db import session_scope

logger = logging.getLogger("mememind.auth.session")


class AuthChange(str, Enum):
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class AuthSession:
    user_id: int
    email: str
    token: str


Listener = Callable[[AuthChange, Optional[AuthSession]], None]


class SessionProvider:
    def __init__(self):
        self._session: Optional[AuthSession] = None
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    @property
    def current(self) -> Optional[AuthSession]:
        return self._session

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _set(self, session: Optional[AuthSession]) -> None:
        self._session = session
        change = AuthChange.SIGNED_IN if session else AuthChange.SIGNED_OUT
        with self._lock:
            listeners = list(self._listeners)
        logger.info("auth change=%s user=%s", change.value, session.user_id if session else None)
        for fn in listeners:
            fn(change, session)


class LocalSessionProvider(SessionProvider):
    """Signs in against the local users table."""

    def __init__(self, scope: Callable[[], ContextManager[Session]] = session_scope):
        super().__init__()
        self._scope = scope

    def sign_up(self, email: str, password: str) -> AuthSession:
        with self._scope() as db:
            user = register(db, email, password)
            session = AuthSession(user.id, user.email, create_token(user.id, user.email))
        self._set(session)
        return session

    def sign_in(self, email: str, password: str) -> AuthSession:
        with self._scope() as db:
            user = authenticate(db, email, password)
            session = AuthSession(user.id, user.email, create_token(user.id, user.email))
        self._set(session)
        return session

    def restore(self, token: str) -> Optional[AuthSession]:
        """Resume a session from a stored token; None if it is no longer valid."""
        with self._scope() as db:
            user = user_for_token(db, token)
            session = AuthSession(user.id, user.email, token) if user else None
        if session:
            self._set(session)
        return session

    def sign_out(self) -> None:
        if self._session is not None:
            self._set(None)

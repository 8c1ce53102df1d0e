# app/auth/accounts.py
"""
Account operations shared by the HTTP routes and the in-process session
provider: sign-up, sign-in, token lookup.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .security import hash_password, verify_password, verify_token
from app.models.orm import User
from app.services.errors import AuthError

logger = logging.getLogger("mememind.auth.accounts")


def _normalize(email: str) -> str:
    return (email or "").strip().lower()


def register(db: Session, email: str, password: str) -> User:
    email = _normalize(email)
    existing = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing:
        logger.info("Sign-up refused for '%s' (already registered)", email)
        raise AuthError("User already registered", status_code=400)

    user = User(email=email, hashed_password=hash_password(password))
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise AuthError("User already registered", status_code=400)
    logger.info("Sign-up success for '%s' id=%s", email, user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    email = _normalize(email)
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not verify_password(password, user.hashed_password):
        logger.info("Login failed for '%s'", email)
        raise AuthError()

    user.last_login = datetime.utcnow()
    db.flush()
    logger.info("Login success for '%s'", email)
    return user


def user_for_token(db: Session, token: str) -> Optional[User]:
    data = verify_token(token)
    if not data:
        return None
    user_id = data.get("user_id")
    if not user_id:
        return None
    return db.get(User, user_id)

import os
import time
import jwt
import logging
from typing import Optional
import bcrypt

# Secrets stay out of app.core.config
SECRET_KEY = os.getenv("MEMEMIND_SECRET", "dev-secret-change-me")  # override in prod
JWT_EXPIRE_MIN = int(os.getenv("MEMEMIND_JWT_EXPIRE_MIN", "1440"))  # 1 day
ALGO = "HS256"

logger = logging.getLogger("mememind.auth")


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.
    """
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError as e:
        logger.warning("Password verification failed: %s", e)
        return False


def create_token(user_id: int, email: str) -> str:
    now = int(time.time())
    exp = now + JWT_EXPIRE_MIN * 60
    to_encode = {"sub": email, "user_id": user_id, "iat": now, "exp": exp}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGO)


def verify_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGO])
    except jwt.PyJWTError as e:
        logger.warning("Token verification failed: %s", e)
        return None


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1]

# app/auth/permissions.py
"""
Authentication dependencies for protected routes.
"""

from typing import Optional
from fastapi import Depends, HTTPException, Header
from sqlalchemy.orm import Session

from .security import bearer_token, verify_token
from app.core.db import get_db
from app.models.orm import User


class AuthContext:
    """User authentication context"""
    def __init__(self, user_id: int, email: str, db: Session):
        self.user_id = user_id
        self.email = email
        self.db = db
        self._user: Optional[User] = None

    @property
    def user(self) -> User:
        """Lazy load user from database"""
        if self._user is None:
            self._user = self.db.get(User, self.user_id)
            if not self._user:
                raise HTTPException(status_code=404, detail="User not found")
        return self._user


def get_auth_context(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db)
) -> AuthContext:
    """
    Dependency to get authenticated user context.
    Validates JWT token and returns user information.

    Usage:
        @router.get("/protected")
        def protected_route(auth: AuthContext = Depends(get_auth_context)):
            print(f"User: {auth.email}")
    """
    token = bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing authorization token")

    token_data = verify_token(token)
    if not token_data:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = token_data.get("user_id")
    email = token_data.get("sub")
    if not user_id or not email:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    # Verify user still exists
    if db.get(User, user_id) is None:
        raise HTTPException(status_code=401, detail="User not found")

    return AuthContext(user_id=user_id, email=email, db=db)

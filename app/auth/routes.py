import logging
from fastapi import APIRouter, HTTPException, Header, Depends
from sqlalchemy.orm import Session

from .accounts import authenticate, register, user_for_token
from .security import create_token, bearer_token
from app.core.db import get_db
from app.models.orm import User
from app.models.schemas import CredentialsIn, UserResponse
from app.services.errors import AuthError

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger("mememind.auth.routes")


def _session_payload(user: User) -> dict:
    return {
        "token": create_token(user.id, user.email),
        "user": UserResponse.model_validate(user).model_dump(mode="json"),
    }


@router.post("/signup", status_code=201)
def signup(payload: CredentialsIn, db: Session = Depends(get_db)):
    try:
        user = register(db, payload.email, payload.password)
        db.commit()
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _session_payload(user)


@router.post("/login")
def login(payload: CredentialsIn, db: Session = Depends(get_db)):
    try:
        user = authenticate(db, payload.email, payload.password)
        db.commit()
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _session_payload(user)


@router.get("/me")
def me(authorization: str | None = Header(default=None), db: Session = Depends(get_db)):
    token = bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing token")
    user = user_for_token(db, token)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid token")
    return {"user": UserResponse.model_validate(user).model_dump(mode="json")}

# app/models/schemas.py
from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[\w\.\+-]+@[\w\.-]+\.\w+$"  # Basic email validation


# ---------- Auth Schemas ----------
class CredentialsIn(BaseModel):
    email: str = Field(..., max_length=160, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=72)


class UserResponse(BaseModel):
    id: int
    email: str
    created_at: datetime
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ---------- Conversation Schemas ----------
class ConversationCreate(BaseModel):
    title: str = Field("New Chat", min_length=1, max_length=200)


class ConversationUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    is_public: Optional[bool] = None


class ConversationResponse(BaseModel):
    id: int
    user_id: int
    title: str
    share_id: str
    is_public: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------- Message Schemas ----------
class MessageCreate(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------- Public share ----------
class SharedConversationResponse(BaseModel):
    title: str
    messages: List[MessageResponse]

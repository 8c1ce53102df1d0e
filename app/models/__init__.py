# Make `from app.models import User, Conversation, Message` work
from .orm import User, Conversation, Message  # re-export

__all__ = ["User", "Conversation", "Message"]

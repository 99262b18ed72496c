"""SQLAlchemy models."""

from .base import Base
from .conversation import (
    Conversation,
    ConversationProgress,
    is_conversation_stale,
    new_conversation_id,
)
from .generated_document import GeneratedDocument

__all__ = [
    "Base",
    "Conversation",
    "ConversationProgress",
    "GeneratedDocument",
    "is_conversation_stale",
    "new_conversation_id",
]

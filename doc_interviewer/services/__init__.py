"""Service layer exports."""

from .conversation.service import ConversationService

__all__ = ["ConversationService"]

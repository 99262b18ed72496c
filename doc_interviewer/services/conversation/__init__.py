"""Conversation orchestration and persistence."""

from .service import ConversationService, ConversationStatus

__all__ = ["ConversationService", "ConversationStatus"]

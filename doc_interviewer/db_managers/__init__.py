"""Managers: take a DB session and provide access to models."""

from .conversation_manager import ConversationManager

__all__ = ["ConversationManager"]

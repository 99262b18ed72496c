"""Prompt strings for LLM tasks."""

from .analyze_system import ANALYZE_SYSTEM_PROMPT

__all__ = ["ANALYZE_SYSTEM_PROMPT"]

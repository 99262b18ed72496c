"""Pluggable codebase analysis."""

from .analyzer import Analyzer, LLMAnalyzer

__all__ = ["Analyzer", "LLMAnalyzer"]

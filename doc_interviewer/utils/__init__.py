"""Shared helpers: project-file detection and the async OpenAI batch runner."""

from .project_file import is_project_file, is_scan_excluded_file

__all__ = ["is_project_file", "is_scan_excluded_file"]

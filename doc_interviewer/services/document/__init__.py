"""Document export."""

from .export import write_document

__all__ = ["write_document"]

"""Data extractors for source services."""

from .base import BaseExtractor, PageResult
from .freshbooks_extractor import FreshBooksExtractor

__all__ = [
    "BaseExtractor",
    "PageResult",
    "FreshBooksExtractor",
]

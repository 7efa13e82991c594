"""Services used by the migration pipeline."""

from .business_tags import BusinessLine, BusinessTagHelper
from .category_mapping import CategoryMapping
from .id_registry import IDMappingRegistry, NameIndex, fingerprint, normalize_key
from .token_manager import TokenManager, TokenSet

__all__ = [
    "BusinessLine",
    "BusinessTagHelper",
    "CategoryMapping",
    "IDMappingRegistry",
    "NameIndex",
    "fingerprint",
    "normalize_key",
    "TokenManager",
    "TokenSet",
]

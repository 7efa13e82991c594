"""Hierarchical chart-of-accounts layout taken from configuration."""

from typing import Dict, List, Optional

from ..models.config import CategoryMappingConfig
from .id_registry import normalize_key

FALLBACK_CATEGORY = "Other Expenses"


class CategoryMapping:
    """Resolves FreshBooks category names against the configured hierarchy."""

    def __init__(self, config: CategoryMappingConfig):
        self.config = config
        self._translations = {normalize_key(k): v for k, v in config.mappings.items()}
        self._parent_of: Dict[str, str] = {}
        self._names: Dict[str, str] = {}

        for parent, children in config.parents.items():
            self._names.setdefault(normalize_key(parent), parent)
            for child in children:
                self._names.setdefault(normalize_key(child), child)
                self._parent_of.setdefault(normalize_key(child), parent)

    @property
    def parent_categories(self) -> List[str]:
        return list(self.config.parents)

    def children(self, parent: str) -> List[str]:
        return list(self.config.parents.get(parent, []))

    @property
    def all_category_names(self) -> List[str]:
        return list(self._names.values())

    def parent_name(self, category: str) -> Optional[str]:
        """Parent of a child category; None for parents and unknown names."""
        return self._parent_of.get(normalize_key(category))

    def is_parent(self, category: str) -> bool:
        return category in self.config.parents

    def exists(self, category: str) -> bool:
        return normalize_key(category) in self._names

    @property
    def default_category(self) -> str:
        if self.config.default_category:
            return self.config.default_category
        for name in self.all_category_names:
            if "other" in name.lower():
                return name
        return self.parent_categories[0] if self.parent_categories else FALLBACK_CATEGORY

    def target_for(self, source_name: str) -> str:
        """
        Configured category a FreshBooks category lands in.

        Explicit translations win; a name already present in the hierarchy
        maps to itself; anything else goes to the default category.
        """
        translated = self._translations.get(normalize_key(source_name))
        if translated:
            return translated
        if self.exists(source_name):
            return self._names[normalize_key(source_name)]
        return self.default_category

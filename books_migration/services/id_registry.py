"""Source-to-destination ID mappings and destination dedup indexes."""

import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ..exceptions import RegistryConflictError
from ..models.migration import EntityType

logger = logging.getLogger(__name__)


def normalize_key(value: str) -> str:
    """Case- and whitespace-insensitive form of a natural key."""
    return " ".join(value.split()).casefold()


class NameIndex:
    """Case-insensitive natural key -> destination ID lookup."""

    def __init__(self, entries: Iterable[Tuple[str, str]] = ()):
        self._entries: Dict[str, str] = {}
        for key, dest_id in entries:
            self.add(key, dest_id)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return normalize_key(key) in self._entries

    def add(self, key: str, dest_id: str) -> None:
        """Index a key. The first destination record seen for a key wins."""
        if not key:
            return
        self._entries.setdefault(normalize_key(key), dest_id)

    def lookup(self, key: Optional[str]) -> Optional[str]:
        if not key:
            return None
        return self._entries.get(normalize_key(key))


class FingerprintIndex:
    """
    Fingerprint -> destination IDs of records already listed in Zoho.

    Several listed records can share a fingerprint. Each listed record
    matches at most one source record; ``claim`` hands them out in
    listing order.
    """

    def __init__(self, entries: Iterable[Tuple[str, str]] = ()):
        self._entries: Dict[str, List[str]] = {}
        for key, dest_id in entries:
            self.add(key, dest_id)

    def __len__(self) -> int:
        return sum(len(ids) for ids in self._entries.values())

    def add(self, key: str, dest_id: str) -> None:
        self._entries.setdefault(key, []).append(dest_id)

    def claim(self, key: str) -> Optional[str]:
        """Take the next unmatched destination ID for a fingerprint."""
        ids = self._entries.get(key)
        if not ids:
            return None
        dest_id = ids.pop(0)
        if not ids:
            del self._entries[key]
        return dest_id


class IDMappingRegistry:
    """
    Per-run record of which destination ID each source record became.

    Mappings are write-once: registering the same pair again is a no-op,
    registering a different destination ID for a mapped key raises
    ``RegistryConflictError``.
    """

    def __init__(self):
        self._mappings: Dict[EntityType, Dict[int, str]] = {e: {} for e in EntityType}
        self._indexes: Dict[EntityType, NameIndex] = {e: NameIndex() for e in EntityType}
        self._fingerprints: Dict[EntityType, FingerprintIndex] = {}
        self._indexed: Set[EntityType] = set()

    def register(self, entity: EntityType, source_id: int, dest_id: str) -> None:
        mappings = self._mappings[entity]
        existing = mappings.get(source_id)
        if existing is not None:
            if existing != dest_id:
                raise RegistryConflictError(entity.value, source_id, existing, dest_id)
            return
        mappings[source_id] = dest_id

    def resolve(self, entity: EntityType, source_id: Optional[int]) -> Optional[str]:
        if source_id is None:
            return None
        return self._mappings[entity].get(source_id)

    def mappings(self, entity: EntityType) -> Mapping[int, str]:
        """Read-only view of an entity type's mappings."""
        return MappingProxyType(self._mappings[entity])

    def count(self, entity: EntityType) -> int:
        return len(self._mappings[entity])

    # Dedup indexes

    def index(self, entity: EntityType) -> NameIndex:
        return self._indexes[entity]

    def rebuild_index(self, entity: EntityType, entries: Iterable[Tuple[str, str]]) -> NameIndex:
        """Replace an index with a fresh destination listing."""
        index = NameIndex(entries)
        self._indexes[entity] = index
        self._indexed.add(entity)
        logger.debug(f"Indexed {len(index)} existing {entity.value}")
        return index

    def fingerprints(self, entity: EntityType) -> FingerprintIndex:
        return self._fingerprints.setdefault(entity, FingerprintIndex())

    def rebuild_fingerprints(self, entity: EntityType, entries: Iterable[Tuple[str, str]]) -> FingerprintIndex:
        """Replace a fingerprint index with a fresh destination listing."""
        index = FingerprintIndex(entries)
        self._fingerprints[entity] = index
        self._indexed.add(entity)
        logger.debug(f"Fingerprinted {len(index)} existing {entity.value}")
        return index

    def is_indexed(self, entity: EntityType) -> bool:
        return entity in self._indexed


def fingerprint(*parts: object) -> str:
    """Natural key for records without a unique name (expenses, payments)."""
    rendered = []
    for part in parts:
        if part is None:
            rendered.append("")
        elif isinstance(part, float):
            rendered.append(f"{part:.2f}")
        else:
            rendered.append(normalize_key(str(part)))
    return "|".join(rendered)

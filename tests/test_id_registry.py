"""Tests for the ID registry and dedup indexes."""

import pytest

from books_migration.exceptions import RegistryConflictError
from books_migration.models.migration import EntityType
from books_migration.services.id_registry import (
    FingerprintIndex,
    IDMappingRegistry,
    NameIndex,
    fingerprint,
    normalize_key,
)


class TestNormalizeKey:
    def test_case_and_whitespace_insensitive(self):
        assert normalize_key("  Acme   Corp ") == normalize_key("ACME corp")

    def test_casefold(self):
        assert normalize_key("STRASSE") == normalize_key("straße")


class TestNameIndex:
    """Case-insensitive name lookups"""

    def test_lookup_ignores_case(self):
        index = NameIndex([("Office Supplies", "A1")])

        assert index.lookup("office supplies") == "A1"
        assert "OFFICE SUPPLIES" in index

    def test_first_entry_wins(self):
        index = NameIndex([("Rent", "A1"), ("RENT", "A2")])

        assert index.lookup("rent") == "A1"
        assert len(index) == 1

    def test_empty_keys_ignored(self):
        index = NameIndex([("", "A1")])

        assert len(index) == 0
        assert index.lookup("") is None
        assert index.lookup(None) is None


class TestIDMappingRegistry:
    """Write-once source -> destination mappings"""

    def test_register_and_resolve(self):
        registry = IDMappingRegistry()

        registry.register(EntityType.CUSTOMER, 10, "Z10")

        assert registry.resolve(EntityType.CUSTOMER, 10) == "Z10"
        assert registry.resolve(EntityType.VENDOR, 10) is None
        assert registry.resolve(EntityType.CUSTOMER, None) is None

    def test_identical_reregistration_is_noop(self):
        registry = IDMappingRegistry()

        registry.register(EntityType.TAX, 1, "T1")
        registry.register(EntityType.TAX, 1, "T1")

        assert registry.count(EntityType.TAX) == 1

    def test_conflicting_registration_raises(self):
        registry = IDMappingRegistry()
        registry.register(EntityType.TAX, 1, "T1")

        with pytest.raises(RegistryConflictError) as exc_info:
            registry.register(EntityType.TAX, 1, "T2")

        assert exc_info.value.existing_id == "T1"
        assert registry.resolve(EntityType.TAX, 1) == "T1"

    def test_mappings_view_is_read_only(self):
        registry = IDMappingRegistry()
        registry.register(EntityType.ITEM, 1, "I1")

        view = registry.mappings(EntityType.ITEM)

        assert dict(view) == {1: "I1"}
        with pytest.raises(TypeError):
            view[2] = "I2"

    def test_rebuild_index_replaces_entries(self):
        registry = IDMappingRegistry()
        assert not registry.is_indexed(EntityType.ACCOUNT)

        registry.rebuild_index(EntityType.ACCOUNT, [("Rent", "A1")])
        registry.rebuild_index(EntityType.ACCOUNT, [("Travel", "A2")])

        assert registry.is_indexed(EntityType.ACCOUNT)
        assert registry.index(EntityType.ACCOUNT).lookup("Rent") is None
        assert registry.index(EntityType.ACCOUNT).lookup("travel") == "A2"


class TestFingerprint:
    def test_amounts_rendered_to_cents(self):
        assert fingerprint("2024-01-05", 12.5, "Lunch") == fingerprint("2024-01-05", 12.50, "LUNCH")

    def test_none_parts_are_blank(self):
        assert fingerprint(None, 1.0, None) == "|1.00|"

    def test_different_amounts_differ(self):
        assert fingerprint("2024-01-05", 12.5) != fingerprint("2024-01-05", 12.51)


class TestFingerprintIndex:
    """Listed records matched at most once"""

    def test_each_listed_record_is_claimed_once(self):
        index = FingerprintIndex([("k", "E1"), ("k", "E2"), ("other", "E3")])

        assert len(index) == 3
        assert index.claim("k") == "E1"
        assert index.claim("k") == "E2"
        assert index.claim("k") is None
        assert len(index) == 1

    def test_unknown_key(self):
        assert FingerprintIndex().claim("k") is None

    def test_registry_rebuild_replaces_fingerprints(self):
        registry = IDMappingRegistry()

        registry.rebuild_fingerprints(EntityType.EXPENSE, [("k", "E1")])
        registry.fingerprints(EntityType.EXPENSE).claim("k")
        registry.rebuild_fingerprints(EntityType.EXPENSE, [("k", "E1")])

        assert registry.is_indexed(EntityType.EXPENSE)
        assert registry.fingerprints(EntityType.EXPENSE).claim("k") == "E1"

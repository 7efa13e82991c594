"""Tests for ZohoLoader listing, creation and dry-run behavior."""

from unittest.mock import MagicMock

import pytest

from books_migration.exceptions import DestinationAPIError, DestinationError
from books_migration.loaders.zoho_loader import LIST_PAGE_SIZE, ZohoLoader
from books_migration.models.destination import (
    AccountType,
    ContactType,
    ZBAccountCreateRequest,
    ZBAccountUpdateRequest,
    ZBContactCreateRequest,
)


def page(key, records, has_more):
    return {"code": 0, key: records, "page_context": {"has_more_page": has_more}}


class TestListing:
    """has_more_page pagination"""

    def test_follows_has_more_page(self):
        gateway = MagicMock()
        gateway.execute.side_effect = [
            page("contacts", [{"contact_id": "1", "contact_name": "A"}], True),
            page("contacts", [{"contact_id": "2", "contact_name": "B"}], True),
            page("contacts", [{"contact_id": "3", "contact_name": "C"}], False),
        ]

        contacts = ZohoLoader(gateway).list_contacts(ContactType.VENDOR)

        assert [c.contact_name for c in contacts] == ["A", "B", "C"]
        pages = [c.kwargs["params"]["page"] for c in gateway.execute.call_args_list]
        assert pages == [1, 2, 3]
        first = gateway.execute.call_args_list[0]
        assert first.args == ("GET", "/contacts")
        assert first.kwargs["params"]["contact_type"] == "vendor"
        assert first.kwargs["params"]["per_page"] == LIST_PAGE_SIZE

    def test_missing_page_context_ends_listing(self):
        gateway = MagicMock()
        gateway.execute.return_value = {"code": 0, "taxes": [{"tax_id": "9", "tax_name": "GST"}]}

        taxes = ZohoLoader(gateway).list_taxes()

        assert len(taxes) == 1
        assert gateway.execute.call_count == 1

    def test_accounts_accept_alternate_key(self):
        gateway = MagicMock()
        gateway.execute.return_value = page(
            "chart_of_accounts", [{"account_id": "1", "account_name": "Rent", "account_type": "expense"}], False
        )

        accounts = ZohoLoader(gateway).list_accounts()

        assert accounts[0].account_name == "Rent"

    def test_nonzero_code_raises(self):
        gateway = MagicMock()
        gateway.execute.return_value = {"code": 57, "message": "You are not authorized"}

        with pytest.raises(DestinationAPIError) as exc_info:
            ZohoLoader(gateway).list_items()

        assert exc_info.value.code == 57
        assert not exc_info.value.is_duplicate

    def test_undecodable_record_raises_destination_error(self):
        gateway = MagicMock()
        gateway.execute.return_value = page("items", [{"item_id": "1", "name": None}], False)

        with pytest.raises(DestinationError, match="unexpected items payload"):
            ZohoLoader(gateway).list_items()


class TestCreate:
    """Creation through the gateway"""

    def test_returns_created_entity(self, zoho):
        loader = ZohoLoader(zoho)

        contact = loader.create_contact(
            ZBContactCreateRequest(contact_name="Acme", contact_type=ContactType.CUSTOMER)
        )

        assert contact.contact_id
        assert zoho.created("/contacts") == [{"contact_name": "Acme", "contact_type": "customer"}]

    def test_duplicate_code_is_flagged(self, zoho):
        zoho.add("/contacts", contact_name="Acme", contact_type="customer")
        loader = ZohoLoader(zoho)

        with pytest.raises(DestinationAPIError) as exc_info:
            loader.create_contact(ZBContactCreateRequest(contact_name="ACME", contact_type=ContactType.CUSTOMER))

        assert exc_info.value.is_duplicate

    def test_missing_id_raises(self):
        gateway = MagicMock()
        gateway.execute.return_value = {"code": 0, "contact": {"contact_name": "Acme"}}

        with pytest.raises(DestinationError):
            ZohoLoader(gateway).create_contact(
                ZBContactCreateRequest(contact_name="Acme", contact_type=ContactType.CUSTOMER)
            )

    def test_update_account_sends_put(self, zoho):
        account = zoho.add("/chartofaccounts", account_name="Software", account_type="expense")

        ZohoLoader(zoho).update_account(account["account_id"], ZBAccountUpdateRequest(parent_account_id="P1"))

        assert ("PUT", f"/chartofaccounts/{account['account_id']}", {"parent_account_id": "P1"}) in zoho.calls
        assert account["parent_account_id"] == "P1"

    def test_mark_invoice_sent(self, zoho):
        ZohoLoader(zoho).mark_invoice_sent("INV9")

        assert zoho.sent_invoices == ["INV9"]


class TestDryRun:
    """Dry-run writes never reach the gateway"""

    def test_create_returns_unique_placeholders(self):
        gateway = MagicMock()
        loader = ZohoLoader(gateway, dry_run=True)
        request = ZBAccountCreateRequest(account_name="Rent", account_type=AccountType.EXPENSE)

        first = loader.create_account(request)
        second = loader.create_account(request)

        assert first.account_id.startswith("dry-run-")
        assert first.account_id != second.account_id
        assert first.account_name == "Rent"
        gateway.execute.assert_not_called()

    def test_update_and_mark_sent_are_skipped(self):
        gateway = MagicMock()
        loader = ZohoLoader(gateway, dry_run=True)

        assert loader.update_account("1", ZBAccountUpdateRequest(parent_account_id="2")) is None
        loader.mark_invoice_sent("INV1")

        gateway.execute.assert_not_called()

    def test_listing_still_reads(self):
        gateway = MagicMock()
        gateway.execute.return_value = page("items", [{"item_id": "1", "name": "Widget"}], False)

        items = ZohoLoader(gateway, dry_run=True).list_items()

        assert [i.name for i in items] == ["Widget"]

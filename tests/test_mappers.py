"""Tests for FreshBooks -> Zoho Books field mappers."""

from books_migration.models.config import BusinessTagConfig
from books_migration.models.destination import AccountType, ContactType
from books_migration.models.source import (
    FBCategory,
    FBClient,
    FBExpense,
    FBInvoice,
    FBItem,
    FBPayment,
    FBTax,
    FBVendor,
)
from books_migration.services.business_tags import BusinessTagHelper
from books_migration.services.mappers import (
    configured_account,
    map_account,
    map_customer,
    map_customer_from_invoice,
    map_expense,
    map_invoice,
    map_item,
    map_payment,
    map_tax,
    map_vendor,
    map_vendor_from_expense,
    parse_amount,
)


class TestParseAmount:
    def test_parses_decimal_strings(self):
        assert parse_amount("1,234.50") == 1234.5

    def test_malformed_is_none(self):
        assert parse_amount("n/a") is None
        assert parse_amount(None) is None


class TestContacts:
    def test_customer_prefers_organization(self):
        client = FBClient(id=1, organization="Acme Ltd", fname="Jo", lname="Smith", email="jo@acme.test",
                          p_street="1 Main St", p_city="Springfield", p_country="US")

        request = map_customer(client)

        assert request.contact_name == "Acme Ltd"
        assert request.contact_type == ContactType.CUSTOMER
        assert request.billing_address.city == "Springfield"
        assert request.shipping_address is None
        assert request.contact_persons[0].email == "jo@acme.test"

    def test_customer_falls_back_to_person_then_id(self):
        assert map_customer(FBClient(id=2, fname="Jo", lname="Smith")).contact_name == "Jo Smith"
        assert map_customer(FBClient(id=3)).contact_name == "Unknown Client 3"

    def test_name_override(self):
        request = map_customer(FBClient(id=1, organization="ACME"), {"ACME": "Acme Corporation"})

        assert request.contact_name == "Acme Corporation"

    def test_customer_from_invoice(self):
        invoice = FBInvoice(id=9, customerid=4, fname="Ana", lname="Lee", city="Paris", country="FR")

        request = map_customer_from_invoice(invoice)

        assert request.contact_name == "Ana Lee"
        assert request.billing_address.country == "FR"

    def test_customer_from_invoice_needs_a_name(self):
        assert map_customer_from_invoice(FBInvoice(id=9, customerid=4)) is None

    def test_vendor(self):
        vendor = FBVendor(vendorid=5, vendor_name="Paper Co", primary_contact_email="sales@paper.test")

        request = map_vendor(vendor)

        assert request.contact_name == "Paper Co"
        assert request.contact_type == ContactType.VENDOR
        assert request.contact_persons[0].email == "sales@paper.test"

    def test_vendor_from_expense(self):
        expense = FBExpense(id=1, vendor="  Corner Cafe ", amount={"amount": "4.50", "code": "CAD"})

        request = map_vendor_from_expense(expense)

        assert request.contact_name == "Corner Cafe"
        assert request.currency_code == "CAD"
        assert map_vendor_from_expense(FBExpense(id=2)) is None


class TestAccountsTaxesItems:
    def test_account_from_category(self):
        request = map_account(FBCategory(id=1, categoryid=77, category="Materials", is_cogs=True))

        assert request.account_name == "Materials"
        assert request.account_type == AccountType.COST_OF_GOODS_SOLD
        assert request.account_code == "77"

    def test_configured_account_detects_cogs(self):
        assert configured_account("Cost of Goods Sold").account_type == AccountType.COST_OF_GOODS_SOLD
        assert configured_account("Software", "P1").parent_account_id == "P1"

    def test_tax(self):
        request = map_tax(FBTax(id=1, name="GST", amount="5"))

        assert request.tax_name == "GST"
        assert request.tax_percentage == 5.0
        assert map_tax(FBTax(id=2)) is None

    def test_item(self):
        item = FBItem(id=1, name="Widget", unit_cost={"amount": "9.99", "code": "USD"}, sku="W-1")

        request = map_item(item, tax_id="T1")

        assert request.rate == 9.99
        assert request.tax_id == "T1"
        assert request.to_payload()["product_type"] == "goods"


class TestInvoice:
    def test_requires_customer(self):
        assert map_invoice(FBInvoice(id=1), None) is None

    def test_line_items_resolve_items_and_taxes(self):
        invoice = FBInvoice.model_validate({
            "id": 1,
            "invoice_number": "INV-001",
            "create_date": "2024-03-01",
            "lines": [
                {"name": "Widget", "qty": "2", "unit_cost": {"amount": "10.00"}, "taxName1": "GST"},
                {"name": "Labour", "unit_cost": {"amount": "50"}},
            ],
        })

        request = map_invoice(
            invoice, "C1",
            item_lookup={"Widget": "I1"}.get,
            tax_lookup={"GST": "T1"}.get,
        )

        first, second = request.line_items
        assert (first.item_id, first.tax_id, first.quantity, first.rate) == ("I1", "T1", 2.0, 10.0)
        assert second.quantity == 1.0
        assert second.item_id is None
        assert request.invoice_number == "INV-001"
        assert request.date == "2024-03-01"

    def test_total_line_without_lines(self):
        invoice = FBInvoice(id=1, amount={"amount": "120.00", "code": "USD"})

        request = map_invoice(invoice, "C1")

        assert [(l.name, l.rate) for l in request.line_items] == [("Invoice Total", 120.0)]


class TestExpense:
    def test_requires_account_and_amount(self):
        expense = FBExpense(id=1, amount={"amount": "10"})

        assert map_expense(expense, None) is None
        assert map_expense(FBExpense(id=2), "A1") is None

    def test_maps_paid_through_and_reference(self):
        expense = FBExpense(id=1, amount={"amount": "25.00", "code": "USD"}, date="2024-02-02",
                            notes="Printer ink", account_name="Business Checking", transactionid=991)

        mapping = map_expense(expense, "A1", vendor_id="V1", paid_through_accounts={"business checking": "B1"})

        request = mapping.request
        assert request.paid_through_account_id == "B1"
        assert request.reference_number == "991"
        assert request.vendor_id == "V1"
        assert mapping.unmapped_paid_through is None

    def test_unmapped_paid_through_is_reported(self):
        expense = FBExpense(id=1, amount={"amount": "5"}, account_name="Old Visa")

        mapping = map_expense(expense, "A1", paid_through_accounts={})

        assert mapping.request.paid_through_account_id is None
        assert mapping.unmapped_paid_through == "Old Visa"

    def test_missing_date_defaults_to_today(self):
        mapping = map_expense(FBExpense(id=1, amount={"amount": "5"}), "A1")

        assert len(mapping.request.date) == 10

    def test_business_tags(self):
        helper = BusinessTagHelper(BusinessTagConfig(
            primary_tag="Consulting",
            secondary_tag="Bakery",
            secondary_start_date="2024-01-01",
            secondary_keywords=["flour"],
            zoho_tag_id="TAG",
            zoho_primary_option_id="OPT-C",
            zoho_secondary_option_id="OPT-B",
        ))
        expense = FBExpense(id=1, amount={"amount": "30"}, date="2024-05-01", notes="Flour delivery")

        mapping = map_expense(expense, "A1", tag_helper=helper)

        assert mapping.business_line.name == "Bakery"
        assert mapping.request.to_payload()["tags"] == [{"tag_id": "TAG", "tag_option_id": "OPT-B"}]


class TestPayment:
    def test_requires_customer_and_positive_amount(self):
        assert map_payment(FBPayment(id=1, amount={"amount": "10"}), None) is None
        assert map_payment(FBPayment(id=1, amount={"amount": "0"}), "C1") is None
        assert map_payment(FBPayment(id=1, amount={"amount": "-5"}), "C1") is None

    def test_applies_to_invoice_and_resolves_deposit(self):
        payment = FBPayment(id=1, amount={"amount": "40"}, date="2024-04-04", gateway="Stripe",
                            type="Credit Card", transactionid="ch_123")

        mapping = map_payment(payment, "C1", invoice_id="INV1", deposit_accounts={"stripe": "D1"})

        request = mapping.request
        assert request.payment_mode == "credit_card"
        assert request.account_id == "D1"
        assert request.invoices[0].invoice_id == "INV1"
        assert request.invoices[0].amount_applied == 40.0
        assert request.reference_number == "ch_123"
        assert mapping.unmapped_key is None

    def test_unmapped_deposit_key(self):
        payment = FBPayment(id=1, amount={"amount": "40"}, type="Cash")

        mapping = map_payment(payment, "C1", deposit_accounts={"default": "D0"})

        assert mapping.request.account_id == "D0"
        assert mapping.unmapped_key == "Cash"

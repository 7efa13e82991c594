"""Field mappers turning FreshBooks records into Zoho Books requests.

Mappers are pure: every destination ID they need is passed in already
resolved, and ``None`` means the record cannot be migrated.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_cls
from typing import Callable, List, Mapping, Optional

from ..models.destination import (
    AccountType,
    ContactType,
    ZBAccountCreateRequest,
    ZBAddress,
    ZBContactCreateRequest,
    ZBContactPerson,
    ZBExpenseCreateRequest,
    ZBInvoiceCreateRequest,
    ZBInvoiceLineItemRequest,
    ZBItemCreateRequest,
    ZBPaymentCreateRequest,
    ZBPaymentInvoice,
    ZBTaxCreateRequest,
)
from ..models.source import (
    FBCategory,
    FBClient,
    FBExpense,
    FBInvoice,
    FBItem,
    FBMoney,
    FBPayment,
    FBTax,
    FBVendor,
)
from .business_tags import BusinessLine, BusinessTagHelper
from .lookup_tables import payment_mode, resolve_deposit_account

logger = logging.getLogger(__name__)

ACCOUNT_DESCRIPTION = "Imported from FreshBooks category"

# Resolves a name (tax, item) to a destination ID
NameLookup = Callable[[Optional[str]], Optional[str]]


def _no_lookup(name: Optional[str]) -> Optional[str]:
    return None


def parse_amount(value: Optional[str]) -> Optional[float]:
    """Parse a FreshBooks decimal string; None for missing or malformed values."""
    if value is None:
        return None
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        return None


def money_amount(money: Optional[FBMoney]) -> Optional[float]:
    return parse_amount(money.amount) if money else None


def today() -> str:
    return date_cls.today().isoformat()


def _join(*parts: Optional[str]) -> Optional[str]:
    lines = [p for p in parts if p]
    return "\n".join(lines) if lines else None


def _override(name: str, overrides: Optional[Mapping[str, str]]) -> str:
    if overrides:
        return overrides.get(name, name)
    return name


# Contacts

def map_customer(client: FBClient, name_overrides: Optional[Mapping[str, str]] = None) -> ZBContactCreateRequest:
    display_name = client.display_name or f"Unknown Client {client.id}"

    billing_address = None
    if client.p_street or client.p_city or client.p_country:
        billing_address = ZBAddress(
            address=_join(client.p_street, client.p_street2),
            city=client.p_city,
            state=client.p_province,
            zip=client.p_code,
            country=client.p_country,
        )

    shipping_address = None
    if client.s_street or client.s_city or client.s_country:
        shipping_address = ZBAddress(
            address=_join(client.s_street, client.s_street2),
            city=client.s_city,
            state=client.s_province,
            zip=client.s_code,
            country=client.s_country,
        )

    contact_persons = None
    if client.fname or client.lname or client.email:
        contact_persons = [ZBContactPerson(
            first_name=client.fname,
            last_name=client.lname,
            email=client.email,
            phone=client.bus_phone or client.home_phone,
            mobile=client.mob_phone,
            is_primary_contact=True,
        )]

    return ZBContactCreateRequest(
        contact_name=_override(display_name, name_overrides),
        contact_type=ContactType.CUSTOMER,
        company_name=client.organization,
        billing_address=billing_address,
        shipping_address=shipping_address,
        contact_persons=contact_persons,
        currency_code=client.currency_code,
        notes=client.note,
        tax_id=client.vat_number,
    )


def map_customer_from_invoice(
    invoice: FBInvoice,
    name_overrides: Optional[Mapping[str, str]] = None,
) -> Optional[ZBContactCreateRequest]:
    """Minimal customer built from the client details embedded on an invoice."""
    name = invoice.organization or f"{invoice.fname or ''} {invoice.lname or ''}".strip()
    if not name:
        return None

    billing_address = None
    if invoice.street or invoice.city or invoice.country:
        billing_address = ZBAddress(
            address=_join(invoice.street, invoice.street2),
            city=invoice.city,
            state=invoice.province,
            zip=invoice.code,
            country=invoice.country,
        )

    contact_persons = None
    if invoice.fname or invoice.lname:
        contact_persons = [ZBContactPerson(
            first_name=invoice.fname,
            last_name=invoice.lname,
            is_primary_contact=True,
        )]

    return ZBContactCreateRequest(
        contact_name=_override(name, name_overrides),
        contact_type=ContactType.CUSTOMER,
        company_name=invoice.organization,
        billing_address=billing_address,
        contact_persons=contact_persons,
        currency_code=invoice.currency_code,
        tax_id=invoice.vat_number,
    )


def map_vendor(vendor: FBVendor, name_overrides: Optional[Mapping[str, str]] = None) -> ZBContactCreateRequest:
    display_name = vendor.display_name or f"Unknown Vendor {vendor.id}"

    billing_address = None
    if vendor.street or vendor.city or vendor.country:
        billing_address = ZBAddress(
            address=_join(vendor.street, vendor.street2),
            city=vendor.city,
            state=vendor.province,
            zip=vendor.postal_code,
            country=vendor.country,
            phone=vendor.phone,
        )

    contact_persons = None
    if vendor.primary_contact_first_name or vendor.primary_contact_last_name or vendor.primary_contact_email:
        contact_persons = [ZBContactPerson(
            first_name=vendor.primary_contact_first_name,
            last_name=vendor.primary_contact_last_name,
            email=vendor.primary_contact_email,
            phone=vendor.phone,
            is_primary_contact=True,
        )]

    return ZBContactCreateRequest(
        contact_name=_override(display_name, name_overrides),
        contact_type=ContactType.VENDOR,
        company_name=vendor.vendor_name,
        billing_address=billing_address,
        contact_persons=contact_persons,
        currency_code=vendor.currency_code,
        notes=vendor.note,
        website=vendor.website,
        tax_id=vendor.tax_id,
    )


def map_vendor_from_expense(
    expense: FBExpense,
    name_overrides: Optional[Mapping[str, str]] = None,
) -> Optional[ZBContactCreateRequest]:
    """Minimal vendor built from the merchant name on an expense."""
    name = (expense.vendor or "").strip()
    if not name:
        return None
    return ZBContactCreateRequest(
        contact_name=_override(name, name_overrides),
        contact_type=ContactType.VENDOR,
        currency_code=expense.amount.code if expense.amount else None,
    )


# Chart of accounts, taxes, items

def map_account(category: FBCategory) -> ZBAccountCreateRequest:
    return ZBAccountCreateRequest(
        account_name=category.name,
        account_type=AccountType.COST_OF_GOODS_SOLD if category.is_cogs else AccountType.EXPENSE,
        account_code=str(category.category_id) if category.category_id is not None else None,
        description=ACCOUNT_DESCRIPTION,
    )


def configured_account(name: str, parent_account_id: Optional[str] = None) -> ZBAccountCreateRequest:
    """Account for a category from the configured hierarchy."""
    is_cogs = "cost of" in name.lower()
    return ZBAccountCreateRequest(
        account_name=name,
        account_type=AccountType.COST_OF_GOODS_SOLD if is_cogs else AccountType.EXPENSE,
        parent_account_id=parent_account_id,
    )


def map_tax(tax: FBTax) -> Optional[ZBTaxCreateRequest]:
    if not tax.name:
        return None
    return ZBTaxCreateRequest(
        tax_name=tax.name,
        tax_percentage=parse_amount(tax.amount) or 0.0,
        tax_type="tax",
    )


def map_item(item: FBItem, tax_id: Optional[str] = None) -> ZBItemCreateRequest:
    return ZBItemCreateRequest(
        name=item.display_name,
        description=item.description,
        rate=money_amount(item.unit_cost),
        sku=item.sku,
        tax_id=tax_id,
        product_type="goods",
    )


# Transactions

def map_invoice(
    invoice: FBInvoice,
    customer_id: Optional[str],
    item_lookup: NameLookup = _no_lookup,
    tax_lookup: NameLookup = _no_lookup,
) -> Optional[ZBInvoiceCreateRequest]:
    """Map an invoice; None when its customer has no destination ID."""
    if not customer_id:
        return None

    line_items: List[ZBInvoiceLineItemRequest] = []
    for line in invoice.lines or []:
        quantity = parse_amount(line.qty)
        line_items.append(ZBInvoiceLineItemRequest(
            name=line.name or "Item",
            description=line.description,
            rate=money_amount(line.unit_cost) or 0.0,
            quantity=quantity if quantity is not None else 1.0,
            item_id=item_lookup(line.name),
            tax_id=tax_lookup(line.tax_name1),
        ))

    if not line_items:
        total = money_amount(invoice.amount)
        if total is not None:
            line_items.append(ZBInvoiceLineItemRequest(
                name="Invoice Total",
                description=invoice.description,
                rate=total,
                quantity=1.0,
            ))

    return ZBInvoiceCreateRequest(
        customer_id=customer_id,
        line_items=line_items,
        invoice_number=invoice.invoice_number,
        reference_number=invoice.po_number,
        date=invoice.create_date,
        due_date=invoice.due_date,
        currency_code=invoice.currency_code,
        notes=invoice.notes,
        terms=invoice.terms,
        is_inclusive_tax=False,
    )


@dataclass
class ExpenseMapping:
    request: ZBExpenseCreateRequest
    business_line: Optional[BusinessLine] = None
    unmapped_paid_through: Optional[str] = None


def map_expense(
    expense: FBExpense,
    account_id: Optional[str],
    vendor_id: Optional[str] = None,
    customer_id: Optional[str] = None,
    tax_lookup: NameLookup = _no_lookup,
    paid_through_accounts: Optional[Mapping[str, str]] = None,
    tag_helper: Optional[BusinessTagHelper] = None,
) -> Optional[ExpenseMapping]:
    """Map an expense; None without an account or a readable amount."""
    if not account_id:
        return None

    amount = money_amount(expense.amount)
    if amount is None:
        return None

    business_line = None
    tags = None
    if tag_helper is not None:
        business_line = tag_helper.determine(expense.date, expense.notes)
        tags = tag_helper.tags_for(business_line)

    paid_through_id = None
    unmapped = None
    # No account name is normal for manually entered expenses
    if expense.account_name:
        paid_through_id = (paid_through_accounts or {}).get(expense.account_name.lower())
        if paid_through_id is None:
            unmapped = expense.account_name

    request = ZBExpenseCreateRequest(
        account_id=account_id,
        date=expense.date or today(),
        amount=amount,
        paid_through_account_id=paid_through_id,
        vendor_id=vendor_id,
        customer_id=customer_id,
        tax_id=tax_lookup(expense.tax_name1),
        is_billable=expense.billable,
        currency_code=expense.amount.code if expense.amount else None,
        reference_number=str(expense.transaction_id) if expense.transaction_id is not None else None,
        description=expense.notes,
        tags=tags,
    )

    return ExpenseMapping(
        request=request,
        business_line=business_line,
        unmapped_paid_through=unmapped,
    )


@dataclass
class PaymentMapping:
    request: ZBPaymentCreateRequest
    unmapped_key: Optional[str] = None


def map_payment(
    payment: FBPayment,
    customer_id: Optional[str],
    invoice_id: Optional[str] = None,
    deposit_accounts: Optional[Mapping[str, str]] = None,
) -> Optional[PaymentMapping]:
    """Map a payment; None without a customer or a positive amount."""
    if not customer_id:
        return None

    amount = money_amount(payment.amount)
    if amount is None or amount <= 0:
        return None

    invoices = None
    if invoice_id:
        invoices = [ZBPaymentInvoice(invoice_id=invoice_id, amount_applied=amount)]

    deposit = resolve_deposit_account(payment.gateway, payment.type, deposit_accounts or {})

    request = ZBPaymentCreateRequest(
        customer_id=customer_id,
        amount=amount,
        date=payment.date or today(),
        payment_mode=payment_mode(payment.gateway, payment.type),
        invoices=invoices,
        reference_number=payment.transaction_id,
        description=payment.note,
        account_id=deposit.account_id,
    )

    return PaymentMapping(
        request=request,
        unmapped_key=deposit.unmapped_key,
    )

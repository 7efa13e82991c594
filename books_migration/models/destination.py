"""Zoho Books entities and request payloads."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class AccountType(str, Enum):
    """Chart-of-accounts types used by the migration."""
    EXPENSE = "expense"
    COST_OF_GOODS_SOLD = "cost_of_goods_sold"
    OTHER_EXPENSE = "other_expense"
    BANK = "bank"
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    INCOME = "income"


class ContactType(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"


class DestinationEntity(BaseModel):
    """Record read back from Zoho Books. Unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")


class DestinationRequest(BaseModel):
    """Create/update payload sent to Zoho Books."""

    def to_payload(self) -> Dict[str, Any]:
        """Serialize without unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


class ZBAddress(BaseModel):
    attention: Optional[str] = None
    address: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None


class ZBContactPerson(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    is_primary_contact: Optional[bool] = None


class ZBTag(BaseModel):
    tag_id: str
    tag_option_id: str


# Entities

class ZBContact(DestinationEntity):
    contact_id: Optional[str] = None
    contact_name: str = ""
    company_name: Optional[str] = None
    contact_type: Optional[str] = None
    currency_code: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None


class ZBAccount(DestinationEntity):
    account_id: Optional[str] = None
    account_name: str = ""
    account_code: Optional[str] = None
    account_type: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    parent_account_id: Optional[str] = None
    parent_account_name: Optional[str] = None
    depth: Optional[int] = None


class ZBTax(DestinationEntity):
    tax_id: Optional[str] = None
    tax_name: str = ""
    tax_percentage: Optional[float] = None
    tax_type: Optional[str] = None
    status: Optional[str] = None


class ZBItem(DestinationEntity):
    item_id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    rate: Optional[float] = None
    sku: Optional[str] = None
    tax_id: Optional[str] = None
    status: Optional[str] = None


class ZBInvoice(DestinationEntity):
    invoice_id: Optional[str] = None
    invoice_number: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    status: Optional[str] = None
    date: Optional[str] = None
    due_date: Optional[str] = None
    currency_code: Optional[str] = None
    total: Optional[float] = None
    balance: Optional[float] = None
    reference_number: Optional[str] = None


class ZBExpense(DestinationEntity):
    expense_id: Optional[str] = None
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    paid_through_account_id: Optional[str] = None
    vendor_id: Optional[str] = None
    date: Optional[str] = None
    amount: Optional[float] = None
    total: Optional[float] = None
    currency_code: Optional[str] = None
    reference_number: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None

    @property
    def effective_amount(self) -> Optional[float]:
        """Listings report ``total``; single-record reads report ``amount``."""
        return self.amount if self.amount is not None else self.total


class ZBPaymentInvoice(BaseModel):
    invoice_id: str
    amount_applied: Optional[float] = None


class ZBPayment(DestinationEntity):
    payment_id: Optional[str] = None
    customer_id: Optional[str] = None
    payment_mode: Optional[str] = None
    amount: Optional[float] = None
    date: Optional[str] = None
    reference_number: Optional[str] = None
    description: Optional[str] = None
    account_id: Optional[str] = None
    invoices: Optional[List[ZBPaymentInvoice]] = None
    # Listings report the applied invoices as a comma-separated string
    invoice_numbers: Optional[str] = None


# Requests

class ZBContactCreateRequest(DestinationRequest):
    contact_name: str
    contact_type: ContactType
    company_name: Optional[str] = None
    billing_address: Optional[ZBAddress] = None
    shipping_address: Optional[ZBAddress] = None
    contact_persons: Optional[List[ZBContactPerson]] = None
    currency_code: Optional[str] = None
    notes: Optional[str] = None
    website: Optional[str] = None
    tax_id: Optional[str] = None


class ZBAccountCreateRequest(DestinationRequest):
    account_name: str
    account_type: AccountType = AccountType.EXPENSE
    account_code: Optional[str] = None
    description: Optional[str] = None
    parent_account_id: Optional[str] = None


class ZBAccountUpdateRequest(DestinationRequest):
    account_name: Optional[str] = None
    parent_account_id: Optional[str] = None


class ZBTaxCreateRequest(DestinationRequest):
    tax_name: str
    tax_percentage: float
    tax_type: Optional[str] = None


class ZBItemCreateRequest(DestinationRequest):
    name: str
    description: Optional[str] = None
    rate: Optional[float] = None
    unit: Optional[str] = None
    sku: Optional[str] = None
    tax_id: Optional[str] = None
    product_type: Optional[str] = None


class ZBInvoiceLineItemRequest(BaseModel):
    name: str
    description: Optional[str] = None
    rate: float = 0.0
    quantity: float = 1.0
    item_id: Optional[str] = None
    tax_id: Optional[str] = None


class ZBInvoiceCreateRequest(DestinationRequest):
    customer_id: str
    line_items: List[ZBInvoiceLineItemRequest]
    invoice_number: Optional[str] = None
    reference_number: Optional[str] = None
    date: Optional[str] = None
    due_date: Optional[str] = None
    currency_code: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    payment_terms: Optional[int] = None
    is_inclusive_tax: Optional[bool] = None


class ZBExpenseCreateRequest(DestinationRequest):
    account_id: str
    date: str
    amount: float
    paid_through_account_id: Optional[str] = None
    vendor_id: Optional[str] = None
    customer_id: Optional[str] = None
    tax_id: Optional[str] = None
    is_billable: Optional[bool] = None
    currency_code: Optional[str] = None
    reference_number: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[ZBTag]] = None


class ZBPaymentCreateRequest(DestinationRequest):
    customer_id: str
    amount: float
    date: str
    payment_mode: Optional[str] = None
    invoices: Optional[List[ZBPaymentInvoice]] = None
    reference_number: Optional[str] = None
    description: Optional[str] = None
    account_id: Optional[str] = None

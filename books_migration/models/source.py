"""FreshBooks record models as returned by the accounting API."""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class SourceModel(BaseModel):
    """Base for immutable FreshBooks records. Unknown fields are ignored."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    vis_state: Optional[int] = None

    @property
    def is_active(self) -> bool:
        """Archived (1) and deleted (2) records have a nonzero vis_state."""
        return not self.vis_state


class FBMoney(BaseModel):
    """Monetary value; the amount stays a string until a mapper parses it."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    amount: Optional[str] = None
    code: Optional[str] = None


class FBClient(SourceModel):
    id: int
    email: Optional[str] = None
    fname: Optional[str] = None
    lname: Optional[str] = None
    organization: Optional[str] = None
    currency_code: Optional[str] = None
    note: Optional[str] = None
    bus_phone: Optional[str] = None
    home_phone: Optional[str] = None
    mob_phone: Optional[str] = None
    fax: Optional[str] = None
    vat_name: Optional[str] = None
    vat_number: Optional[str] = None
    p_street: Optional[str] = None
    p_street2: Optional[str] = None
    p_city: Optional[str] = None
    p_province: Optional[str] = None
    p_code: Optional[str] = None
    p_country: Optional[str] = None
    s_street: Optional[str] = None
    s_street2: Optional[str] = None
    s_city: Optional[str] = None
    s_province: Optional[str] = None
    s_code: Optional[str] = None
    s_country: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.organization:
            return self.organization
        return f"{self.fname or ''} {self.lname or ''}".strip()


class FBVendor(SourceModel):
    id: int = Field(validation_alias=AliasChoices("id", "vendorid"))
    vendor_name: Optional[str] = None
    primary_contact_first_name: Optional[str] = None
    primary_contact_last_name: Optional[str] = None
    primary_contact_email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    currency_code: Optional[str] = None
    note: Optional[str] = None
    tax_id: Optional[str] = None
    account_number: Optional[str] = None
    street: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.vendor_name:
            return self.vendor_name
        first = self.primary_contact_first_name or ""
        last = self.primary_contact_last_name or ""
        return f"{first} {last}".strip()


class FBInvoiceLine(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True, coerce_numbers_to_str=True)

    line_id: Optional[int] = Field(default=None, alias="lineid")
    name: Optional[str] = None
    description: Optional[str] = None
    qty: Optional[str] = None
    unit_cost: Optional[FBMoney] = None
    amount: Optional[FBMoney] = None
    tax_name1: Optional[str] = Field(default=None, alias="taxName1")
    tax_name2: Optional[str] = Field(default=None, alias="taxName2")


class FBInvoice(SourceModel):
    id: int
    invoice_id: Optional[int] = Field(default=None, alias="invoiceid")
    invoice_number: Optional[str] = None
    customer_id: Optional[int] = Field(default=None, alias="customerid")
    create_date: Optional[str] = None
    due_date: Optional[str] = None
    currency_code: Optional[str] = None
    amount: Optional[FBMoney] = None
    outstanding: Optional[FBMoney] = None
    paid: Optional[FBMoney] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    po_number: Optional[str] = None
    status: Optional[int] = None
    v3_status: Optional[str] = None
    display_status: Optional[str] = None
    payment_status: Optional[str] = None
    # Customer details embedded on the invoice
    organization: Optional[str] = None
    fname: Optional[str] = None
    lname: Optional[str] = None
    street: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    code: Optional[str] = None
    country: Optional[str] = None
    vat_number: Optional[str] = None
    lines: Optional[List[FBInvoiceLine]] = None

    @property
    def number(self) -> str:
        """Invoice number, falling back to the FreshBooks ID."""
        return self.invoice_number or str(self.id)


class FBExpense(SourceModel):
    id: int
    expense_id: Optional[int] = Field(default=None, alias="expenseid")
    amount: Optional[FBMoney] = None
    date: Optional[str] = None
    notes: Optional[str] = None
    vendor: Optional[str] = None
    vendor_id: Optional[int] = Field(default=None, alias="vendorid")
    category_id: Optional[int] = Field(default=None, alias="categoryid")
    client_id: Optional[int] = Field(default=None, alias="clientid")
    invoice_id: Optional[int] = Field(default=None, alias="invoiceid")
    account_name: Optional[str] = None
    bank_name: Optional[str] = None
    billable: Optional[bool] = None
    has_receipt: Optional[bool] = None
    status: Optional[int] = None
    tax_name1: Optional[str] = Field(default=None, alias="taxName1")
    tax_percent1: Optional[str] = Field(default=None, alias="taxPercent1")
    tax_amount1: Optional[FBMoney] = Field(default=None, alias="taxAmount1")
    transaction_id: Optional[int] = Field(default=None, alias="transactionid")

    @property
    def label(self) -> str:
        if self.notes:
            return self.notes
        if self.vendor:
            return f"{self.vendor} ({self.date or 'undated'})"
        return f"Expense {self.id}"


class FBCategory(SourceModel):
    id: int
    category_id: Optional[int] = Field(default=None, alias="categoryid")
    category: Optional[str] = None
    is_cogs: Optional[bool] = None
    is_editable: Optional[bool] = None
    parent_id: Optional[int] = Field(default=None, alias="parentid")

    @property
    def name(self) -> str:
        return self.category or "Unknown Category"


class FBItem(SourceModel):
    id: int
    name: Optional[str] = None
    description: Optional[str] = None
    qty: Optional[str] = None
    sku: Optional[str] = None
    inventory: Optional[str] = None
    unit_cost: Optional[FBMoney] = None
    tax1: Optional[int] = None
    tax2: Optional[int] = None

    @property
    def display_name(self) -> str:
        return self.name or f"Item {self.id}"


class FBTax(SourceModel):
    id: int
    tax_id: Optional[int] = Field(default=None, alias="taxid")
    name: Optional[str] = None
    amount: Optional[str] = None
    number: Optional[str] = None
    compound: Optional[bool] = None

    @property
    def display_name(self) -> str:
        return self.name or f"Tax {self.id}"


class FBPayment(SourceModel):
    id: int
    amount: Optional[FBMoney] = None
    client_id: Optional[int] = Field(default=None, alias="clientid")
    invoice_id: Optional[int] = Field(default=None, alias="invoiceid")
    date: Optional[str] = None
    gateway: Optional[str] = None
    type: Optional[str] = None
    note: Optional[str] = None
    transaction_id: Optional[str] = Field(default=None, alias="transactionid")
    from_credit: Optional[bool] = None

    @property
    def display_name(self) -> str:
        if self.note:
            return self.note
        if self.date:
            return f"Payment on {self.date}"
        return f"Payment {self.id}"

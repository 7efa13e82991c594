"""Finite lookup tables translating FreshBooks codes to Zoho Books values."""

from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_PAYMENT_MODE = "cash"
DEFAULT_ACCOUNT_KEY = "default"

# FreshBooks payment gateway -> Zoho payment_mode
PAYMENT_GATEWAY_MODES = {
    "stripe": "credit_card",
    "paypal": "paypal",
    "square": "credit_card",
    "wepay": "bank_transfer",
    "2checkout": "credit_card",
}

# FreshBooks payment type -> Zoho payment_mode
PAYMENT_TYPE_MODES = {
    "credit": "credit_card",
    "credit card": "credit_card",
    "check": "check",
    "cheque": "check",
    "cash": "cash",
    "bank transfer": "bank_transfer",
    "ach": "bank_transfer",
}

# FreshBooks invoice v3_status values that mean the invoice left draft
SENT_INVOICE_STATUSES = frozenset({
    "sent", "viewed", "paid", "auto-paid", "partial", "overdue", "disputed", "retry", "failed",
})
DRAFT_INVOICE_STATUSES = frozenset({"draft"})

# FreshBooks numeric invoice status: 1 draft, 2 sent, 3 viewed, 4 paid,
# 5 auto-paid, 6 retry, 7 failed, 8 partial
SENT_INVOICE_STATUS_CODES = frozenset({2, 3, 4, 5, 6, 7, 8})


def payment_mode_for_gateway(gateway: str) -> str:
    return PAYMENT_GATEWAY_MODES.get(gateway.strip().lower(), DEFAULT_PAYMENT_MODE)


def payment_mode_for_type(payment_type: str) -> str:
    return PAYMENT_TYPE_MODES.get(payment_type.strip().lower(), DEFAULT_PAYMENT_MODE)


def payment_mode(gateway: Optional[str], payment_type: Optional[str]) -> Optional[str]:
    """The gateway decides when present, otherwise the payment type."""
    if gateway and gateway.strip():
        return payment_mode_for_gateway(gateway)
    if payment_type and payment_type.strip():
        return payment_mode_for_type(payment_type)
    return None


@dataclass(frozen=True)
class DepositAccount:
    """Where a payment lands in Zoho, and whether the table covered it."""
    account_id: Optional[str]
    mapped: bool
    unmapped_key: Optional[str] = None


def resolve_deposit_account(
    gateway: Optional[str],
    payment_type: Optional[str],
    table: Mapping[str, str],
) -> DepositAccount:
    """
    Look up the deposit account by gateway, then type, then ``default``.

    Keys of ``table`` must be lowercase. Falling through to ``default`` still
    counts as unmapped.
    """
    unmapped_key = None

    if gateway and gateway.strip():
        account_id = table.get(gateway.strip().lower())
        if account_id:
            return DepositAccount(account_id, True)
        unmapped_key = gateway

    if payment_type and payment_type.strip():
        account_id = table.get(payment_type.strip().lower())
        if account_id:
            return DepositAccount(account_id, True)
        if unmapped_key is None:
            unmapped_key = payment_type

    return DepositAccount(table.get(DEFAULT_ACCOUNT_KEY), False, unmapped_key)


def invoice_is_sent(v3_status: Optional[str], status: Optional[int]) -> bool:
    """
    Whether a FreshBooks invoice has left draft.

    The string status wins when it is recognised; the numeric code is the
    fallback.
    """
    if v3_status:
        normalized = v3_status.strip().lower()
        if normalized in SENT_INVOICE_STATUSES:
            return True
        if normalized in DRAFT_INVOICE_STATUSES:
            return False
    return status in SENT_INVOICE_STATUS_CODES

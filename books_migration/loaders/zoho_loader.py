"""Typed Zoho Books endpoints used by the migration pipeline."""

import itertools
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import ValidationError

from ..exceptions import DestinationAPIError, DestinationError
from ..models.destination import (
    ContactType,
    DestinationEntity,
    DestinationRequest,
    ZBAccount,
    ZBAccountCreateRequest,
    ZBAccountUpdateRequest,
    ZBContact,
    ZBContactCreateRequest,
    ZBExpense,
    ZBExpenseCreateRequest,
    ZBInvoice,
    ZBInvoiceCreateRequest,
    ZBItem,
    ZBItemCreateRequest,
    ZBPayment,
    ZBPaymentCreateRequest,
    ZBTax,
    ZBTaxCreateRequest,
)
from .zoho_gateway import ZohoGateway

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=DestinationEntity)

LIST_PAGE_SIZE = 200


class ZohoLoader:
    """
    Reads and writes Zoho Books records through a ``ZohoGateway``.

    Supports:
    - Listing with ``page_context.has_more_page`` pagination
    - Creating contacts, accounts, taxes, items, invoices, expenses, payments
    - Re-parenting accounts and marking invoices as sent
    - Dry runs: writes return placeholder entities and never reach the network
    """

    def __init__(self, gateway: ZohoGateway, dry_run: bool = False):
        self.gateway = gateway
        self.dry_run = dry_run
        self._placeholder_ids = itertools.count(1)

    # Response handling

    def _check(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        code = payload.get("code", 0)
        if code != 0:
            raise DestinationAPIError(int(code), str(payload.get("message", "")))
        return payload

    def _list_all(
        self,
        endpoint: str,
        key: str,
        model: Type[E],
        params: Optional[Dict[str, Any]] = None,
        alt_key: Optional[str] = None,
    ) -> List[E]:
        records: List[E] = []
        page = 1

        while True:
            query = dict(params or {})
            query.update({"page": page, "per_page": LIST_PAGE_SIZE})
            payload = self._check(self.gateway.execute("GET", endpoint, params=query))

            items = payload.get(key) or payload.get(alt_key or key) or []
            try:
                records.extend(model.model_validate(item) for item in items)
            except (TypeError, ValidationError) as e:
                raise DestinationError(f"unexpected {key} payload: {e}") from e

            page_context = payload.get("page_context") or {}
            if not page_context.get("has_more_page"):
                break
            page += 1

        logger.debug(f"Listed {len(records)} {key} from Zoho")
        return records

    def _create(
        self,
        endpoint: str,
        key: str,
        model: Type[E],
        id_field: str,
        request: DestinationRequest,
    ) -> E:
        body = request.to_payload()

        if self.dry_run:
            placeholder = f"dry-run-{key}-{next(self._placeholder_ids)}"
            logger.info(f"[DRY RUN] Would POST {endpoint}: {body}")
            return model.model_validate({**body, id_field: placeholder})

        payload = self._check(self.gateway.execute("POST", endpoint, json_body=body))
        entity = model.model_validate(payload.get(key) or {})
        if not getattr(entity, id_field):
            raise DestinationError(f"Zoho did not return {id_field} for new {key}")
        return entity

    # Contacts

    def list_contacts(self, contact_type: ContactType) -> List[ZBContact]:
        return self._list_all("/contacts", "contacts", ZBContact, {"contact_type": contact_type.value})

    def create_contact(self, request: ZBContactCreateRequest) -> ZBContact:
        return self._create("/contacts", "contact", ZBContact, "contact_id", request)

    # Chart of accounts

    def list_accounts(self) -> List[ZBAccount]:
        return self._list_all("/chartofaccounts", "chartofaccounts", ZBAccount, alt_key="chart_of_accounts")

    def create_account(self, request: ZBAccountCreateRequest) -> ZBAccount:
        return self._create("/chartofaccounts", "chart_of_account", ZBAccount, "account_id", request)

    def update_account(self, account_id: str, request: ZBAccountUpdateRequest) -> Optional[ZBAccount]:
        """Update an account in place. Returns None in dry-run mode."""
        body = request.to_payload()
        if self.dry_run:
            logger.info(f"[DRY RUN] Would PUT /chartofaccounts/{account_id}: {body}")
            return None

        payload = self._check(self.gateway.execute("PUT", f"/chartofaccounts/{account_id}", json_body=body))
        return ZBAccount.model_validate(payload.get("chart_of_account") or {"account_id": account_id})

    # Taxes and items

    def list_taxes(self) -> List[ZBTax]:
        return self._list_all("/settings/taxes", "taxes", ZBTax)

    def create_tax(self, request: ZBTaxCreateRequest) -> ZBTax:
        return self._create("/settings/taxes", "tax", ZBTax, "tax_id", request)

    def list_items(self) -> List[ZBItem]:
        return self._list_all("/items", "items", ZBItem)

    def create_item(self, request: ZBItemCreateRequest) -> ZBItem:
        return self._create("/items", "item", ZBItem, "item_id", request)

    # Invoices

    def list_invoices(self) -> List[ZBInvoice]:
        return self._list_all("/invoices", "invoices", ZBInvoice)

    def create_invoice(self, request: ZBInvoiceCreateRequest) -> ZBInvoice:
        return self._create("/invoices", "invoice", ZBInvoice, "invoice_id", request)

    def mark_invoice_sent(self, invoice_id: str) -> None:
        """Move a draft invoice to sent without e-mailing the customer."""
        if self.dry_run:
            logger.info(f"[DRY RUN] Would mark invoice {invoice_id} as sent")
            return
        self._check(self.gateway.execute("POST", f"/invoices/{invoice_id}/status/sent"))

    # Expenses and payments

    def list_expenses(self) -> List[ZBExpense]:
        return self._list_all("/expenses", "expenses", ZBExpense)

    def create_expense(self, request: ZBExpenseCreateRequest) -> ZBExpense:
        return self._create("/expenses", "expense", ZBExpense, "expense_id", request)

    def list_payments(self) -> List[ZBPayment]:
        return self._list_all("/customerpayments", "customerpayments", ZBPayment)

    def create_payment(self, request: ZBPaymentCreateRequest) -> ZBPayment:
        return self._create("/customerpayments", "payment", ZBPayment, "payment_id", request)

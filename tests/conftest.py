"""Shared fixtures: fake clocks, an in-memory Zoho Books and canned FreshBooks data."""

import itertools
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from books_migration.extractors.base import PageResult
from books_migration.extractors.freshbooks_extractor import FreshBooksExtractor
from books_migration.loaders.zoho_loader import ZohoLoader
from books_migration.models.config import (
    FreshBooksConfig,
    MigrationConfig,
    ZohoConfig,
)
from books_migration.models.migration import EntityType
from books_migration.orchestrator import MigrationPipeline


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_response(status_code: int = 200, json_data: Any = None, text: str = "") -> MagicMock:
    """requests.Response stand-in."""
    response = MagicMock()
    response.status_code = status_code
    if json_data is None:
        response.content = text.encode()
        response.json.side_effect = ValueError("No JSON")
    else:
        response.content = b"{...}"
        response.json.return_value = json_data
    response.text = text or str(json_data)
    return response


# endpoint -> (list key, create key, id field, unique name field)
ZOHO_ENDPOINTS = {
    "/contacts": ("contacts", "contact", "contact_id", "contact_name"),
    "/chartofaccounts": ("chartofaccounts", "chart_of_account", "account_id", "account_name"),
    "/settings/taxes": ("taxes", "tax", "tax_id", "tax_name"),
    "/items": ("items", "item", "item_id", "name"),
    "/invoices": ("invoices", "invoice", "invoice_id", "invoice_number"),
    "/expenses": ("expenses", "expense", "expense_id", None),
    "/customerpayments": ("customerpayments", "payment", "payment_id", None),
}


class FakeZohoGateway:
    """
    In-memory Zoho Books speaking the gateway's ``execute`` interface.

    Records stored with ``hidden=True`` are rejected as duplicates but left
    out of listings until ``reveal_hidden()`` is called, the way a stale
    listing behaves.
    """

    def __init__(self, page_size: int = 200, duplicate_code: int = 1001):
        self.page_size = page_size
        self.duplicate_code = duplicate_code
        self.records: Dict[str, List[Dict[str, Any]]] = {e: [] for e in ZOHO_ENDPOINTS}
        self.calls: List[tuple] = []
        self.sent_invoices: List[str] = []
        self._ids = itertools.count(5000)

    # Seeding helpers

    def add(self, endpoint: str, hidden: bool = False, **fields: Any) -> Dict[str, Any]:
        _, _, id_field, _ = ZOHO_ENDPOINTS[endpoint]
        record = dict(fields)
        record.setdefault(id_field, str(next(self._ids)))
        record["_hidden"] = hidden
        self.records[endpoint].append(record)
        return record

    def visible(self, endpoint: str) -> List[Dict[str, Any]]:
        return [
            {k: v for k, v in r.items() if k != "_hidden"}
            for r in self.records[endpoint] if not r["_hidden"]
        ]

    def created(self, endpoint: str) -> List[Dict[str, Any]]:
        return [body for method, ep, body in self.calls if method == "POST" and ep == endpoint]

    # Gateway interface

    def execute(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        params = params or {}

        if method == "GET":
            self.calls.append((method, endpoint, params))
            return self._list(endpoint, params)

        self.calls.append((method, endpoint, json_body))

        if method == "PUT" and endpoint.startswith("/chartofaccounts/"):
            account_id = endpoint.rsplit("/", 1)[1]
            for record in self.records["/chartofaccounts"]:
                if record["account_id"] == account_id:
                    record.update(json_body or {})
                    return {"code": 0, "chart_of_account": record}
            return {"code": 1002, "message": "Account does not exist"}

        if method == "POST" and endpoint.endswith("/status/sent"):
            self.sent_invoices.append(endpoint.split("/")[2])
            return {"code": 0, "message": "Invoice status has been changed to Sent."}

        return self._create(endpoint, json_body or {})

    def _list(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        list_key = ZOHO_ENDPOINTS[endpoint][0]
        records = self.visible(endpoint)
        if "contact_type" in params:
            records = [r for r in records if r.get("contact_type") == params["contact_type"]]

        page = int(params.get("page", 1))
        start = (page - 1) * self.page_size
        chunk = records[start:start + self.page_size]
        return {
            "code": 0,
            list_key: chunk,
            "page_context": {"page": page, "has_more_page": start + self.page_size < len(records)},
        }

    def _create(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        _, create_key, id_field, name_field = ZOHO_ENDPOINTS[endpoint]

        if name_field:
            name = str(body.get(name_field, "")).lower()
            for record in self.records[endpoint]:
                if str(record.get(name_field, "")).lower() == name:
                    # The listing catches up once Zoho has reported the clash
                    record["_hidden"] = False
                    return {"code": self.duplicate_code, "message": f"'{body.get(name_field)}' already exists."}

        record = self.add(endpoint, **body)
        return {"code": 0, "message": "created", create_key: {k: v for k, v in record.items() if k != "_hidden"}}


class FakeExtractor(FreshBooksExtractor):
    """FreshBooks reader serving canned records in pages of ``page_size``."""

    def __init__(self, records: Optional[Dict[EntityType, List[Any]]] = None, page_size: int = 100):
        super().__init__(
            base_url="https://api.freshbooks.test",
            account_id="ACC1",
            token_manager=MagicMock(),
            page_size=page_size,
            session=MagicMock(),
        )
        self.records: Dict[EntityType, List[Any]] = {e: [] for e in EntityType}
        for entity, items in (records or {}).items():
            self.set(entity, items)

    def set(self, entity: EntityType, items: List[Dict[str, Any]]) -> None:
        model = self.ENTITY_ENDPOINTS[entity][2]
        self.records[entity] = [model.model_validate(item) for item in items]

    def fetch_page(self, entity: EntityType, page: int) -> PageResult:
        records = self.records[entity]
        pages = max(1, -(-len(records) // self.page_size))
        start = (page - 1) * self.page_size
        return PageResult(
            records=records[start:start + self.page_size],
            page=page,
            pages=pages,
            per_page=self.page_size,
            total=len(records),
        )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def zoho():
    return FakeZohoGateway()


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def make_pipeline(zoho, extractor):
    """Build a pipeline over the fake backends."""

    def _make(dry_run: bool = False, **kwargs: Any) -> MigrationPipeline:
        return MigrationPipeline(extractor, ZohoLoader(zoho, dry_run=dry_run), **kwargs)

    return _make


@pytest.fixture
def config_data() -> Dict[str, Any]:
    return {
        "freshbooks": {
            "client_id": "fb-client",
            "client_secret": "fb-secret",
            "access_token": "fb-access",
            "refresh_token": "fb-refresh",
            "account_id": "ACC1",
        },
        "zoho": {
            "client_id": "zb-client",
            "client_secret": "zb-secret",
            "access_token": "zb-access",
            "refresh_token": "zb-refresh",
            "organization_id": "ORG1",
            "region": "eu",
        },
        "category_mapping": {
            "parents": {
                "Operating Expenses": ["Office Supplies", "Software"],
                "Cost of Goods Sold": ["Materials"],
            },
            "mappings": {"Computer Stuff": "Software"},
            "default_category": "Operating Expenses",
        },
        "paid_through_accounts": {"Business Checking": "ZB-BANK-1"},
        "deposit_accounts": {"stripe": "ZB-STRIPE", "default": "ZB-BANK-1"},
    }


@pytest.fixture
def config(config_data) -> MigrationConfig:
    return MigrationConfig.from_dict(config_data)


@pytest.fixture
def freshbooks_config(config) -> FreshBooksConfig:
    return config.freshbooks


@pytest.fixture
def zoho_config(config) -> ZohoConfig:
    return config.zoho

"""Paginated reader for the FreshBooks accounting API."""

import logging
from typing import Any, Dict, List, Optional, Tuple, Type

import requests
from pydantic import BaseModel, ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..exceptions import SourceAPIError, SourceAuthorizationError
from ..models.migration import EntityType
from ..models.source import (
    FBCategory,
    FBClient,
    FBExpense,
    FBInvoice,
    FBItem,
    FBPayment,
    FBTax,
    FBVendor,
)
from ..services.token_manager import DEFAULT_TIMEOUT, TokenManager
from .base import BaseExtractor, PageResult

logger = logging.getLogger(__name__)


class FreshBooksExtractor(BaseExtractor):
    """
    Extractor for the FreshBooks accounting API.

    Supports:
    - Page/per_page pagination bounded by the reported page count
    - One token refresh per page on 401, resuming from the same page
    - Retry with backoff for transient 5xx responses
    """

    # entity -> (path below /accounting/account/<id>/, result key, model, extra params)
    ENTITY_ENDPOINTS: Dict[EntityType, Tuple[str, str, Type[BaseModel], Dict[str, Any]]] = {
        EntityType.CUSTOMER: ("users/clients", "clients", FBClient, {}),
        EntityType.VENDOR: ("bill_vendors/bill_vendors", "bill_vendors", FBVendor, {}),
        EntityType.INVOICE: ("invoices/invoices", "invoices", FBInvoice, {"include[]": "lines"}),
        EntityType.EXPENSE: ("expenses/expenses", "expenses", FBExpense, {}),
        EntityType.ACCOUNT: ("expenses/categories", "categories", FBCategory, {}),
        EntityType.ITEM: ("items/items", "items", FBItem, {}),
        EntityType.TAX: ("taxes/taxes", "taxes", FBTax, {}),
        EntityType.PAYMENT: ("payments/payments", "payments", FBPayment, {}),
    }

    def __init__(
        self,
        base_url: str,
        account_id: str,
        token_manager: TokenManager,
        page_size: int = 100,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the FreshBooks extractor.

        Args:
            base_url: API root, normally https://api.freshbooks.com
            account_id: FreshBooks accounting account ID
            token_manager: Source of the current access token
            page_size: Records requested per page
            session: Custom requests session
            timeout: Per-request timeout in seconds
        """
        super().__init__(page_size)
        self.base_url = base_url.rstrip("/")
        self.account_id = account_id
        self.token_manager = token_manager
        self.timeout = timeout
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic."""
        session = requests.Session()

        retries = Retry(
            total=3,
            backoff_factor=2.0,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        )

        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def _get(self, path: str, params: Dict[str, Any]) -> requests.Response:
        url = f"{self.base_url}/accounting/account/{self.account_id}/{path}"
        try:
            return self._session.get(
                url,
                params=params,
                headers={
                    "Authorization": f"Bearer {self.token_manager.source_access_token}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SourceAPIError(None, str(e)) from e

    def fetch_page(self, entity: EntityType, page: int) -> PageResult:
        path, key, model, extra = self.ENTITY_ENDPOINTS[entity]
        params = {"page": page, "per_page": self.page_size, **extra}

        response = self._get(path, params)
        if response.status_code == 401:
            logger.info("FreshBooks token expired, refreshing")
            self.token_manager.refresh_source_token()
            response = self._get(path, params)
            if response.status_code == 401:
                raise SourceAuthorizationError(401, response.text)

        if not 200 <= response.status_code < 300:
            raise SourceAPIError(response.status_code, response.text)

        try:
            payload = response.json()
            result = payload.get("response", payload)["result"]
            records = [model.model_validate(item) for item in result.get(key) or []]
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            raise SourceAPIError(response.status_code, f"unexpected {key} payload: {e}") from e

        return PageResult(
            records=records,
            page=int(result.get("page") or page),
            pages=int(result.get("pages") or 0),
            per_page=int(result.get("per_page") or self.page_size),
            total=int(result.get("total") or len(records)),
        )

    def fetch_clients(self) -> List[FBClient]:
        return self.fetch_all(EntityType.CUSTOMER)

    def fetch_vendors(self) -> List[FBVendor]:
        return self.fetch_all(EntityType.VENDOR)

    def fetch_invoices(self) -> List[FBInvoice]:
        return self.fetch_all(EntityType.INVOICE)

    def fetch_expenses(self) -> List[FBExpense]:
        return self.fetch_all(EntityType.EXPENSE)

    def fetch_categories(self) -> List[FBCategory]:
        return self.fetch_all(EntityType.ACCOUNT)

    def fetch_items(self) -> List[FBItem]:
        return self.fetch_all(EntityType.ITEM)

    def fetch_taxes(self) -> List[FBTax]:
        return self.fetch_all(EntityType.TAX)

    def fetch_payments(self) -> List[FBPayment]:
        return self.fetch_all(EntityType.PAYMENT)

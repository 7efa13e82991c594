"""Authenticated, rate-limited transport for the Zoho Books API."""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlsplit

import requests

from ..exceptions import (
    DestinationAuthorizationError,
    DestinationConnectionError,
    DestinationHTTPError,
)
from ..services.token_manager import DEFAULT_TIMEOUT, TokenManager
from .rate_limiter import RateWindow

logger = logging.getLogger(__name__)

THROTTLE_DELAY_SECONDS = 60.0


class ZohoGateway:
    """
    Sends every Zoho Books request through one admission window.

    Handles:
    - Sliding-window rate limiting ahead of each transmission
    - One token refresh and retry on 401
    - Fixed back-off and unbounded retry on 429
    - ``organization_id`` on every call
    """

    def __init__(
        self,
        base_url: str,
        organization_id: str,
        token_manager: TokenManager,
        rate_window: Optional[RateWindow] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the gateway.

        Args:
            base_url: Region-specific Books API root
            organization_id: Zoho organization every call is scoped to
            token_manager: Source of the current access token
            rate_window: Admission window shared by all calls
            session: HTTP session
            sleep: Sleep function used for 429 back-off
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.organization_id = organization_id
        self.token_manager = token_manager
        self.rate_window = rate_window or RateWindow()
        self._session = session or requests.Session()
        self._sleep = sleep
        self.timeout = timeout

    def _build_query(self, endpoint: str, params: Optional[Dict[str, Any]]) -> Tuple[str, List[Tuple[str, str]]]:
        """Split any query string off the endpoint and append organization_id."""
        parts = urlsplit(endpoint)
        query = parse_qsl(parts.query, keep_blank_values=True)
        for key, value in (params or {}).items():
            if value is not None:
                query.append((key, str(value)))
        query.append(("organization_id", self.organization_id))
        return parts.path, query

    def execute(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send a request and return the decoded JSON body.

        Args:
            method: HTTP method
            endpoint: Path below the API root, optionally with a query string
            params: Extra query parameters
            json_body: Request body

        Returns:
            Decoded response body (empty dict for an empty body)

        Raises:
            DestinationAuthorizationError: 401 again after a refresh
            DestinationHTTPError: any other non-2xx response
            DestinationConnectionError: the request never got a response
        """
        path, query = self._build_query(endpoint, params)
        url = f"{self.base_url}{path}"
        refreshed = False

        while True:
            self.rate_window.acquire()
            logger.debug(f"{method} {path}")

            try:
                response = self._session.request(
                    method,
                    url,
                    params=query,
                    json=json_body,
                    headers={
                        "Authorization": f"Zoho-oauthtoken {self.token_manager.destination_access_token}",
                        "Accept": "application/json",
                    },
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                raise DestinationConnectionError(f"{method} {path}: {e}") from e

            status = response.status_code

            if status == 401:
                if refreshed:
                    raise DestinationAuthorizationError(response.text)
                logger.info("Zoho token expired, refreshing")
                self.token_manager.refresh_destination_token()
                refreshed = True
                continue

            if status == 429:
                logger.warning(f"Zoho throttled the request, retrying in {THROTTLE_DELAY_SECONDS:.0f}s")
                self._sleep(THROTTLE_DELAY_SECONDS)
                continue

            if not 200 <= status < 300:
                raise DestinationHTTPError(status, response.text)

            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise DestinationHTTPError(status, f"invalid JSON: {response.text[:200]}") from e

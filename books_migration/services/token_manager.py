"""OAuth token lifecycle for the FreshBooks and Zoho Books APIs."""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

import requests

from ..exceptions import TokenRefreshError
from ..models.config import Backend, FreshBooksConfig, ZohoConfig

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class TokenSet:
    """An access/refresh token pair."""
    access_token: str
    refresh_token: str


RefreshListener = Callable[[Backend, TokenSet], None]


class TokenManager:
    """
    Owns the OAuth tokens of both backends for the duration of a run.

    Handles:
    - Serving the current access token to every outgoing request
    - Refreshing an expired token (no retry; a failed refresh is fatal)
    - Notifying listeners after a refresh so tokens can be persisted

    The manager itself never writes tokens anywhere.
    """

    def __init__(
        self,
        freshbooks: FreshBooksConfig,
        zoho: ZohoConfig,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the token manager.

        Args:
            freshbooks: FreshBooks credentials and initial tokens
            zoho: Zoho credentials and initial tokens
            session: HTTP session used for refresh calls
            timeout: Per-request timeout in seconds
        """
        self._freshbooks = freshbooks
        self._zoho = zoho
        self._session = session or requests.Session()
        self._timeout = timeout
        self._lock = threading.Lock()
        self._listeners: List[RefreshListener] = []

        self._tokens = {
            Backend.FRESHBOOKS: TokenSet(freshbooks.access_token, freshbooks.refresh_token),
            Backend.ZOHO: TokenSet(zoho.access_token, zoho.refresh_token),
        }

    def add_refresh_listener(self, listener: RefreshListener) -> None:
        """Register a callback invoked after every successful refresh."""
        self._listeners.append(listener)

    @property
    def source_access_token(self) -> str:
        with self._lock:
            return self._tokens[Backend.FRESHBOOKS].access_token

    @property
    def destination_access_token(self) -> str:
        with self._lock:
            return self._tokens[Backend.ZOHO].access_token

    def tokens(self, backend: Backend) -> TokenSet:
        with self._lock:
            return self._tokens[backend]

    def refresh_source_token(self) -> TokenSet:
        """Exchange the FreshBooks refresh token for a new access token."""
        with self._lock:
            current = self._tokens[Backend.FRESHBOOKS]
            payload = {
                "grant_type": "refresh_token",
                "client_id": self._freshbooks.client_id,
                "client_secret": self._freshbooks.client_secret,
                "refresh_token": current.refresh_token,
            }
            response = self._post(Backend.FRESHBOOKS, self._freshbooks.token_url, json=payload)
            tokens = self._store(Backend.FRESHBOOKS, current, response)

        self._notify(Backend.FRESHBOOKS, tokens)
        return tokens

    def refresh_destination_token(self) -> TokenSet:
        """Exchange the Zoho refresh token for a new access token."""
        with self._lock:
            current = self._tokens[Backend.ZOHO]
            params = {
                "grant_type": "refresh_token",
                "client_id": self._zoho.client_id,
                "client_secret": self._zoho.client_secret,
                "refresh_token": current.refresh_token,
            }
            response = self._post(Backend.ZOHO, self._zoho.token_url, params=params)
            tokens = self._store(Backend.ZOHO, current, response)

        self._notify(Backend.ZOHO, tokens)
        return tokens

    def _post(self, backend: Backend, url: str, **kwargs) -> dict:
        logger.info(f"Refreshing {backend.value} access token")
        try:
            response = self._session.post(url, timeout=self._timeout, **kwargs)
        except requests.RequestException as e:
            raise TokenRefreshError(backend.value, str(e)) from e

        if response.status_code != 200:
            raise TokenRefreshError(backend.value, f"HTTP {response.status_code}: {response.text}")

        try:
            data = response.json()
        except ValueError as e:
            raise TokenRefreshError(backend.value, "response was not JSON") from e

        if not data.get("access_token"):
            error = data.get("error") or "response did not include an access token"
            raise TokenRefreshError(backend.value, str(error))

        return data

    def _store(self, backend: Backend, current: TokenSet, data: dict) -> TokenSet:
        # Some providers only rotate the access token
        tokens = TokenSet(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or current.refresh_token,
        )
        self._tokens[backend] = tokens
        logger.debug(f"Stored new {backend.value} access token")
        return tokens

    def _notify(self, backend: Backend, tokens: TokenSet) -> None:
        for listener in self._listeners:
            listener(backend, tokens)

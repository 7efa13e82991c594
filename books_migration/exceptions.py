"""Error types raised during a migration run."""

from typing import Optional


class MigrationError(Exception):
    """Base class for all migration errors."""


class ConfigurationError(MigrationError):
    """The configuration file is missing, unreadable or incomplete."""


class TokenRefreshError(MigrationError):
    """An OAuth token refresh failed. Nothing can continue without a token."""

    def __init__(self, backend: str, message: str):
        super().__init__(f"{backend} token refresh failed: {message}")
        self.backend = backend
        self.message = message


class SourceAPIError(MigrationError):
    """The source API returned an unexpected response or could not be reached."""

    def __init__(self, status_code: Optional[int], body: str = ""):
        if status_code is None:
            super().__init__(f"FreshBooks request failed: {body}")
        else:
            super().__init__(f"FreshBooks HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class SourceAuthorizationError(SourceAPIError):
    """The source rejected a freshly refreshed token."""


class DestinationError(MigrationError):
    """Base class for destination-side failures."""


class DestinationHTTPError(DestinationError):
    """Non-2xx response from the destination API."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Zoho HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class DestinationAuthorizationError(DestinationHTTPError):
    """Still unauthorized after a token refresh and one retry."""

    def __init__(self, body: str = ""):
        super().__init__(401, body)


class DestinationConnectionError(DestinationError):
    """The destination API could not be reached."""


class DestinationAPIError(DestinationError):
    """The destination answered 2xx but reported an application error code."""

    # Codes Zoho Books returns when a name or number is already taken
    DUPLICATE_CODES = frozenset({1001, 3062, 11002, 120225})

    def __init__(self, code: int, message: str = ""):
        super().__init__(f"Zoho API error {code}: {message}")
        self.code = code
        self.message = message

    @property
    def is_duplicate(self) -> bool:
        """Whether the error reports a name/number collision."""
        return self.code in self.DUPLICATE_CODES


class RegistryConflictError(MigrationError):
    """A source ID was mapped a second time to a different destination ID."""

    def __init__(self, entity: str, source_id: int, existing_id: str, new_id: str):
        super().__init__(
            f"{entity} {source_id} already mapped to {existing_id}, refusing {new_id}"
        )
        self.entity = entity
        self.source_id = source_id
        self.existing_id = existing_id
        self.new_id = new_id

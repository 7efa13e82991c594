"""Configuration models for a migration run."""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

FRESHBOOKS_BASE_URL = "https://api.freshbooks.com"
FRESHBOOKS_TOKEN_URL = "https://api.freshbooks.com/auth/oauth/token"


class Backend(str, Enum):
    """The two APIs a migration talks to."""
    FRESHBOOKS = "freshbooks"
    ZOHO = "zoho"


# region -> top-level domain used by both the API and the accounts server
ZOHO_REGION_DOMAINS = {
    "com": "com",
    "us": "com",
    "eu": "eu",
    "in": "in",
    "au": "com.au",
    "com.au": "com.au",
}


def _require(data: Dict[str, Any], section: str, keys: List[str]) -> None:
    missing = [k for k in keys if not data.get(k)]
    if missing:
        raise ConfigurationError(f"Missing {section} field(s): {', '.join(missing)}")


@dataclass
class FreshBooksConfig:
    """Credentials for the FreshBooks source."""
    client_id: str
    client_secret: str
    access_token: str
    refresh_token: str
    account_id: str
    base_url: str = FRESHBOOKS_BASE_URL
    token_url: str = FRESHBOOKS_TOKEN_URL

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "account_id": self.account_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FreshBooksConfig":
        """Create from dictionary."""
        _require(data, "freshbooks", ["client_id", "client_secret", "access_token", "refresh_token", "account_id"])
        return cls(
            client_id=data["client_id"],
            client_secret=data["client_secret"],
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            account_id=str(data["account_id"]),
            base_url=data.get("base_url", FRESHBOOKS_BASE_URL),
            token_url=data.get("token_url", FRESHBOOKS_TOKEN_URL),
        )


@dataclass
class ZohoConfig:
    """Credentials and organization for the Zoho Books destination."""
    client_id: str
    client_secret: str
    access_token: str
    refresh_token: str
    organization_id: str
    region: str = "com"

    @property
    def domain(self) -> str:
        return ZOHO_REGION_DOMAINS.get(self.region.lower(), "com")

    @property
    def api_base_url(self) -> str:
        return f"https://www.zohoapis.{self.domain}/books/v3"

    @property
    def token_url(self) -> str:
        return f"https://accounts.zoho.{self.domain}/oauth/v2/token"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "organization_id": self.organization_id,
            "region": self.region,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ZohoConfig":
        """Create from dictionary."""
        _require(data, "zoho", ["client_id", "client_secret", "access_token", "refresh_token", "organization_id"])
        region = data.get("region", "com")
        if region.lower() not in ZOHO_REGION_DOMAINS:
            logger.warning(f"Unknown Zoho region '{region}', using .com endpoints")
        return cls(
            client_id=data["client_id"],
            client_secret=data["client_secret"],
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            organization_id=str(data["organization_id"]),
            region=region,
        )


@dataclass
class CategoryMappingConfig:
    """
    Target chart-of-accounts hierarchy for expense categories.

    ``parents`` maps each parent account name to its child names.
    ``mappings`` translates FreshBooks category names to target names.
    """
    parents: Dict[str, List[str]] = field(default_factory=dict)
    mappings: Dict[str, str] = field(default_factory=dict)
    default_category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "parents": self.parents,
            "mappings": self.mappings,
            "default_category": self.default_category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryMappingConfig":
        """Create from dictionary."""
        parents = data.get("parents", {})
        if not isinstance(parents, dict):
            raise ConfigurationError("category_mapping.parents must be an object of parent -> [children]")
        return cls(
            parents={name: list(children or []) for name, children in parents.items()},
            mappings=dict(data.get("mappings", {})),
            default_category=data.get("default_category"),
        )


@dataclass
class BusinessTagConfig:
    """Tags expenses with the business line they belong to."""
    primary_tag: str
    secondary_tag: str
    secondary_start_date: str
    secondary_keywords: List[str] = field(default_factory=list)
    zoho_tag_id: Optional[str] = None
    zoho_primary_option_id: Optional[str] = None
    zoho_secondary_option_id: Optional[str] = None

    @property
    def has_zoho_tags(self) -> bool:
        return bool(self.zoho_tag_id and self.zoho_primary_option_id and self.zoho_secondary_option_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "primary_tag": self.primary_tag,
            "secondary_tag": self.secondary_tag,
            "secondary_start_date": self.secondary_start_date,
            "secondary_keywords": self.secondary_keywords,
            "zoho_tag_id": self.zoho_tag_id,
            "zoho_primary_option_id": self.zoho_primary_option_id,
            "zoho_secondary_option_id": self.zoho_secondary_option_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BusinessTagConfig":
        """Create from dictionary."""
        _require(data, "business_tags", ["primary_tag", "secondary_tag", "secondary_start_date"])
        return cls(
            primary_tag=data["primary_tag"],
            secondary_tag=data["secondary_tag"],
            secondary_start_date=data["secondary_start_date"],
            secondary_keywords=list(data.get("secondary_keywords", [])),
            zoho_tag_id=data.get("zoho_tag_id"),
            zoho_primary_option_id=data.get("zoho_primary_option_id"),
            zoho_secondary_option_id=data.get("zoho_secondary_option_id"),
        )


@dataclass
class MigrationConfig:
    """Complete configuration for a FreshBooks to Zoho Books migration."""
    freshbooks: FreshBooksConfig
    zoho: ZohoConfig
    category_mapping: Optional[CategoryMappingConfig] = None
    business_tags: Optional[BusinessTagConfig] = None

    # Lookup tables; keys are matched case-insensitively
    paid_through_accounts: Dict[str, str] = field(default_factory=dict)
    deposit_accounts: Dict[str, str] = field(default_factory=dict)
    contact_name_overrides: Dict[str, str] = field(default_factory=dict)

    # File the config was loaded from; refreshed tokens are written back here
    path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data: Dict[str, Any] = {
            "freshbooks": self.freshbooks.to_dict(),
            "zoho": self.zoho.to_dict(),
        }
        if self.category_mapping:
            data["category_mapping"] = self.category_mapping.to_dict()
        if self.business_tags:
            data["business_tags"] = self.business_tags.to_dict()
        if self.paid_through_accounts:
            data["paid_through_accounts"] = self.paid_through_accounts
        if self.deposit_accounts:
            data["deposit_accounts"] = self.deposit_accounts
        if self.contact_name_overrides:
            data["contact_name_overrides"] = self.contact_name_overrides
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary."""
        for section in ("freshbooks", "zoho"):
            if not isinstance(data.get(section), dict):
                raise ConfigurationError(f"Missing '{section}' section")

        category_mapping = None
        if data.get("category_mapping"):
            category_mapping = CategoryMappingConfig.from_dict(data["category_mapping"])

        business_tags = None
        if data.get("business_tags"):
            business_tags = BusinessTagConfig.from_dict(data["business_tags"])

        return cls(
            freshbooks=FreshBooksConfig.from_dict(data["freshbooks"]),
            zoho=ZohoConfig.from_dict(data["zoho"]),
            category_mapping=category_mapping,
            business_tags=business_tags,
            paid_through_accounts=_lowercase_keys(data.get("paid_through_accounts", {})),
            deposit_accounts=_lowercase_keys(data.get("deposit_accounts", {})),
            contact_name_overrides=dict(data.get("contact_name_overrides", {})),
        )

    @classmethod
    def load(cls, path: str) -> "MigrationConfig":
        """Load configuration from a JSON file."""
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found at: {path}")

        try:
            with open(config_path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid configuration format: {e}") from e

        config = cls.from_dict(data)
        config.path = str(config_path)
        return config

    def save(self, path: Optional[str] = None) -> None:
        """Write configuration back to disk."""
        target = path or self.path
        if not target:
            raise ConfigurationError("No path to save configuration to")

        with open(target, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.debug(f"Saved configuration to {target}")

    def update_tokens(self, backend: str, access_token: str, refresh_token: str) -> None:
        """Record refreshed tokens for ``freshbooks`` or ``zoho``."""
        section = self.freshbooks if backend == Backend.FRESHBOOKS else self.zoho
        section.access_token = access_token
        section.refresh_token = refresh_token


def _lowercase_keys(table: Dict[str, str]) -> Dict[str, str]:
    return {str(k).lower(): v for k, v in table.items()}

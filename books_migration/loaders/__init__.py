"""Data loaders for target services."""

from .rate_limiter import RateWindow
from .zoho_gateway import ZohoGateway
from .zoho_loader import ZohoLoader

__all__ = [
    "RateWindow",
    "ZohoGateway",
    "ZohoLoader",
]

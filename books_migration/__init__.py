"""
Books Migration

Moves accounting records from FreshBooks into Zoho Books while keeping the
relationships between them intact.

Supports:
- Chart of accounts built from expense categories (flat or hierarchical)
- Taxes, items, customers, vendors, invoices, expenses and payments
- Rate-limited, token-refreshing access to the Zoho Books API
- Idempotent re-runs through destination-side deduplication
- Dry runs that exercise the full pipeline without writing
"""

__version__ = "0.1.0"

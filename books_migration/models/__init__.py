"""Data models for the migration application."""

from .config import (
    Backend,
    BusinessTagConfig,
    CategoryMappingConfig,
    FreshBooksConfig,
    MigrationConfig,
    ZohoConfig,
)
from .migration import (
    EntityType,
    MigrationRun,
    MigrationStatus,
    MigrationStep,
)
from .record import (
    MigrationResult,
    RecordOutcome,
)

__all__ = [
    "Backend",
    "BusinessTagConfig",
    "CategoryMappingConfig",
    "FreshBooksConfig",
    "MigrationConfig",
    "ZohoConfig",
    "EntityType",
    "MigrationRun",
    "MigrationStatus",
    "MigrationStep",
    "MigrationResult",
    "RecordOutcome",
]

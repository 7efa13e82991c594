"""Migration execution models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .record import MigrationResult


class EntityType(str, Enum):
    """Entity types, declared in pipeline order."""
    ACCOUNT = "categories"
    TAX = "taxes"
    ITEM = "items"
    CUSTOMER = "customers"
    VENDOR = "vendors"
    INVOICE = "invoices"
    EXPENSE = "expenses"
    PAYMENT = "payments"

    @property
    def label(self) -> str:
        """Singular display name used in summaries."""
        return {
            EntityType.ACCOUNT: "Category",
            EntityType.TAX: "Tax",
            EntityType.ITEM: "Item",
            EntityType.CUSTOMER: "Customer",
            EntityType.VENDOR: "Vendor",
            EntityType.INVOICE: "Invoice",
            EntityType.EXPENSE: "Expense",
            EntityType.PAYMENT: "Payment",
        }[self]


class MigrationStatus(str, Enum):
    """Status of a migration run or stage."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class MigrationStep:
    """A single stage of a migration run."""
    entity: EntityType
    status: MigrationStatus = MigrationStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: MigrationResult = field(default_factory=MigrationResult)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "entity": self.entity.value,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "result": self.result.to_dict(),
            "error": self.error,
        }

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


@dataclass
class MigrationRun:
    """A complete migration run."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: MigrationStatus = MigrationStatus.PENDING
    dry_run: bool = False

    created_at: datetime = field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    steps: List[MigrationStep] = field(default_factory=list)

    # Counters kept outside the per-stage results
    metadata: Dict[str, Any] = field(default_factory=dict)

    def add_step(self, entity: EntityType) -> MigrationStep:
        """Add a new step to the run."""
        step = MigrationStep(entity=entity)
        self.steps.append(step)
        return step

    def get_step(self, entity: EntityType) -> Optional[MigrationStep]:
        for step in self.steps:
            if step.entity == entity:
                return step
        return None

    @property
    def total_succeeded(self) -> int:
        return sum(s.result.succeeded for s in self.steps)

    @property
    def total_failed(self) -> int:
        return sum(s.result.failed for s in self.steps)

    @property
    def total_skipped(self) -> int:
        return sum(s.result.skipped for s in self.steps)

    @property
    def failed_steps(self) -> List[MigrationStep]:
        return [s for s in self.steps if s.status == MigrationStatus.FAILED]

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "status": self.status.value,
            "dry_run": self.dry_run,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "steps": [s.to_dict() for s in self.steps],
            "total_records_succeeded": self.total_succeeded,
            "total_records_failed": self.total_failed,
            "total_records_skipped": self.total_skipped,
            "metadata": self.metadata,
        }

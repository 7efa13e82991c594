"""Per-stage result accounting."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple

MAX_REPORTED_ERRORS = 10


class RecordOutcome(str, Enum):
    """What happened to a single source record."""
    CREATED = "created"
    EXISTING = "existing"  # matched a destination record, nothing written
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class MigrationResult:
    """
    Counts for one stage of a migration.

    Only the first ``MAX_REPORTED_ERRORS`` error details are kept; later
    failures are still counted.
    """
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    existing: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)

    def record_success(self) -> None:
        self.succeeded += 1

    def record_existing(self) -> None:
        """A destination match counts as a success."""
        self.succeeded += 1
        self.existing += 1

    def record_skip(self) -> None:
        self.skipped += 1

    def record_failure(self, label: str, message: str) -> None:
        self.failed += 1
        if len(self.errors) < MAX_REPORTED_ERRORS:
            self.errors.append((label, message))

    def record(self, outcome: RecordOutcome) -> None:
        """Count a non-failure outcome."""
        if outcome == RecordOutcome.CREATED:
            self.record_success()
        elif outcome == RecordOutcome.EXISTING:
            self.record_existing()
        elif outcome == RecordOutcome.SKIPPED:
            self.record_skip()
        else:
            raise ValueError("Failures must be recorded with record_failure()")

    @property
    def total(self) -> int:
        return self.succeeded + self.failed + self.skipped

    @property
    def omitted_errors(self) -> int:
        """Failures whose details were not kept."""
        return self.failed - len(self.errors)

    def format_summary(self, entity_type: str) -> str:
        """Render the summary block printed at the end of a stage."""
        succeeded = f"  Succeeded: {self.succeeded}"
        if self.existing:
            succeeded += f" ({self.existing} already existed)"

        lines = [
            f"{entity_type} Migration Summary:",
            succeeded,
            f"  Failed: {self.failed}",
            f"  Skipped: {self.skipped}",
        ]

        if self.errors:
            lines.append("  Errors:")
            for label, message in self.errors:
                lines.append(f"    - {label}: {message}")
            if self.omitted_errors > 0:
                lines.append(f"    ... and {self.omitted_errors} more errors")

        return "\n".join(lines)

    def print_summary(self, entity_type: str) -> None:
        print("\n" + self.format_summary(entity_type))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "existing": self.existing,
            "errors": [{"record": label, "message": message} for label, message in self.errors],
            "omitted_errors": self.omitted_errors,
        }

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

"""Export result models.

ExportResult aggregates the per-entity upsert counters reported after a batch
finishes (or stops part way), together with the terminal status of the whole
export pipeline.
"""

__all__ = [
    "ExportStatus",
    "ExportResult",
    "UpsertCounters",
]


class ExportStatus(Enum):
    """Terminal status of one export run.

    - EXPORTED: all rows committed
    - NO_DATA: table missing / malformed / empty
    - INVALID: blocked by validation (no writes)
    - CANCELLED: user declined in the wizard (site rows may already be committed)
    - FAILED: aborted before the batch upsert started, or by input/storage errors
    - PARTIAL: batch upsert failed after some rows were committed
    """
    EXPORTED = "exported"
    NO_DATA = "no_data"
    INVALID = "invalid"
    CANCELLED = "cancelled"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class UpsertCounters:
    """Mutable accumulator used while the executor walks the batch."""
    inserted_experiments: int = 0
    updated_experiments: int = 0
    inserted_stacks: int = 0
    updated_stacks: int = 0
    created_sites: int = 0
    updated_sites: int = 0

    @property
    def total_rows(self) -> int:
        return (
            self.inserted_experiments
            + self.updated_experiments
            + self.inserted_stacks
            + self.updated_stacks
        )


@dataclass(frozen=True)
class ExportResult:
    """Aggregated outcome of an export run."""
    status: ExportStatus
    animal_id: str | None = None
    counters: UpsertCounters = field(default_factory=UpsertCounters)
    message: str | None = None  # 失敗/キャンセル理由 (成功時 None)
    start_time: datetime | None = None
    end_time: datetime | None = None

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def inserted_experiments(self) -> int:
        return self.counters.inserted_experiments

    @property
    def updated_experiments(self) -> int:
        return self.counters.updated_experiments

    @property
    def inserted_stacks(self) -> int:
        return self.counters.inserted_stacks

    @property
    def updated_stacks(self) -> int:
        return self.counters.updated_stacks

    @property
    def created_sites(self) -> int:
        return self.counters.created_sites

    def with_status(self, status: ExportStatus, message: str | None = None) -> ExportResult:
        return replace(self, status=status, message=message)

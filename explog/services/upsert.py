from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace

from explog.db.storage import StoragePort
from explog.models.export_result import UpsertCounters
from explog.models.record import ExpLogRecord
from explog.models.site import MissingSiteRecord

from .progress import ProgressTracker

"""Upsert executor.

Each record writes its Experiment first, then its Stack. Every write is an
UPDATE keyed by id; when it touches zero rows an INSERT follows. There is no
separate existence check, so "new" and "existing" are decided by the write
itself.

Commit policy:
- atomic=False (default): commit after each record. A failure leaves earlier
  records committed and aborts the rest.
- atomic=True: one commit after the whole batch, rollback on failure.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "BatchMetrics",
    "UpsertError",
    "UpsertExecutor",
]


class UpsertError(Exception):
    """Raised when a write fails; carries the counters reached so far."""

    def __init__(self, message: str, counters: UpsertCounters, position: int = -1, committed: bool = True) -> None:
        super().__init__(message)
        self.counters = counters
        self.position = position
        # committed=False: atomic モードでロールバック済み
        self.committed = committed


@dataclass(frozen=True)
class BatchMetrics:
    """Timing data for one upsert batch."""
    batch_size: int
    elapsed_seconds: float
    start_time: float
    end_time: float


class UpsertExecutor:
    def __init__(
        self,
        storage: StoragePort,
        atomic: bool = False,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        self.storage = storage
        self.atomic = atomic
        self.metrics_callback = metrics_callback

    def upsert_site(self, site: MissingSiteRecord, animal_id: str) -> bool:
        """Write one site and commit it immediately. Returns True when inserted.

        Wizard sites are new by construction, so in practice this inserts; the
        update-first path makes a retried or re-submitted step harmless.
        """
        try:
            affected = self.storage.update_site(site.site_id, animal_id, site.project, site.location, site.depth)
            inserted = affected == 0
            if inserted:
                self.storage.insert_site(site.site_id, animal_id, site.project, site.location, site.depth)
            self.storage.commit()
        except Exception:
            self.storage.rollback()
            raise
        logger.debug("site %s %s", site.site_id, "inserted" if inserted else "updated")
        return inserted

    def _upsert_experiment(self, record: ExpLogRecord, counters: UpsertCounters) -> None:
        if record.exp_id is None or record.site_id is None:
            raise ValueError(f"row {record.position} has no ExpID/SiteID")
        if self.storage.update_experiment(record.exp_id, record.site_id) == 0:
            self.storage.insert_experiment(record.exp_id, record.site_id)
            counters.inserted_experiments += 1
        else:
            counters.updated_experiments += 1

    def _upsert_stack(self, record: ExpLogRecord, counters: UpsertCounters) -> None:
        if record.stack_id is None or record.exp_id is None:
            raise ValueError(f"row {record.position} has no StackID/ExpID")
        stack_date = record.date_part() or ""
        stack_time = record.time_part() or ""
        args = (record.stack_id, record.exp_id, stack_date, stack_time, record.paradigm, record.comment)
        if self.storage.update_stack(*args) == 0:
            self.storage.insert_stack(*args)
            counters.inserted_stacks += 1
        else:
            counters.updated_stacks += 1

    def upsert_records(self, records: Sequence[ExpLogRecord]) -> UpsertCounters:
        """Commit Experiment and Stack rows for every complete record, in batch order.

        Raises:
            UpsertError: a write failed (counters reflect the committed part)
        """
        counters = UpsertCounters()
        committed = UpsertCounters()
        start_time = time.time()
        try:
            with ProgressTracker(len(records), description="Exporting rows") as progress:
                for record in records:
                    progress.start_record(record.position)
                    try:
                        self._upsert_experiment(record, counters)
                        self._upsert_stack(record, counters)
                        if not self.atomic:
                            self.storage.commit()
                            committed = replace(counters)
                    except Exception as e:
                        self.storage.rollback()
                        if self.atomic:
                            committed = UpsertCounters()
                        raise UpsertError(
                            f"Export failed at row {record.position}: {e}",
                            committed,
                            position=record.position,
                            committed=not self.atomic,
                        ) from e
                    progress.set_postfix(
                        exp=counters.inserted_experiments + counters.updated_experiments,
                        stacks=counters.inserted_stacks + counters.updated_stacks,
                    )
                    progress.finish_record()
                if self.atomic:
                    try:
                        self.storage.commit()
                    except Exception as e:
                        self.storage.rollback()
                        raise UpsertError(f"Export failed on commit: {e}", UpsertCounters(), committed=False) from e
                    committed = replace(counters)
        finally:
            end_time = time.time()
            if self.metrics_callback is not None and records:
                self.metrics_callback(BatchMetrics(
                    batch_size=len(records),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                ))
        return committed

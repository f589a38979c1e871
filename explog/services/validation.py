from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from explog.db.storage import EntityKind, StoragePort
from explog.models.record import ExpLogRecord

"""Validation engine for an export batch.

validate_batch runs five steps in a fixed order and finishes every query before
the caller is allowed to write anything:

1. invalid / incomplete rows (no queries; blocking)
2. distinct stack / experiment / site id sets
3. site ids that do not exist yet (routed to the wizard)
4. ids that exist but belong to another animal (blocking)
5. every new site id needs a row with StackID == ExpID == SiteID == id (blocking)
"""

logger = logging.getLogger(__name__)

__all__ = [
    "IdentitySets",
    "ValidationError",
    "ValidationVerdict",
    "distinct_ids",
    "incomplete_positions",
    "invalid_positions",
    "sites_without_matching_record",
    "validate_batch",
]

INVALID_HINT = (
    "There is invalid data!\n"
    "Please make sure to provide correct data for Date, Time, StackID, ExpID and SiteID. "
    "Empty rows are skipped by default."
)
INCOMPLETE_HINT = (
    "There is incomplete data!\n"
    "Please make sure to provide Date, Time, StackID, ExpID and SiteID. "
    "Empty rows are skipped by default."
)


class ValidationError(Exception):
    """Blocking validation failure. No write may follow."""

    def __init__(self, messages: Sequence[str], positions: Sequence[int] | None = None) -> None:
        self.messages = list(messages)
        self.positions = list(positions or [])
        super().__init__("\n".join(self.messages))


@dataclass(frozen=True)
class IdentitySets:
    stack_ids: tuple[int, ...]
    exp_ids: tuple[int, ...]
    site_ids: tuple[int, ...]

    def for_kind(self, kind: EntityKind) -> tuple[int, ...]:
        return {
            EntityKind.STACK: self.stack_ids,
            EntityKind.EXPERIMENT: self.exp_ids,
            EntityKind.SITE: self.site_ids,
        }[kind]


@dataclass(frozen=True)
class ValidationVerdict:
    """Non-blocking pass. new_site_ids (ascending) go to the wizard."""
    identities: IdentitySets
    new_site_ids: tuple[int, ...] = ()

    @property
    def needs_new_sites(self) -> bool:
        return bool(self.new_site_ids)


def invalid_positions(records: Sequence[ExpLogRecord]) -> list[int]:
    return [r.position for r in records if r.is_invalid]


def incomplete_positions(records: Sequence[ExpLogRecord]) -> list[int]:
    return [r.position for r in records if not r.is_complete]


def distinct_ids(records: Sequence[ExpLogRecord]) -> IdentitySets:
    def _collect(values: list[int | None]) -> tuple[int, ...]:
        return tuple(sorted({v for v in values if v is not None}))

    non_empty = [r for r in records if not r.is_empty]
    return IdentitySets(
        stack_ids=_collect([r.stack_id for r in non_empty]),
        exp_ids=_collect([r.exp_id for r in non_empty]),
        site_ids=_collect([r.site_id for r in non_empty]),
    )


def sites_without_matching_record(new_site_ids: Sequence[int], records: Sequence[ExpLogRecord]) -> list[int]:
    """New site ids lacking a row whose stack, experiment and site id all equal that id.

    Introducing a new site means introducing the triple site/experiment/stack
    with the same number; this is the lab's numbering convention.
    """
    triples = {r.site_id for r in records if r.is_new_site_triple}
    return [s for s in new_site_ids if s not in triples]


def _format_positions(positions: Sequence[int]) -> str:
    return ", ".join(str(p) for p in positions)


def validate_batch(records: Sequence[ExpLogRecord], animal_id: str, storage: StoragePort) -> ValidationVerdict:
    """Validate a batch of non-empty records for `animal_id`.

    Raises:
        ValidationError: any blocking violation (message lists every problem)
    """
    batch = [r for r in records if not r.is_empty]
    if not batch:
        raise ValidationError(["No data to be exported."])

    # Step 1: 行単位のゲート (クエリ前)
    invalid = invalid_positions(batch)
    if invalid:
        raise ValidationError([f"{INVALID_HINT}\nRows: {_format_positions(invalid)}"], invalid)
    incomplete = incomplete_positions(batch)
    if incomplete:
        raise ValidationError([f"{INCOMPLETE_HINT}\nRows: {_format_positions(incomplete)}"], incomplete)

    # Step 2
    identities = distinct_ids(batch)
    logger.debug(
        "distinct ids: stacks=%s exps=%s sites=%s",
        identities.stack_ids, identities.exp_ids, identities.site_ids,
    )

    # Step 3
    new_site_ids = tuple(sorted(storage.query_missing_site_ids(identities.site_ids)))
    logger.debug("missing site ids: %s", new_site_ids)

    # Step 4
    messages: list[str] = []
    conflicts: list[str] = []
    for kind in (EntityKind.STACK, EntityKind.EXPERIMENT, EntityKind.SITE):
        foreign = storage.query_foreign_owned_ids(kind, animal_id, identities.for_kind(kind))
        if foreign:
            conflicts.append(f"{kind.label}: {', '.join(str(i) for i in sorted(foreign))}")
    if conflicts:
        messages.append(f"Some StackIDs, ExpIDs or SiteIDs belong to a different animal than '{animal_id}'.")
        messages.extend(conflicts)

    # Step 5
    unmatched = sites_without_matching_record(new_site_ids, batch)
    if unmatched:
        messages.append(
            "New SiteIDs need a row where StackID, ExpID and SiteID are identical: "
            + ", ".join(str(s) for s in unmatched)
        )

    if messages:
        raise ValidationError(messages)

    return ValidationVerdict(identities=identities, new_site_ids=new_site_ids)

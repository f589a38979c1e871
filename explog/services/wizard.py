from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum

from explog.db.storage import StorageError, StoragePort
from explog.models.export_result import ExportStatus, UpsertCounters
from explog.models.record import ExpLogRecord, parse_int
from explog.models.site import MissingSiteRecord

from .prompts import ExportPlan, Prompter, SiteStep, WizardAction
from .upsert import UpsertError, UpsertExecutor
from .validation import ValidationError, ValidationVerdict, validate_batch

"""Export wizard state machine.

    VALIDATING -> NEW_SITE(0) -> ... -> NEW_SITE(n-1) -> FINISH -> TERMINAL
    VALIDATING -> FINISH -> TERMINAL                       (no new sites)
    any non-terminal state -> TERMINAL                      (cancel / failure)

NEW_SITE steps follow the ascending order of the missing site ids. Each site
is committed as soon as its step succeeds; a later cancellation does not undo
it, but no experiment or stack row is written unless FINISH is confirmed.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "WizardState",
    "WizardOutcome",
    "WizardStateError",
    "SiteInputError",
    "SiteWriteError",
    "ExportWizard",
    "run_wizard",
]

CANCEL_MESSAGE = "Export cancelled by user."


class WizardState(Enum):
    VALIDATING = "validating"
    NEW_SITE = "new_site"
    FINISH = "finish"
    TERMINAL = "terminal"


class WizardStateError(Exception):
    """Transition requested from a state that does not allow it."""


class SiteInputError(Exception):
    """Field-level input error on a NewSite step (state is unchanged)."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class SiteWriteError(Exception):
    """Writing the site failed (state is unchanged, the step can be retried)."""


@dataclass(frozen=True)
class WizardOutcome:
    """Terminal result. message is None only on success."""
    status: ExportStatus
    message: str | None = None
    counters: UpsertCounters | None = None

    @property
    def succeeded(self) -> bool:
        return self.message is None

    @property
    def cancelled(self) -> bool:
        return self.status is ExportStatus.CANCELLED


class ExportWizard:
    def __init__(
        self,
        storage: StoragePort,
        animal_id: str,
        records: Sequence[ExpLogRecord],
        executor: UpsertExecutor | None = None,
    ) -> None:
        self.storage = storage
        self.animal_id = animal_id
        self.records = [r for r in records if not r.is_empty]
        self.executor = executor or UpsertExecutor(storage)
        self.state = WizardState.VALIDATING
        self.verdict: ValidationVerdict | None = None
        self.site_index = 0
        self.created_sites: dict[int, MissingSiteRecord] = {}
        self.site_counters = UpsertCounters()
        self.outcome: WizardOutcome | None = None
        self.invalid_positions: tuple[int, ...] = ()

    # --- helpers ---
    @property
    def new_site_ids(self) -> tuple[int, ...]:
        return self.verdict.new_site_ids if self.verdict else ()

    @property
    def current_site_id(self) -> int:
        self._require(WizardState.NEW_SITE)
        return self.new_site_ids[self.site_index]

    def _require(self, *states: WizardState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.name for s in states)
            raise WizardStateError(f"invalid transition from {self.state.name} (expected {allowed})")

    def _terminate(self, status: ExportStatus, message: str | None, counters: UpsertCounters | None = None) -> None:
        self.state = WizardState.TERMINAL
        self.outcome = WizardOutcome(status=status, message=message, counters=counters or self._site_only())
        logger.debug("wizard terminal: %s", status.value)

    def _site_only(self) -> UpsertCounters:
        return replace(self.site_counters)

    def site_step(self) -> SiteStep:
        self._require(WizardState.NEW_SITE)
        return SiteStep(
            site_id=self.current_site_id,
            index=self.site_index,
            total=len(self.new_site_ids),
            animal_id=self.animal_id,
            projects=tuple(self.storage.query_distinct_projects()),
            locations=tuple(self.storage.query_distinct_locations()),
        )

    def plan(self) -> ExportPlan:
        return ExportPlan(
            animal_id=self.animal_id,
            record_count=len(self.records),
            new_site_ids=self.new_site_ids,
            created_site_ids=tuple(sorted(self.created_sites)),
        )

    # --- transitions ---
    def start(self) -> WizardState:
        """VALIDATING -> NEW_SITE | FINISH (or TERMINAL when validation blocks)."""
        self._require(WizardState.VALIDATING)
        try:
            self.verdict = validate_batch(self.records, self.animal_id, self.storage)
        except ValidationError as e:
            self.invalid_positions = tuple(e.positions)
            self._terminate(ExportStatus.INVALID, str(e))
            return self.state
        if self.verdict.needs_new_sites:
            self.state = WizardState.NEW_SITE
            self.site_index = 0
        else:
            self.state = WizardState.FINISH
        return self.state

    def submit_site(self, project: str, location: str, depth: str | int | None = None) -> WizardState:
        """Validate and write the current site, then move to the next step.

        Raises:
            SiteInputError: project/location empty or depth not an integer
            SiteWriteError: the write failed; the step stays current
        """
        self._require(WizardState.NEW_SITE)
        project = (project or "").strip()
        location = (location or "").strip()
        if not project:
            raise SiteInputError("project", "Project is required.")
        if not location:
            raise SiteInputError("location", "Location is required.")
        depth_value: int | None
        if depth is None or isinstance(depth, int):
            depth_value = depth
        elif not depth.strip():
            depth_value = None
        else:
            depth_value = parse_int(depth)
            if depth_value is None:
                raise SiteInputError("depth", f"Depth must be an integer: {depth!r}")

        site = MissingSiteRecord(self.current_site_id, project, location, depth_value)
        try:
            inserted = self.executor.upsert_site(site, self.animal_id)
        except Exception as e:
            raise SiteWriteError(f"Site {site.site_id} could not be saved: {e}") from e

        if inserted:
            self.site_counters.created_sites += 1
        else:
            self.site_counters.updated_sites += 1
        self.created_sites[site.site_id] = site

        self.site_index += 1
        if self.site_index >= len(self.new_site_ids):
            self.state = WizardState.FINISH
        return self.state

    def back(self) -> WizardState:
        """Go back one page; on the first page this cancels the wizard."""
        self._require(WizardState.NEW_SITE, WizardState.FINISH)
        if self.state is WizardState.NEW_SITE:
            if self.site_index == 0:
                return self.cancel()
            self.site_index -= 1
            return self.state
        if not self.new_site_ids:
            return self.cancel()
        self.state = WizardState.NEW_SITE
        self.site_index = len(self.new_site_ids) - 1
        return self.state

    def cancel(self) -> WizardState:
        self._require(WizardState.VALIDATING, WizardState.NEW_SITE, WizardState.FINISH)
        message = CANCEL_MESSAGE
        if self.created_sites:
            created = ", ".join(str(s) for s in sorted(self.created_sites))
            message += f" Sites already saved: {created}."
        self._terminate(ExportStatus.CANCELLED, message)
        return self.state

    def fail(self, message: str) -> WizardState:
        self._require(WizardState.VALIDATING, WizardState.NEW_SITE, WizardState.FINISH)
        self._terminate(ExportStatus.FAILED, message)
        return self.state

    def confirm(self) -> WizardState:
        """FINISH -> TERMINAL: upsert every experiment/stack row."""
        self._require(WizardState.FINISH)
        try:
            counters = self.executor.upsert_records(self.records)
        except UpsertError as e:
            merged = self._merge(e.counters)
            status = ExportStatus.PARTIAL if e.committed and e.counters.total_rows > 0 else ExportStatus.FAILED
            self._terminate(status, str(e), merged)
            return self.state
        self._terminate(ExportStatus.EXPORTED, None, self._merge(counters))
        return self.state

    def _merge(self, counters: UpsertCounters) -> UpsertCounters:
        return replace(
            counters,
            created_sites=self.site_counters.created_sites,
            updated_sites=self.site_counters.updated_sites,
        )


def run_wizard(wizard: ExportWizard, prompter: Prompter) -> WizardOutcome:
    """Drive the wizard until TERMINAL, one prompter request per step.

    Storage errors outside a site write end the wizard with a FAILED outcome
    instead of propagating.
    """
    try:
        state = wizard.start()
    except StorageError as e:
        state = wizard.fail(f"Validation aborted: {e}")
    while state is not WizardState.TERMINAL:
        try:
            if state is WizardState.NEW_SITE:
                answer = prompter.ask_site(wizard.site_step())
                if answer.action is WizardAction.CANCEL:
                    state = wizard.cancel()
                elif answer.action is WizardAction.BACK:
                    state = wizard.back()
                else:
                    try:
                        state = wizard.submit_site(answer.project, answer.location, answer.depth)
                    except (SiteInputError, SiteWriteError) as e:
                        prompter.show_error(str(e))
            else:
                action = prompter.confirm_export(wizard.plan())
                if action is WizardAction.NEXT:
                    state = wizard.confirm()
                elif action is WizardAction.BACK:
                    state = wizard.back()
                else:
                    state = wizard.cancel()
        except WizardStateError:
            raise
        except Exception as e:
            logger.debug("wizard aborted", exc_info=True)
            state = wizard.fail(f"Export aborted: {e}")
    if wizard.outcome is None:
        raise WizardStateError(f"wizard stopped in state {wizard.state.name} without an outcome")
    return wizard.outcome

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from explog.db.storage import StorageError, StoragePort
from explog.logging.error_log import ErrorLogBuffer
from explog.logging.notice import notice_error, notice_info, notice_success, notice_warn
from explog.markdown.document import DocumentError, NoteDocument
from explog.markdown.frontmatter import ANIMAL_ID_KEY, FrontMatterError, read_animal_id, update_frontmatter
from explog.markdown.table import (
    HEADERS_V1,
    HEADERS_V2,
    adapt_table,
    extract_table_rows,
    generate_table,
    insert_table,
    table_exists,
)
from explog.models.config_models import ExportConfig
from explog.models.export_result import ExportResult, ExportStatus, UpsertCounters
from explog.models.record import ExpLogRecord, InputFormats

from .prompts import Prompter
from .upsert import UpsertExecutor
from .wizard import ExportWizard, run_wizard

"""Export pipeline orchestration.

note text -> table rows -> ExpLogRecords -> validation -> wizard -> upsert

run_export is the boundary of the core: collaborator exceptions are converted
into an ExportResult with a message and reported as notices; nothing raises
out of it for storage, document or validation problems.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ExportError",
    "InputAbsentError",
    "extract_records",
    "select_animal",
    "resolve_animal",
    "run_export",
    "add_table",
]

NO_DATA_MESSAGE = "No data to be exported."
TABLE_MISSING_HINT = (
    "A table with matching headers cannot be found.\n"
    "Please add the ExpLog table (an existing table with older headers is updated automatically)."
)


class ExportError(Exception):
    """Base exception of the export pipeline."""


class InputAbsentError(ExportError):
    """No document to read, or no animal to export for."""


def extract_records(text: str, formats: InputFormats) -> list[ExpLogRecord]:
    """Parse the ExpLog table in `text` into non-empty records (position = table row)."""
    rows = extract_table_rows(text, HEADERS_V2)
    records = [ExpLogRecord.from_row(i, row, formats) for i, row in enumerate(rows, start=1)]
    return [r for r in records if not r.is_empty]


def select_animal(storage: StoragePort, prompter: Prompter) -> str | None:
    """PI -> animal selection through the prompter. None when the user gives up."""
    pis = storage.query_pis()
    if not pis:
        prompter.show_error("No PIs found in database.")
        return None
    pi = prompter.select_pi(pis)
    if not pi:
        return None
    return prompter.select_animal(pi, storage.query_animals(pi))


def resolve_animal(document: NoteDocument, text: str, storage: StoragePort, prompter: Prompter) -> tuple[str | None, str]:
    """Read AnimalID from front matter, asking (and writing it back) when missing.

    Returns (animal_id or None, possibly updated note text).
    """
    animal_id = read_animal_id(text)
    if animal_id:
        return animal_id, text
    animal_id = select_animal(storage, prompter)
    if not animal_id:
        return None, text
    try:
        updated = update_frontmatter(text, {ANIMAL_ID_KEY: animal_id})
    except FrontMatterError as e:
        raise DocumentError(f"cannot write {ANIMAL_ID_KEY} to {document.name}: {e}") from e
    document.write(updated)
    logger.debug("front matter updated with %s=%s", ANIMAL_ID_KEY, animal_id)
    return animal_id, updated


def _finish(result: ExportResult, error_log: ErrorLogBuffer) -> ExportResult:
    result = ExportResult(
        status=result.status,
        animal_id=result.animal_id,
        counters=result.counters,
        message=result.message,
        start_time=result.start_time,
        end_time=datetime.now(UTC),
    )
    path = error_log.flush()
    if path is not None:
        logger.debug("error log written: %s", path)
    return result


def run_export(
    document: NoteDocument,
    config: ExportConfig,
    storage: StoragePort,
    prompter: Prompter,
) -> ExportResult:
    """Export the ExpLog table of `document` into storage."""
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer(Path(config.export.error_log_dir), document.name)

    def _result(status: ExportStatus, animal_id: str | None = None, message: str | None = None,
                counters: UpsertCounters | None = None) -> ExportResult:
        return _finish(ExportResult(
            status=status,
            animal_id=animal_id,
            counters=counters or UpsertCounters(),
            message=message,
            start_time=start_time,
        ), error_log)

    animal_id: str | None = None
    try:
        # InputAbsent: ドキュメント無し
        if not document.exists():
            raise InputAbsentError(f"No active file to export data: {document.path}")
        text = document.read()
        animal_id, text = resolve_animal(document, text, storage, prompter)
        if not animal_id:
            raise InputAbsentError("No animal selected.")
        error_log.animal_id = animal_id
        if not storage.exists_animal(animal_id):
            raise InputAbsentError(f"Animal '{animal_id}' not found in database.")

        records = extract_records(text, config.input.formats())
        if not records:
            if not table_exists(text, HEADERS_V2):
                notice_warn(TABLE_MISSING_HINT)
            notice_warn(NO_DATA_MESSAGE)
            return _result(ExportStatus.NO_DATA, animal_id, NO_DATA_MESSAGE)
        logger.debug("records to export: %d", len(records))

        executor = UpsertExecutor(storage, atomic=config.export.atomic_upsert)
        wizard = ExportWizard(storage, animal_id, records, executor)
        outcome = run_wizard(wizard, prompter)
    except InputAbsentError as e:
        notice_warn(str(e))
        return _result(ExportStatus.FAILED, animal_id, str(e))
    except (StorageError, DocumentError) as e:
        error_log.add("STORAGE_ERROR", str(e))
        notice_error(str(e))
        return _result(ExportStatus.FAILED, animal_id, str(e))

    counters = outcome.counters or UpsertCounters()
    if outcome.succeeded:
        notice_success(f"Data for '{animal_id}' has been exported successfully.")
        return _result(ExportStatus.EXPORTED, animal_id, None, counters)

    message = outcome.message or ""
    if outcome.cancelled:
        notice_info(message)
        return _result(ExportStatus.CANCELLED, animal_id, message, counters)

    if outcome.status is ExportStatus.INVALID:
        for pos in wizard.invalid_positions or (-1,):
            error_log.add("VALIDATION_ERROR", message, pos)
    else:
        error_log.add("WRITE_ERROR", message)
    notice_warn(f"Sorry, data for '{animal_id}' has not been exported.")
    notice_error(message)
    return _result(outcome.status, animal_id, message, counters)


def add_table(
    document: NoteDocument,
    config: ExportConfig,
    storage: StoragePort,
    prompter: Prompter,
) -> bool:
    """Insert a blank ExpLog table into the note, or migrate an old one.

    Returns True when the note was changed.
    """
    if not document.exists():
        notice_warn(f"No active file to insert the table: {document.path}")
        return False
    try:
        text = document.read()
        animal_id, text = resolve_animal(document, text, storage, prompter)
        if not animal_id:
            notice_warn("No animal selected.")
            return False

        if table_exists(text, HEADERS_V2):
            notice_info("A table with matching headers already exists in this file.")
            return False

        if table_exists(text, HEADERS_V1):
            document.write(adapt_table(text, HEADERS_V1, HEADERS_V2))
            notice_success("Existing table updated to match new schema (with Paradigm).")
            return True

        document.write(insert_table(text, generate_table(HEADERS_V2)))
        notice_success("ExpLog table added.")
        return True
    except (StorageError, DocumentError) as e:
        notice_error(str(e))
        return False

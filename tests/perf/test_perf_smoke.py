from __future__ import annotations

import time

from explog.db.memory import InMemoryStorage
from explog.markdown.document import NoteDocument
from explog.models.config_models import ExportConfig, ExportOptions
from explog.models.export_result import ExportStatus
from explog.models.record import InputFormats
from explog.services.export import extract_records, run_export
from scripts.gen_sample_note import generate_note_text
from tests.helpers import ScriptedPrompter, site

"""Performance smoke test: a generated note with a few thousand rows."""

ROWS = 3_000
SITES = 5


def test_extract_generated_note_quickly():
    text = generate_note_text(ROWS, sites=SITES)
    start = time.perf_counter()
    records = extract_records(text, InputFormats())
    elapsed = time.perf_counter() - start
    assert len(records) == ROWS
    assert all(r.is_complete for r in records)
    # CI でも十分余裕のある上限
    assert elapsed < 5.0, f"extraction too slow: {elapsed:.3f}s"


def test_export_generated_note(write_note):
    storage = InMemoryStorage()
    storage.add_animal("M001", pi="Smith")
    note = write_note(generate_note_text(ROWS, sites=SITES))
    prompter = ScriptedPrompter(site_answers=[site() for _ in range(SITES)])
    start = time.perf_counter()
    # 1 コミット (InMemoryStorage のスナップショットはコミット毎に複製される)
    cfg = ExportConfig(export=ExportOptions(atomic_upsert=True))
    result = run_export(NoteDocument(note), cfg, storage, prompter)
    elapsed = time.perf_counter() - start
    assert result.status is ExportStatus.EXPORTED
    assert result.inserted_stacks == ROWS
    assert result.created_sites == SITES
    assert elapsed < 60.0, f"export too slow: {elapsed:.3f}s"

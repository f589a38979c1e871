from __future__ import annotations

from pathlib import Path

from explog.db.memory import InMemoryStorage
from explog.markdown.document import NoteDocument
from explog.markdown.frontmatter import read_animal_id
from explog.models.config_models import ExportConfig, ExportOptions
from explog.models.export_result import ExportStatus
from explog.services.export import add_table, run_export
from explog.services.prompts import SiteAnswer, WizardAction
from tests.helpers import ScriptedPrompter, site

"""End-to-end export through the in-memory adapter: note -> records -> wizard -> store."""


def _fill(note: Path, rows: list[str]) -> None:
    text = note.read_text(encoding="utf-8").rstrip("\n")
    # add-table が作る空行を実データで置き換える
    lines = text.split("\n")
    assert lines[-1].replace("|", "").strip() == ""
    note.write_text("\n".join(lines[:-1] + rows) + "\n", encoding="utf-8")


def test_new_note_to_database(write_note, storage: InMemoryStorage):
    note = write_note("# Session log\n\nPrep notes.\n")
    doc = NoteDocument(note)

    assert add_table(doc, ExportConfig(), storage, ScriptedPrompter(pi="Smith", animal="M001"))
    assert read_animal_id(note.read_text(encoding="utf-8")) == "M001"

    _fill(note, [
        "| 2024-03-01 | 09:00 | 20 | 20 | 20 | rest | baseline |",
        "| 2024-03-01 | 09:30 | 21 | 20 | 20 | OF | |",
        "| 2024-03-02 | 10:00 | 30 | 30 | 30 | OF | |",
        "| 2024-03-02 | 10:15 | 13 | 11 | 10 | grating | known site |",
    ])

    prompter = ScriptedPrompter(site_answers=[
        site("ProjA", "V1", "300"),
        SiteAnswer(WizardAction.BACK),
        site("ProjA", "V1", "320"),
        site("ProjB", "S1"),
    ])
    result = run_export(doc, ExportConfig(), storage, prompter)

    assert result.status is ExportStatus.EXPORTED
    assert result.created_sites == 2
    assert storage.tables.sites[20]["depth"] == 320
    assert storage.tables.sites[30]["project"] == "ProjB"
    assert storage.tables.experiments[20] == {"site_id": 20}
    assert storage.tables.stacks[21]["exp_id"] == 20
    assert storage.tables.stacks[13]["comment"] == "known site"
    assert storage.tables.stacks[20]["paradigm"] == "rest"


def test_reexport_is_idempotent(write_note, storage: InMemoryStorage):
    from tests.helpers import make_note
    note = write_note(make_note([
        "| 2024-03-01 | 09:00 | 20 | 20 | 20 | rest | |",
        "| 2024-03-01 | 09:30 | 21 | 20 | 20 | OF | |",
    ]))
    doc = NoteDocument(note)
    first = run_export(doc, ExportConfig(), storage, ScriptedPrompter(site_answers=[site()]))
    assert first.status is ExportStatus.EXPORTED
    snapshot = {k: dict(v) for k, v in storage.tables.stacks.items()}

    # 2 回目: サイトは既存なのでウィザードのサイト入力は出ない
    prompter = ScriptedPrompter()
    second = run_export(doc, ExportConfig(), storage, prompter)
    assert second.status is ExportStatus.EXPORTED
    assert prompter.steps == []
    assert second.inserted_stacks == 0
    assert second.updated_stacks == 2
    assert {k: dict(v) for k, v in storage.tables.stacks.items()} == snapshot


def test_atomic_mode_rolls_back_whole_batch(write_note, storage: InMemoryStorage):
    from tests.helpers import make_note

    class FailOn14(InMemoryStorage):
        def insert_stack(self, stack_id, *args):
            if stack_id == 14:
                raise RuntimeError("constraint violation")
            super().insert_stack(stack_id, *args)

    store = FailOn14(storage.tables)
    note = write_note(make_note([
        "| 2024-03-01 | 09:00 | 13 | 11 | 10 | | |",
        "| 2024-03-01 | 09:30 | 14 | 11 | 10 | | |",
    ]))
    cfg = ExportConfig(export=ExportOptions(atomic_upsert=True))
    result = run_export(NoteDocument(note), cfg, store, ScriptedPrompter())
    assert result.status is ExportStatus.FAILED
    assert 13 not in store.tables.stacks

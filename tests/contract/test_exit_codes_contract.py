from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path

import explog.cli.__main__ as cli_module
from explog.cli import main as cli_main
from explog.db.memory import InMemoryStorage
from tests.helpers import ScriptedPrompter, make_note, site

"""Exit code contract tests: 0 exported, 1 fatal / not exported, 2 partial, 3 cancelled."""


def _route(monkeypatch, storage: InMemoryStorage, prompter: ScriptedPrompter) -> None:
    @contextmanager
    def fake_create_storage(cfg):
        yield storage
    monkeypatch.setattr(cli_module, "create_storage", fake_create_storage)
    monkeypatch.setattr(cli_module, "ConsolePrompter", lambda: prompter)


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # config/explog.yml 無し → exit 1
    code = cli_main(["export", "note.md"])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_all_success(write_config, write_note, storage, monkeypatch, capsys):
    _route(monkeypatch, storage, ScriptedPrompter(site_answers=[site()]))
    note = write_note(make_note([
        "| 2024-03-01 | 10:00 | 20 | 20 | 20 | | |",
        "| 2024-03-01 | 10:30 | 21 | 20 | 20 | | |",
    ]))
    assert cli_main(["export", str(note)]) == 0
    assert "SUMMARY status=exported experiments=+1/~1 stacks=+2/~0 sites=+1" in capsys.readouterr().out


def test_exit_code_partial_failure(write_config, write_note, storage, monkeypatch, capsys):
    class FailSecond(InMemoryStorage):
        def insert_stack(self, stack_id, *args):
            if stack_id == 14:
                raise RuntimeError("constraint violation")
            super().insert_stack(stack_id, *args)

    _route(monkeypatch, FailSecond(storage.tables), ScriptedPrompter())
    note = write_note(make_note([
        "| 2024-03-01 | 10:00 | 13 | 11 | 10 | | |",
        "| 2024-03-01 | 10:30 | 14 | 11 | 10 | | |",
    ]))
    assert cli_main(["export", str(note)]) == 2
    out = capsys.readouterr().out
    assert "ERROR Export failed at row 2" in out
    assert "SUMMARY status=partial" in out


def test_exit_code_validation_failure(write_config, write_note, storage, monkeypatch):
    _route(monkeypatch, storage, ScriptedPrompter())
    note = write_note(make_note(["| 2024-03-01 | 10:00 | 99 | 11 | 10 | | |"]))
    assert cli_main(["export", str(note)]) == 1


def test_exit_code_cancelled(write_config, write_note, storage, monkeypatch):
    _route(monkeypatch, storage, ScriptedPrompter(site_answers=[]))
    note = write_note(make_note(["| 2024-03-01 | 10:00 | 20 | 20 | 20 | | |"]))
    assert cli_main(["export", str(note)]) == 3

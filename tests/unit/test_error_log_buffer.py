from __future__ import annotations

import json
import re
from pathlib import Path

from explog.logging.error_log import ErrorLogBuffer
from explog.models.error_record import ErrorRecord

KEYS = {"timestamp", "document", "animal", "position", "error_type", "message"}


def test_error_record_creation_and_json_line():
    rec = ErrorRecord.create("note.md", "M001", 3, "VALIDATION_ERROR", "There is invalid data!")
    data = json.loads(rec.to_json_line())
    assert data["document"] == "note.md"
    assert data["animal"] == "M001"
    assert data["position"] == 3
    assert data["timestamp"].endswith("Z")
    assert set(data.keys()) == KEYS


def test_unknown_animal_and_position():
    data = json.loads(ErrorRecord.create("note.md", None, -1, "STORAGE_ERROR", "x").to_json_line())
    assert data["animal"] == ""
    assert data["position"] == -1


def test_flush_writes_json_lines(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path / "logs", "note.md")
    buf.animal_id = "M001"
    buf.add("VALIDATION_ERROR", "a", 1)
    buf.add("VALIDATION_ERROR", "b", 2)
    assert buf.pending == 2
    path = buf.flush()
    assert path is not None and path.parent == tmp_path / "logs"
    assert re.fullmatch(r"errors-\d{8}-\d{6}\.log", path.name)
    entries = [json.loads(raw) for raw in path.read_text(encoding="utf-8").splitlines()]
    assert [(e["document"], e["animal"], e["position"]) for e in entries] == [
        ("note.md", "M001", 1),
        ("note.md", "M001", 2),
    ]
    assert all(set(e.keys()) == KEYS for e in entries)
    # flush 後バッファクリア
    assert buf.pending == 0


def test_records_before_animal_is_known(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path, "note.md")
    buf.add("STORAGE_ERROR", "SQL Error: boom")
    entry = json.loads(buf.flush().read_text(encoding="utf-8"))
    assert entry["animal"] == ""
    assert entry["position"] == -1


def test_flush_empty_buffer_creates_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path / "logs", "note.md")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_multiple_flushes_append_to_same_file(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path, "n.md")
    buf.add("WRITE_ERROR", "dup", 1)
    path = buf.flush()
    size1 = path.stat().st_size
    buf.add("WRITE_ERROR", "dup2", 2)
    path2 = buf.flush()
    assert path == path2
    assert path2.stat().st_size > size1

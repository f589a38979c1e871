# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from explog.db.memory import InMemoryStorage
from explog.logging.init import reset_logging


@pytest.fixture(autouse=True)
def _fresh_logging():
    # logger の stdout ハンドラは capsys ごとに作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "notes").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database:
  type: memory
input:
  date_format: "%Y-%m-%d"
  time_format: "%H:%M"
export:
  atomic_upsert: false
  error_log_dir: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "explog.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def storage() -> InMemoryStorage:
    """Seeded store: M001 (PI Smith) owns site 10 / exp 11 / stack 12, M002 owns 99."""
    s = InMemoryStorage()
    s.add_animal("M001", pi="Smith")
    s.add_animal("M002", pi="Smith")
    s.add_animal("M003", pi="Jones", deleted=True)
    s.add_site(10, "M001", project="ProjA", location="V1")
    s.add_experiment(11, 10)
    s.add_stack(12, 11, "2024-01-01", "09:00")
    s.add_site(99, "M002", project="ProjB", location="S1")
    s.add_experiment(99, 99)
    s.add_stack(99, 99)
    return s


@pytest.fixture()
def write_note(temp_workdir: Path):
    def _write(text: str, name: str = "note.md") -> Path:
        path = temp_workdir / "notes" / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from explog.models.error_record import ErrorRecord

"""Per-export error log.

Each export of a note collects its failures (one record per offending table
row, or position -1) and writes them as JSON Lines to
`<logs_dir>/errors-YYYYMMDD-HHMMSS.log` when the export finishes. Exports
without errors leave no file behind.
"""

__all__ = [
    "ErrorLogBuffer",
]

TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """Error records of one note export."""

    def __init__(self, logs_dir: Path, document: str) -> None:
        self.logs_dir = logs_dir
        self.document = document
        self.animal_id: str | None = None
        self._pending: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def pending(self) -> int:
        return len(self._pending)

    def add(self, error_type: str, message: str, position: int = -1) -> None:
        self._pending.append(
            ErrorRecord.create(self.document, self.animal_id, position, error_type, message)
        )

    def flush(self) -> Path | None:
        """Append pending records to this export's log file. None when nothing is pending."""
        if not self._pending:
            return None
        if self._file_path is None:
            # ファイル名は初回 flush 時の UTC 時刻
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            self._file_path = self.logs_dir / f"errors-{datetime.now(UTC).strftime(TIMESTAMP_FMT)}.log"
        with self._file_path.open("a", encoding="utf-8") as f:
            f.writelines(r.to_json_line() + "\n" for r in self._pending)
        self._pending.clear()
        return self._file_path

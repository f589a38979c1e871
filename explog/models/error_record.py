from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the export error log.

Supports position=-1 as a sentinel for errors that are not tied to a single
table row (configuration, ownership conflicts, storage failures).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        document: Note file name being exported
        animal: Target AnimalID (empty string when not known yet)
        position: Table row position (1-based). -1 when not row specific
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description or driver message
    """
    timestamp: str  # ISO8601 UTC
    document: str
    animal: str
    position: int  # 行番号。不明な場合 -1 許容
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(document: str, animal: str | None, position: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            document=document,
            animal=animal or "",
            position=position,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)

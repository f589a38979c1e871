from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime

"""ExpLogRecord model: one row of the ExpLog table in a note.

A record keeps the literal cell text (raw_*) next to the coerced values so that
error messages can point at what the user actually typed. Validity flags are
derived properties only; nothing is cached on the instance.
"""

__all__ = [
    "InputFormats",
    "ExpLogRecord",
    "parse_int",
    "parse_timestamp",
]

_INT_RE = re.compile(r"^[+-]?\d+$")

STORAGE_DATE_FORMAT = "%Y-%m-%d"
STORAGE_TIME_FORMAT = "%H:%M"


@dataclass(frozen=True)
class InputFormats:
    """Date/time input formats used when coercing table cells (strptime syntax)."""
    date_format: str = "%Y-%m-%d"
    time_format: str = "%H:%M"

    @property
    def combined(self) -> str:
        return f"{self.date_format} {self.time_format}"


def parse_int(raw: str | None) -> int | None:
    """Parse a base-10 integer cell. Anything else yields None (never raises)."""
    if raw is None:
        return None
    text = raw.strip()
    if not _INT_RE.match(text):
        return None
    return int(text)


def parse_timestamp(raw_date: str | None, raw_time: str | None, formats: InputFormats) -> datetime | None:
    """Combine date and time cells with a single space and parse strictly."""
    if not raw_date or not raw_time:
        return None
    try:
        return datetime.strptime(f"{raw_date.strip()} {raw_time.strip()}", formats.combined)
    except ValueError:
        return None


def _text(raw: str | None) -> str | None:
    if raw is None:
        return None
    stripped = raw.strip()
    return stripped or None


@dataclass(frozen=True)
class ExpLogRecord:
    """Typed representation of one ExpLog table row.

    position は表内の 1 始まりの行番号 (ユーザー向けメッセージ用)。
    """
    position: int
    raw_date: str = ""
    raw_time: str = ""
    raw_stack_id: str = ""
    raw_exp_id: str = ""
    raw_site_id: str = ""
    raw_comment: str = ""
    raw_paradigm: str = ""
    timestamp: datetime | None = None
    stack_id: int | None = None
    exp_id: int | None = None
    site_id: int | None = None
    comment: str | None = None
    paradigm: str | None = None

    @classmethod
    def from_row(cls, position: int, row: Mapping[str, str], formats: InputFormats) -> ExpLogRecord:
        """Coerce a raw table row (header -> cell text) into a record."""
        raw_date = (row.get("Date") or "").strip()
        raw_time = (row.get("Time") or "").strip()
        raw_stack = (row.get("StackID") or "").strip()
        raw_exp = (row.get("ExpID") or "").strip()
        raw_site = (row.get("SiteID") or "").strip()
        raw_comment = row.get("Comment") or ""
        raw_paradigm = row.get("Paradigm") or ""
        return cls(
            position=position,
            raw_date=raw_date,
            raw_time=raw_time,
            raw_stack_id=raw_stack,
            raw_exp_id=raw_exp,
            raw_site_id=raw_site,
            raw_comment=raw_comment,
            raw_paradigm=raw_paradigm,
            timestamp=parse_timestamp(raw_date, raw_time, formats),
            stack_id=parse_int(raw_stack),
            exp_id=parse_int(raw_exp),
            site_id=parse_int(raw_site),
            comment=_text(raw_comment),
            paradigm=_text(raw_paradigm),
        )

    def supersede(self, row: Mapping[str, str], formats: InputFormats) -> ExpLogRecord:
        """Return a replacement record for the same position built from changed row data."""
        return ExpLogRecord.from_row(self.position, row, formats)

    @property
    def is_empty(self) -> bool:
        # paradigm だけの行は空行扱い (テンプレート行)
        return (
            self.timestamp is None
            and self.stack_id is None
            and self.exp_id is None
            and self.site_id is None
            and self.comment is None
        )

    @property
    def is_complete(self) -> bool:
        # comment / paradigm は任意項目
        return (
            self.timestamp is not None
            and self.stack_id is not None
            and self.exp_id is not None
            and self.site_id is not None
        )

    @property
    def is_invalid(self) -> bool:
        return (
            (bool(self.raw_date) and self.timestamp is None)
            or (bool(self.raw_time) and self.timestamp is None)
            or (bool(self.raw_stack_id) and self.stack_id is None)
            or (bool(self.raw_exp_id) and self.exp_id is None)
            or (bool(self.raw_site_id) and self.site_id is None)
        )

    @property
    def is_new_site_triple(self) -> bool:
        """True when stack, experiment and site ids are all the same number."""
        return self.site_id is not None and self.stack_id == self.exp_id == self.site_id

    def date_part(self) -> str | None:
        """Local wall-clock date for storage (no timezone conversion)."""
        if self.timestamp is None:
            return None
        return self.timestamp.strftime(STORAGE_DATE_FORMAT)

    def time_part(self) -> str | None:
        if self.timestamp is None:
            return None
        return self.timestamp.strftime(STORAGE_TIME_FORMAT)

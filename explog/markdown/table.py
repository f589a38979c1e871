from __future__ import annotations

import logging
import re
from collections.abc import Sequence

"""ExpLog table extraction from note text.

The ExpLog table is an ordinary pipe table somewhere inside a free-form
markdown note:

    | Date | Time | StackID | ExpID | SiteID | Paradigm | Comment |
    | --- | --- | --- | --- | --- | --- | --- |
    | 2024-03-01 | 10:15 | 20 | 20 | 20 | OF | first |

Header matching is case-insensitive and ignores surrounding whitespace. The
line after the header must be a separator row with the same number of cells.
Data rows run until the first line that is not a pipe table line.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "HEADERS_V1",
    "HEADERS_V2",
    "TableFormatError",
    "find_table",
    "extract_table_rows",
    "table_exists",
    "generate_table",
    "insert_table",
    "adapt_table",
]

# 旧スキーマ (Paradigm 列なし)
HEADERS_V1: tuple[str, ...] = ("Date", "Time", "StackID", "ExpID", "SiteID", "Comment")
# 現行スキーマ
HEADERS_V2: tuple[str, ...] = ("Date", "Time", "StackID", "ExpID", "SiteID", "Paradigm", "Comment")

_CELL_SPLIT_RE = re.compile(r"(?<!\\)\|")
_SEPARATOR_CELL_RE = re.compile(r"^:?-+:?$")


class TableFormatError(Exception):
    """Raised when a matching header is found but the table below it is malformed."""


def _is_table_line(line: str) -> bool:
    stripped = line.strip()
    return len(stripped) >= 2 and stripped.startswith("|") and stripped.endswith("|")


def _split_cells(line: str) -> list[str]:
    """Split a pipe table line into trimmed cells (outer pipes removed)."""
    inner = line.strip()[1:-1]
    return [cell.strip() for cell in _CELL_SPLIT_RE.split(inner)]


def _header_matches(cells: Sequence[str], headers: Sequence[str], exact: bool) -> bool:
    if len(cells) < len(headers) or (exact and len(cells) != len(headers)):
        return False
    return all(c.casefold() == h.casefold() for c, h in zip(cells, headers))


def _find_header_index(lines: Sequence[str], headers: Sequence[str], exact: bool = False) -> int:
    for idx, line in enumerate(lines):
        if _is_table_line(line) and _header_matches(_split_cells(line), headers, exact):
            return idx
    return -1


def _is_separator(line: str, column_count: int) -> bool:
    if not _is_table_line(line):
        return False
    cells = _split_cells(line)
    return len(cells) == column_count and all(_SEPARATOR_CELL_RE.match(c) for c in cells)


def find_table(text: str, headers: Sequence[str]) -> tuple[int, list[list[str]]]:
    """Locate the table and return (header line index, data row cells).

    Raises:
        TableFormatError: header missing or separator row invalid
    """
    lines = text.splitlines()
    header_idx = _find_header_index(lines, headers)
    if header_idx == -1:
        raise TableFormatError("A table with matching headers cannot be found.")
    column_count = len(_split_cells(lines[header_idx]))
    if header_idx + 1 >= len(lines) or not _is_separator(lines[header_idx + 1], column_count):
        raise TableFormatError(
            f"Table header found on line {header_idx + 1} but the separator row is missing or malformed."
        )
    rows: list[list[str]] = []
    for line in lines[header_idx + 2:]:
        if not _is_table_line(line):
            break
        rows.append(_split_cells(line))
    return header_idx, rows


def extract_table_rows(text: str, headers: Sequence[str]) -> list[dict[str, str]]:
    """Parse the data rows of the first table whose header matches `headers`.

    Returns one mapping per data row keyed by header name; missing trailing
    cells become "". An empty list means "no data": no matching header, a bad
    separator row, or no data rows at all.
    """
    try:
        _, rows = find_table(text, headers)
    except TableFormatError as e:
        logger.debug("table extraction: %s", e)
        return []
    result: list[dict[str, str]] = []
    for cells in rows:
        result.append({h: (cells[i] if i < len(cells) else "") for i, h in enumerate(headers)})
    logger.debug("table extraction: %d data rows", len(result))
    return result


def table_exists(text: str, headers: Sequence[str]) -> bool:
    """True when a header row with exactly these columns exists."""
    return _find_header_index(text.splitlines(), headers, exact=True) != -1


def _format_row(cells: Sequence[str]) -> str:
    return "| " + " | ".join(cells) + " |"


def generate_table(headers: Sequence[str]) -> str:
    """Header, separator and one blank data row."""
    return "\n".join([
        _format_row(headers),
        _format_row(["---"] * len(headers)),
        _format_row([" "] * len(headers)),
    ])


def insert_table(text: str, table: str) -> str:
    """Append the table to the note, separated by a blank line."""
    return f"{text}\n\n{table}"


def adapt_table(text: str, old_headers: Sequence[str], new_headers: Sequence[str]) -> str:
    """Rewrite a table with the old header schema to the new one.

    Columns present in both schemas keep their cell values and relative order;
    columns only in the new schema are inserted at their new position with
    blank cells. Text outside the table is left untouched.
    """
    lines = text.split("\n")
    header_idx = _find_header_index(lines, old_headers, exact=True)
    if header_idx == -1:
        return text

    # old index -> new index (順序を保ったマージ)
    column_mapping: dict[int, int] = {}
    old_idx = 0
    for new_idx, name in enumerate(new_headers):
        if old_idx < len(old_headers) and old_headers[old_idx].casefold() == name.casefold():
            column_mapping[old_idx] = new_idx
            old_idx += 1

    lines[header_idx] = _format_row(new_headers)
    body_start = header_idx + 1
    if body_start < len(lines) and _is_separator(lines[body_start], len(old_headers)):
        lines[body_start] = _format_row(["---"] * len(new_headers))
        body_start += 1

    for i in range(body_start, len(lines)):
        if not _is_table_line(lines[i]):
            break
        old_cells = _split_cells(lines[i])
        new_cells = [""] * len(new_headers)
        for o, n in column_mapping.items():
            if o < len(old_cells):
                new_cells[n] = old_cells[o]
        # 旧スキーマより多いセルは末尾に残す
        new_cells.extend(old_cells[len(old_headers):])
        lines[i] = _format_row(new_cells)

    return "\n".join(lines)

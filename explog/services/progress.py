from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display service with tqdm (TTY only).

One tqdm instance per batch; disabled when stdout is not a TTY so that CI logs
and piped output stay free of ANSI control sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled."""
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress tracker for the rows of an export batch."""

    def __init__(self, total_records: int, *, description: str = "Exporting rows") -> None:
        self.total_records = total_records
        self.description = description
        self.current_record = 0

        self.enabled = is_tty_enabled() and total_records > 0
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_records,
                desc=description,
                unit="row",
                leave=False,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_record(self, position: int) -> None:
        self.current_record += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} (row {position})")

    def finish_record(self) -> None:
        if self.pbar is not None:
            self.pbar.update(1)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

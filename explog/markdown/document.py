from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

"""Document source: the note being exported."""


class DocumentError(Exception):
    """Raised when the note cannot be read or written."""


@dataclass(frozen=True)
class NoteDocument:
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentError(f"cannot read note {self.path}: {e}") from e

    def write(self, text: str) -> None:
        try:
            self.path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise DocumentError(f"cannot write note {self.path}: {e}") from e

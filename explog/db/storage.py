from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import Enum

"""Storage port consumed by the export core.

The validation engine, wizard and upsert executor only talk to this interface.
Which database engine sits behind it is decided once, in
explog.db.connection.create_storage; nothing in the core branches on it.

update_* methods return the affected row count so callers can fall back to an
INSERT when nothing was updated.
"""

__all__ = [
    "EntityKind",
    "StorageError",
    "StoragePort",
]


class StorageError(Exception):
    """Wraps driver level errors raised by a storage adapter."""


class EntityKind(Enum):
    STACK = "stack"
    EXPERIMENT = "experiment"
    SITE = "site"

    @property
    def label(self) -> str:
        return {
            EntityKind.STACK: "StackIDs",
            EntityKind.EXPERIMENT: "ExpIDs",
            EntityKind.SITE: "SiteIDs",
        }[self]


class StoragePort(ABC):
    # --- animal selection ---
    @abstractmethod
    def query_pis(self) -> list[str]: ...

    @abstractmethod
    def query_animals(self, pi: str) -> list[str]: ...

    @abstractmethod
    def exists_animal(self, animal_id: str) -> bool: ...

    # --- validation queries ---
    @abstractmethod
    def query_missing_site_ids(self, site_ids: Iterable[int]) -> list[int]:
        """Ids from `site_ids` with no row in sites (soft-deleted rows count as present). Ascending."""

    @abstractmethod
    def query_foreign_owned_ids(self, kind: EntityKind, animal_id: str, ids: Iterable[int]) -> list[int]:
        """Existing ids of `kind` whose owning animal is not `animal_id`. Ascending."""

    # --- wizard lookups ---
    @abstractmethod
    def query_distinct_projects(self) -> list[str]: ...

    @abstractmethod
    def query_distinct_locations(self) -> list[str]: ...

    # --- writes ---
    @abstractmethod
    def update_site(self, site_id: int, animal_id: str, project: str, location: str, depth: int | None) -> int: ...

    @abstractmethod
    def insert_site(self, site_id: int, animal_id: str, project: str, location: str, depth: int | None) -> None: ...

    @abstractmethod
    def update_experiment(self, exp_id: int, site_id: int) -> int: ...

    @abstractmethod
    def insert_experiment(self, exp_id: int, site_id: int) -> None: ...

    @abstractmethod
    def update_stack(
        self,
        stack_id: int,
        exp_id: int,
        stack_date: str,
        stack_time: str,
        paradigm: str | None,
        comment: str | None,
    ) -> int: ...

    @abstractmethod
    def insert_stack(
        self,
        stack_id: int,
        exp_id: int,
        stack_date: str,
        stack_time: str,
        paradigm: str | None,
        comment: str | None,
    ) -> None: ...

    # --- transaction control ---
    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from .storage import EntityKind, StorageError, StoragePort

"""PostgreSQL storage adapter (psycopg2 cursor).

Table layout follows sql/schema.sql: animals, projects, sites, experiments,
stacks. Id lists are passed as arrays (`= ANY(%s)`), never interpolated.

Existence checks include soft-deleted rows (datadeleted = TRUE) because their
primary keys are still taken; PI / animal listings exclude them.
"""

__all__ = [
    "PostgresStorage",
]

_FOREIGN_OWNED_SQL: dict[EntityKind, str] = {
    EntityKind.STACK: """
        SELECT DISTINCT st.stackid FROM stacks st
        INNER JOIN experiments e ON st.expid = e.expid
        INNER JOIN sites si ON e.siteid = si.siteid
        WHERE st.stackid = ANY(%s) AND si.animalid <> %s
        ORDER BY st.stackid ASC
    """,
    EntityKind.EXPERIMENT: """
        SELECT DISTINCT e.expid FROM experiments e
        INNER JOIN sites si ON e.siteid = si.siteid
        WHERE e.expid = ANY(%s) AND si.animalid <> %s
        ORDER BY e.expid ASC
    """,
    EntityKind.SITE: """
        SELECT DISTINCT siteid FROM sites
        WHERE siteid = ANY(%s) AND animalid <> %s
        ORDER BY siteid ASC
    """,
}


class PostgresStorage(StoragePort):
    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    def _execute(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        try:
            self._cursor.execute(sql, params)
        except Exception as e:
            raise StorageError(f"SQL Error: {e}") from e
        return self._cursor

    def _fetch_column(self, sql: str, params: Sequence[Any] | None = None) -> list[Any]:
        cur = self._execute(sql, params)
        try:
            return [row[0] for row in cur.fetchall()]
        except Exception as e:
            raise StorageError(f"SQL Error: {e}") from e

    # --- animal selection ---
    def query_pis(self) -> list[str]:
        return self._fetch_column(
            "SELECT DISTINCT pi FROM animals WHERE pi IS NOT NULL AND datadeleted = FALSE ORDER BY pi ASC"
        )

    def query_animals(self, pi: str) -> list[str]:
        return self._fetch_column(
            "SELECT animalid FROM animals WHERE pi = %s AND datadeleted = FALSE ORDER BY animalid ASC",
            (pi,),
        )

    def exists_animal(self, animal_id: str) -> bool:
        rows = self._fetch_column(
            "SELECT COUNT(*) FROM animals WHERE animalid = %s AND datadeleted = FALSE",
            (animal_id,),
        )
        return bool(rows) and rows[0] > 0

    # --- validation queries ---
    def query_missing_site_ids(self, site_ids: Iterable[int]) -> list[int]:
        wanted = sorted(set(site_ids))
        if not wanted:
            return []
        existing = set(self._fetch_column(
            "SELECT siteid FROM sites WHERE siteid = ANY(%s) ORDER BY siteid ASC",
            (wanted,),
        ))
        return [s for s in wanted if s not in existing]

    def query_foreign_owned_ids(self, kind: EntityKind, animal_id: str, ids: Iterable[int]) -> list[int]:
        wanted = sorted(set(ids))
        if not wanted:
            return []
        return self._fetch_column(_FOREIGN_OWNED_SQL[kind], (wanted, animal_id))

    # --- wizard lookups ---
    def query_distinct_projects(self) -> list[str]:
        # sites.project は projects.projectid への FK
        return self._fetch_column("SELECT DISTINCT projectid FROM projects ORDER BY projectid ASC")

    def query_distinct_locations(self) -> list[str]:
        return self._fetch_column(
            "SELECT DISTINCT location FROM sites WHERE location IS NOT NULL ORDER BY location ASC"
        )

    # --- writes ---
    def update_site(self, site_id: int, animal_id: str, project: str, location: str, depth: int | None) -> int:
        cur = self._execute(
            "UPDATE sites SET animalid = %s, project = %s, location = %s, depth = %s WHERE siteid = %s",
            (animal_id, project, location, depth, site_id),
        )
        return cur.rowcount

    def insert_site(self, site_id: int, animal_id: str, project: str, location: str, depth: int | None) -> None:
        self._execute(
            "INSERT INTO sites (siteid, animalid, project, location, depth) VALUES (%s, %s, %s, %s, %s)",
            (site_id, animal_id, project, location, depth),
        )

    def update_experiment(self, exp_id: int, site_id: int) -> int:
        cur = self._execute(
            "UPDATE experiments SET siteid = %s WHERE expid = %s",
            (site_id, exp_id),
        )
        return cur.rowcount

    def insert_experiment(self, exp_id: int, site_id: int) -> None:
        self._execute(
            "INSERT INTO experiments (expid, siteid) VALUES (%s, %s)",
            (exp_id, site_id),
        )

    def update_stack(self, stack_id: int, exp_id: int, stack_date: str, stack_time: str,
                     paradigm: str | None, comment: str | None) -> int:
        cur = self._execute(
            "UPDATE stacks SET expid = %s, stackdate = %s, stacktime = %s, paradigm = %s, comment = %s "
            "WHERE stackid = %s",
            (exp_id, stack_date, stack_time, paradigm, comment, stack_id),
        )
        return cur.rowcount

    def insert_stack(self, stack_id: int, exp_id: int, stack_date: str, stack_time: str,
                     paradigm: str | None, comment: str | None) -> None:
        self._execute(
            "INSERT INTO stacks (stackid, expid, stackdate, stacktime, paradigm, comment) "
            "VALUES (%s, %s, %s, %s, %s, %s)",
            (stack_id, exp_id, stack_date, stack_time, paradigm, comment),
        )

    # --- transaction control ---
    def commit(self) -> None:
        try:
            self._cursor.connection.commit()
        except Exception as e:
            raise StorageError(f"commit failed: {e}") from e

    def rollback(self) -> None:
        try:
            self._cursor.connection.rollback()
        except Exception as e:
            raise StorageError(f"rollback failed: {e}") from e

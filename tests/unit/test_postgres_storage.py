from __future__ import annotations

import pytest

from explog.db.postgres import PostgresStorage
from explog.db.storage import EntityKind, StorageError


class DummyConnection:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


class DummyCursor:
    def __init__(self, results: list[list[tuple]] | None = None, rowcount: int = 0) -> None:
        self.queries: list[tuple[str, tuple | None]] = []
        self.results = list(results or [])
        self.rowcount = rowcount
        self.connection = DummyConnection()
        self.fail_with: Exception | None = None

    def execute(self, sql, params=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.queries.append((" ".join(sql.split()), params))

    def fetchall(self):
        return self.results.pop(0) if self.results else []


def test_query_pis_excludes_deleted():
    cur = DummyCursor(results=[[("Jones",), ("Smith",)]])
    assert PostgresStorage(cur).query_pis() == ["Jones", "Smith"]
    sql, params = cur.queries[0]
    assert "datadeleted = FALSE" in sql
    assert params is None


def test_exists_animal_uses_count():
    cur = DummyCursor(results=[[(1,)], [(0,)]])
    store = PostgresStorage(cur)
    assert store.exists_animal("M001") is True
    assert store.exists_animal("M404") is False
    assert cur.queries[0][1] == ("M001",)


def test_missing_site_ids_passes_array_parameter():
    cur = DummyCursor(results=[[(10,)]])
    assert PostgresStorage(cur).query_missing_site_ids([20, 10, 20]) == [20]
    sql, params = cur.queries[0]
    assert "= ANY(%s)" in sql
    assert params == ([10, 20],)


def test_empty_id_lists_skip_the_query():
    cur = DummyCursor()
    store = PostgresStorage(cur)
    assert store.query_missing_site_ids([]) == []
    assert store.query_foreign_owned_ids(EntityKind.STACK, "M001", []) == []
    assert cur.queries == []


@pytest.mark.parametrize("kind,column", [
    (EntityKind.STACK, "st.stackid"),
    (EntityKind.EXPERIMENT, "e.expid"),
    (EntityKind.SITE, "siteid"),
])
def test_foreign_owned_sql_per_kind(kind, column):
    cur = DummyCursor(results=[[(99,)]])
    assert PostgresStorage(cur).query_foreign_owned_ids(kind, "M001", [99, 12]) == [99]
    sql, params = cur.queries[0]
    assert f"{column} = ANY(%s)" in sql
    assert "animalid <> %s" in sql
    assert params == ([12, 99], "M001")


def test_projects_come_from_projects_table():
    cur = DummyCursor(results=[[("ProjA",)]])
    assert PostgresStorage(cur).query_distinct_projects() == ["ProjA"]
    assert "FROM projects" in cur.queries[0][0]


def test_update_returns_rowcount_and_insert_params():
    cur = DummyCursor(rowcount=1)
    store = PostgresStorage(cur)
    assert store.update_stack(5, 4, "2024-03-01", "10:15", "OF", None) == 1
    sql, params = cur.queries[0]
    assert sql.startswith("UPDATE stacks SET")
    assert params == (4, "2024-03-01", "10:15", "OF", None, 5)
    store.insert_site(20, "M001", "ProjA", "V1", None)
    assert cur.queries[1][1] == (20, "M001", "ProjA", "V1", None)


def test_commit_and_rollback_use_cursor_connection():
    cur = DummyCursor()
    store = PostgresStorage(cur)
    store.commit()
    store.rollback()
    assert (cur.connection.commits, cur.connection.rollbacks) == (1, 1)


def test_driver_errors_are_wrapped():
    cur = DummyCursor()
    cur.fail_with = RuntimeError("relation \"stacks\" does not exist")
    with pytest.raises(StorageError) as ei:
        PostgresStorage(cur).insert_experiment(1, 1)
    assert str(ei.value).startswith("SQL Error:")

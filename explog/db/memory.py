from __future__ import annotations

import copy
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .storage import EntityKind, StoragePort

"""In-memory storage adapter.

Second implementation of StoragePort, used in mock mode (DISABLE_DB_CONNECT=1
or database.type: memory) and by the test-suite. It mirrors the ownership chain
Stack -> Experiment -> Site -> Animal and supports commit/rollback by keeping a
snapshot of the last committed state.
"""

__all__ = [
    "InMemoryStorage",
    "MemoryTables",
]


@dataclass
class MemoryTables:
    animals: dict[str, dict[str, Any]] = field(default_factory=dict)
    sites: dict[int, dict[str, Any]] = field(default_factory=dict)
    experiments: dict[int, dict[str, Any]] = field(default_factory=dict)
    stacks: dict[int, dict[str, Any]] = field(default_factory=dict)


class InMemoryStorage(StoragePort):
    def __init__(self, tables: MemoryTables | None = None) -> None:
        self.tables = tables if tables is not None else MemoryTables()
        self._committed = copy.deepcopy(self.tables)
        self.writes: list[tuple[str, Any]] = []  # 書き込み履歴 (テスト検証用)
        self.commits = 0
        self.rollbacks = 0

    # --- seeding helpers ---
    def add_animal(self, animal_id: str, pi: str | None = None, deleted: bool = False) -> None:
        self.tables.animals[animal_id] = {"pi": pi, "deleted": deleted}
        self._committed = copy.deepcopy(self.tables)

    def add_site(self, site_id: int, animal_id: str, project: str = "P", location: str = "L",
                 depth: int | None = None, deleted: bool = False) -> None:
        self.tables.sites[site_id] = {
            "animal_id": animal_id, "project": project, "location": location,
            "depth": depth, "deleted": deleted,
        }
        self._committed = copy.deepcopy(self.tables)

    def add_experiment(self, exp_id: int, site_id: int) -> None:
        self.tables.experiments[exp_id] = {"site_id": site_id}
        self._committed = copy.deepcopy(self.tables)

    def add_stack(self, stack_id: int, exp_id: int, stack_date: str = "", stack_time: str = "",
                  paradigm: str | None = None, comment: str | None = None) -> None:
        self.tables.stacks[stack_id] = {
            "exp_id": exp_id, "date": stack_date, "time": stack_time,
            "paradigm": paradigm, "comment": comment,
        }
        self._committed = copy.deepcopy(self.tables)

    # --- ownership helpers ---
    def _site_owner(self, site_id: int | None) -> str | None:
        site = self.tables.sites.get(site_id) if site_id is not None else None
        return site["animal_id"] if site else None

    def _experiment_owner(self, exp_id: int | None) -> str | None:
        exp = self.tables.experiments.get(exp_id) if exp_id is not None else None
        return self._site_owner(exp["site_id"]) if exp else None

    def _stack_owner(self, stack_id: int) -> str | None:
        stack = self.tables.stacks.get(stack_id)
        return self._experiment_owner(stack["exp_id"]) if stack else None

    # --- StoragePort ---
    def query_pis(self) -> list[str]:
        return sorted({a["pi"] for a in self.tables.animals.values() if a["pi"] and not a["deleted"]})

    def query_animals(self, pi: str) -> list[str]:
        return sorted(k for k, a in self.tables.animals.items() if a["pi"] == pi and not a["deleted"])

    def exists_animal(self, animal_id: str) -> bool:
        animal = self.tables.animals.get(animal_id)
        return animal is not None and not animal["deleted"]

    def query_missing_site_ids(self, site_ids: Iterable[int]) -> list[int]:
        return sorted({s for s in site_ids if s not in self.tables.sites})

    def query_foreign_owned_ids(self, kind: EntityKind, animal_id: str, ids: Iterable[int]) -> list[int]:
        owner_of = {
            EntityKind.STACK: self._stack_owner,
            EntityKind.EXPERIMENT: self._experiment_owner,
            EntityKind.SITE: self._site_owner,
        }[kind]
        foreign = set()
        for i in ids:
            owner = owner_of(i)
            if owner is not None and owner != animal_id:
                foreign.add(i)
        return sorted(foreign)

    def query_distinct_projects(self) -> list[str]:
        return sorted({s["project"] for s in self.tables.sites.values() if s["project"]})

    def query_distinct_locations(self) -> list[str]:
        return sorted({s["location"] for s in self.tables.sites.values() if s["location"]})

    def update_site(self, site_id: int, animal_id: str, project: str, location: str, depth: int | None) -> int:
        site = self.tables.sites.get(site_id)
        if site is None:
            return 0
        site.update(animal_id=animal_id, project=project, location=location, depth=depth)
        self.writes.append(("update_site", site_id))
        return 1

    def insert_site(self, site_id: int, animal_id: str, project: str, location: str, depth: int | None) -> None:
        if site_id in self.tables.sites:
            raise KeyError(f"duplicate key sites.siteid={site_id}")
        self.tables.sites[site_id] = {
            "animal_id": animal_id, "project": project, "location": location,
            "depth": depth, "deleted": False,
        }
        self.writes.append(("insert_site", site_id))

    def update_experiment(self, exp_id: int, site_id: int) -> int:
        exp = self.tables.experiments.get(exp_id)
        if exp is None:
            return 0
        exp["site_id"] = site_id
        self.writes.append(("update_experiment", exp_id))
        return 1

    def insert_experiment(self, exp_id: int, site_id: int) -> None:
        if exp_id in self.tables.experiments:
            raise KeyError(f"duplicate key experiments.expid={exp_id}")
        if site_id not in self.tables.sites:
            raise KeyError(f"foreign key violation: sites.siteid={site_id}")
        self.tables.experiments[exp_id] = {"site_id": site_id}
        self.writes.append(("insert_experiment", exp_id))

    def update_stack(self, stack_id: int, exp_id: int, stack_date: str, stack_time: str,
                     paradigm: str | None, comment: str | None) -> int:
        stack = self.tables.stacks.get(stack_id)
        if stack is None:
            return 0
        stack.update(exp_id=exp_id, date=stack_date, time=stack_time, paradigm=paradigm, comment=comment)
        self.writes.append(("update_stack", stack_id))
        return 1

    def insert_stack(self, stack_id: int, exp_id: int, stack_date: str, stack_time: str,
                     paradigm: str | None, comment: str | None) -> None:
        if stack_id in self.tables.stacks:
            raise KeyError(f"duplicate key stacks.stackid={stack_id}")
        if exp_id not in self.tables.experiments:
            raise KeyError(f"foreign key violation: experiments.expid={exp_id}")
        self.tables.stacks[stack_id] = {
            "exp_id": exp_id, "date": stack_date, "time": stack_time,
            "paradigm": paradigm, "comment": comment,
        }
        self.writes.append(("insert_stack", stack_id))

    def commit(self) -> None:
        self._committed = copy.deepcopy(self.tables)
        self.commits += 1

    def rollback(self) -> None:
        self.tables = copy.deepcopy(self._committed)
        self.rollbacks += 1

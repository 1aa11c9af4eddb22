"""Shared fixtures: an in-memory stand-in for the supabase-py query builder."""
from datetime import datetime, timedelta
from uuid import uuid4

import pytest

USER_ID = "00000000-0000-0000-0000-000000000001"


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Supports the chain used by db.py: select/insert/update/delete, eq, in_, order, limit, range, execute."""

    def __init__(self, store, table):
        self.store = store
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self._order = None
        self._limit = None
        self._range = None

    def select(self, *columns, count=None):
        self.op = "select"
        return self

    def insert(self, rows):
        self.op = "insert"
        self.payload = rows if isinstance(rows, list) else [rows]
        return self

    def update(self, values):
        self.op = "update"
        self.payload = values
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda r: r.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda r: r.get(column) in values)
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def execute(self):
        rows = self.store.tables.setdefault(self.table, [])
        if self.op == "insert":
            inserted = []
            for row in self.payload:
                row = dict(row)
                row.setdefault("id", str(uuid4()))
                row.setdefault("created_at", self.store.tick())
                rows.append(row)
                inserted.append(dict(row))
            return FakeResponse(inserted)

        matched = [r for r in rows if all(f(r) for f in self.filters)]
        if self.op == "update":
            for r in matched:
                r.update(self.payload)
            return FakeResponse([dict(r) for r in matched])
        if self.op == "delete":
            self.store.tables[self.table] = [r for r in rows if r not in matched]
            return FakeResponse([dict(r) for r in matched])

        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda r: r.get(column) or "", reverse=desc)
        if self._range:
            start, end = self._range
            matched = matched[start : end + 1]
        if self._limit is not None:
            matched = matched[: self._limit]
        self.store.queries += 1
        return FakeResponse([dict(r) for r in matched], count=len(matched))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.queries = 0
        self._clock = datetime(2026, 1, 1)

    def tick(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def fake_client():
    return FakeSupabase()


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def planner(fake_client):
    from cycleplan.planner import CyclePlanner
    return CyclePlanner(fake_client)

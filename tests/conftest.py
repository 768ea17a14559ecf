from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable, Optional

import pytest

from smb_connect.modules.auth.service import clear_auth_cache
from smb_connect.realtime.bridge import RealtimeChangeBridge


def _coerce(value: Any) -> Any:
    if isinstance(value, str) and "T" in value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return value


def _or_clause_matches(actual: Any, op: str, expected: str) -> bool:
    if op == "is":
        return actual is None if expected == "null" else str(actual).lower() == expected
    if isinstance(actual, bool):
        return str(actual).lower() == expected
    return str(actual) == expected


class FakeResponse:
    def __init__(self, data: Any, count: Optional[int] = None) -> None:
        self.data = data
        self.count = count


class FakeQuery:
    """Just enough of the PostgREST query builder for the services under test."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload: Any = None
        self.filters: list[Callable[[dict], bool]] = []
        self.count_mode: Optional[str] = None
        self.head = False
        self.order_by: Optional[tuple[str, bool]] = None
        self.limit_n: Optional[int] = None
        self.range_bounds: Optional[tuple[int, int]] = None
        self.maybe = False

    # operations
    def select(self, *columns: str, count: Optional[str] = None, head: Optional[bool] = None) -> "FakeQuery":
        self.count_mode = count
        self.head = bool(head)
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload: dict) -> "FakeQuery":
        self.op, self.payload = "update", payload
        return self

    def delete(self) -> "FakeQuery":
        self.op = "delete"
        return self

    # filters
    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda row: _coerce(row.get(column)) == _coerce(value))
        return self

    def neq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda row: _coerce(row.get(column)) != _coerce(value))
        return self

    def gt(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda row: row.get(column) is not None and _coerce(row[column]) > _coerce(value))
        return self

    def in_(self, column: str, values: list) -> "FakeQuery":
        allowed = list(values)
        self.filters.append(lambda row: row.get(column) in allowed)
        return self

    def or_(self, expression: str) -> "FakeQuery":
        clauses = []
        for part in expression.split(","):
            column, op, value = part.split(".", 2)
            assert op in ("eq", "is"), "fake only understands eq and is inside or_"
            clauses.append((column, op, value))
        self.filters.append(lambda row: any(_or_clause_matches(row.get(c), op, v) for c, op, v in clauses))
        return self

    # modifiers
    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.order_by = (column, desc)
        return self

    def limit(self, n: int) -> "FakeQuery":
        self.limit_n = n
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self.range_bounds = (start, end)
        return self

    def maybe_single(self) -> "FakeQuery":
        self.maybe = True
        return self

    def execute(self) -> Optional[FakeResponse]:
        if self.table_name in self.db.failing_tables:
            raise RuntimeError(f"connection reset while querying {self.table_name}")
        self.db.query_log.append((self.op, self.table_name))
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.op == "insert":
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for payload in payloads:
                row = {"id": str(uuid.uuid4()), "created_at": datetime.now(timezone.utc).isoformat(), **payload}
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResponse(inserted)

        matched = [row for row in rows if all(f(row) for f in self.filters)]

        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([copy.deepcopy(row) for row in matched])

        if self.op == "delete":
            self.db.tables[self.table_name] = [row for row in rows if row not in matched]
            return FakeResponse([copy.deepcopy(row) for row in matched])

        if self.order_by:
            column, desc = self.order_by
            # Postgres default: nulls sort as the largest value
            def sort_key(row: dict) -> tuple:
                value = _coerce(row.get(column))
                return (value is None, value if value is not None else 0)
            matched = sorted(matched, key=sort_key, reverse=desc)
        total = len(matched)
        if self.range_bounds:
            start, end = self.range_bounds
            matched = matched[start:end + 1]
        if self.limit_n is not None:
            matched = matched[: self.limit_n]
        data = [copy.deepcopy(row) for row in matched]
        count = total if self.count_mode else None
        if self.head:
            data = []
        if self.maybe:
            if not data:
                return None
            return FakeResponse(data[0], count)
        return FakeResponse(data, count)


class FakeAuth:
    def __init__(self) -> None:
        self.users: dict[str, SimpleNamespace] = {}

    def get_user(self, jwt: str) -> SimpleNamespace:
        if jwt not in self.users:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=self.users[jwt])


class FakeSupabase:
    def __init__(self) -> None:
        self.tables: dict[str, list[dict]] = {}
        self.failing_tables: set[str] = set()
        self.query_log: list[tuple[str, str]] = []
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def seed(self, table: str, *rows: dict) -> None:
        self.tables.setdefault(table, []).extend(copy.deepcopy(list(rows)))

    def add_user(self, token: str, user_id: str, email: str = "member@example.com") -> None:
        self.auth.users[token] = SimpleNamespace(id=user_id, email=email, user_metadata={}, app_metadata={})


class FakeChannel:
    def __init__(self, name: str, bindings: tuple, on_event: Callable[[dict], None]) -> None:
        self.name = name
        self.bindings = bindings
        self.on_event = on_event


class FakeTransport:
    """In-memory realtime transport; emit() plays the role of a Postgres change event."""

    def __init__(self) -> None:
        self.channels: dict[str, FakeChannel] = {}
        self.log: list[tuple[str, str]] = []

    async def subscribe(self, channel_name: str, bindings, on_event) -> FakeChannel:
        channel = FakeChannel(channel_name, tuple(bindings), on_event)
        self.channels[channel_name] = channel
        self.log.append(("subscribe", channel_name))
        return channel

    async def unsubscribe(self, handle: FakeChannel) -> None:
        self.channels.pop(handle.name, None)
        self.log.append(("unsubscribe", handle.name))

    def emit(self, table: str, event: str = "INSERT", record: Optional[dict] = None) -> None:
        record = record or {}
        for channel in list(self.channels.values()):
            for binding in channel.bindings:
                if binding.table != table or binding.event not in ("*", event):
                    continue
                if binding.filter:
                    column, _, value = binding.filter.partition("=eq.")
                    if str(record.get(column)) != value:
                        continue
                channel.on_event({"table": table, "eventType": event, "new": record})
                break


T0 = "2024-03-01T09:00:00+00:00"
T1 = "2024-03-02T09:00:00+00:00"


@pytest.fixture(autouse=True)
def _reset_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def bridge(transport: FakeTransport) -> RealtimeChangeBridge:
    return RealtimeChangeBridge(transport)

"""
Shared test fixtures.

The mock Supabase client keeps rows in memory and honours the parts of
PostgREST the services rely on: filters, ordering, ranges, exact counts,
unique constraints, upsert on_conflict and ON DELETE CASCADE.
"""

import os
import re
import sys
from copy import deepcopy
from datetime import datetime, timezone
from pathlib import Path

# Settings require a Supabase URL/key at import time
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from unittest.mock import patch
from typing import Generator

from tests.factories import (
    CATALOG_TIMESTAMP,
    CustomerFactory,
    MappingFactory,
    VariationFactory,
)


# ===================
# MOCK SUPABASE CLIENT
# ===================

UNIQUE_CONSTRAINTS = {
    "sku_mappings": [("id",), ("standard_sku",)],
    "sku_variations": [("id",), ("mapping_id", "customer_id", "variation_sku")],
}

# parent table -> [(child table, foreign key column)]
CASCADES = {
    "sku_mappings": [("sku_variations", "mapping_id")],
    "customers": [("sku_variations", "customer_id")],
}


class MockDatabaseError(Exception):
    """Raised where PostgREST would return an error."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _like_to_regex(pattern: str) -> re.Pattern:
    # '*' and '%' match any run of characters, '_' exactly one
    pattern = pattern.strip('"')
    regex = "".join(
        ".*" if char in "*%" else "." if char == "_" else re.escape(char)
        for char in pattern
    )
    return re.compile(regex, re.IGNORECASE | re.DOTALL)


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count


class MockSupabaseQuery:
    """Chainable query builder executed against MockSupabaseClient rows."""

    def __init__(self, client: "MockSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._op = "select"
        self._payload: list = []
        self._columns = "*"
        self._count_mode = None
        self._filters = []
        self._orders = []
        self._range = None
        self._limit = None
        self._on_conflict = None

    # --- operations ---

    def select(self, columns: str = "*", count: str = None):
        self._columns = columns
        self._count_mode = count
        return self

    def insert(self, data):
        self._op = "insert"
        self._payload = deepcopy(data if isinstance(data, list) else [data])
        return self

    def upsert(self, data, on_conflict: str = ""):
        self._op = "upsert"
        self._payload = deepcopy(data if isinstance(data, list) else [data])
        self._on_conflict = [c.strip() for c in on_conflict.split(",") if c.strip()]
        return self

    def update(self, data: dict):
        self._op = "update"
        self._payload = [deepcopy(data)]
        return self

    def delete(self):
        self._op = "delete"
        return self

    # --- filters ---

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def ilike(self, column, pattern):
        regex = _like_to_regex(pattern)
        self._filters.append(lambda row: regex.fullmatch(str(row.get(column) or "")) is not None)
        return self

    def or_(self, expression: str):
        checks = []
        for clause in expression.split(","):
            column, op, value = clause.split(".", 2)
            if op == "ilike":
                regex = _like_to_regex(value)
                checks.append(
                    lambda row, c=column, r=regex: r.fullmatch(str(row.get(c) or "")) is not None
                )
            elif op == "eq":
                checks.append(lambda row, c=column, v=value: str(row.get(c)) == v)
            else:
                raise NotImplementedError(f"or_ operator {op}")
        self._filters.append(lambda row: any(check(row) for check in checks))
        return self

    def order(self, column, desc: bool = False):
        self._orders.append((column, desc))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    # --- execution ---

    def _matches(self, row: dict) -> bool:
        return all(check(row) for check in self._filters)

    def execute(self) -> MockSupabaseResponse:
        self._client.calls.append((self._table, self._op))
        self._client.raise_if_failing(self._table, self._op)
        handler = getattr(self, f"_execute_{self._op}")
        return handler()

    def _execute_select(self) -> MockSupabaseResponse:
        rows = [r for r in self._client.tables.setdefault(self._table, []) if self._matches(r)]
        for column, desc in reversed(self._orders):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)

        count = len(rows) if self._count_mode else None
        if self._range:
            start, end = self._range
            rows = rows[start:end + 1]
        if self._limit is not None:
            rows = rows[:self._limit]

        if self._columns.strip() != "*":
            wanted = [c.strip() for c in self._columns.split(",")]
            rows = [{c: r.get(c) for c in wanted} for r in rows]

        return MockSupabaseResponse(deepcopy(rows), count)

    def _execute_insert(self) -> MockSupabaseResponse:
        new_rows = [self._client.new_row(self._table, item) for item in self._payload]
        self._client.commit(self._table, self._client.tables.get(self._table, []) + new_rows)
        return MockSupabaseResponse(deepcopy(new_rows))

    def _execute_upsert(self) -> MockSupabaseResponse:
        current = deepcopy(self._client.tables.get(self._table, []))
        written = []
        for item in self._payload:
            match = next(
                (r for r in current if all(r.get(c) == item.get(c) for c in self._on_conflict)),
                None
            )
            if match is not None:
                match.update(item)
                written.append(match)
            else:
                row = self._client.new_row(self._table, item)
                current.append(row)
                written.append(row)
        self._client.commit(self._table, current)
        return MockSupabaseResponse(deepcopy(written))

    def _execute_update(self) -> MockSupabaseResponse:
        current = deepcopy(self._client.tables.get(self._table, []))
        updated = []
        for row in current:
            if self._matches(row):
                row.update(self._payload[0])
                updated.append(row)
        self._client.commit(self._table, current)
        return MockSupabaseResponse(deepcopy(updated))

    def _execute_delete(self) -> MockSupabaseResponse:
        rows = self._client.tables.get(self._table, [])
        deleted = [r for r in rows if self._matches(r)]
        self._client.tables[self._table] = [r for r in rows if not self._matches(r)]

        for child, column in CASCADES.get(self._table, []):
            ids = {r["id"] for r in deleted}
            self._client.tables[child] = [
                r for r in self._client.tables.get(child, []) if r.get(column) not in ids
            ]

        return MockSupabaseResponse(deepcopy(deleted))


class MockSupabaseClient:
    """In-memory Supabase client."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self._next_ids: dict[str, int] = {}
        self._failures: dict[tuple[str, str], int] = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Replace the rows of a table."""
        self.tables[table_name] = deepcopy(data)
        ids = [r["id"] for r in data if isinstance(r.get("id"), int)]
        self._next_ids[table_name] = max(ids, default=0) + 1

    def rows(self, table_name: str) -> list[dict]:
        """Current rows of a table, in id order."""
        return sorted(deepcopy(self.tables.get(table_name, [])), key=lambda r: r["id"])

    def fail_on(self, table_name: str, operation: str, times: int = 1):
        """Make the next `times` executions of an operation raise."""
        self._failures[(table_name, operation)] = times

    def raise_if_failing(self, table_name: str, operation: str):
        remaining = self._failures.get((table_name, operation), 0)
        if remaining:
            self._failures[(table_name, operation)] = remaining - 1
            raise MockDatabaseError(f"simulated {operation} failure on {table_name}")

    def new_row(self, table_name: str, item: dict) -> dict:
        row = dict(item)
        next_id = self._next_ids.get(table_name, 1)
        if row.get("id") is None:
            row["id"] = next_id
        self._next_ids[table_name] = max(next_id, row["id"] + 1)
        now = _now()
        row.setdefault("created_at", now)
        if row.get("updated_at") is None:
            row["updated_at"] = now
        return row

    def commit(self, table_name: str, rows: list[dict]):
        """Store rows if they satisfy the table's unique constraints."""
        for columns in UNIQUE_CONSTRAINTS.get(table_name, []):
            seen = set()
            for row in rows:
                key = tuple(row.get(c) for c in columns)
                if key in seen:
                    raise MockDatabaseError(
                        f'duplicate key value violates unique constraint "{table_name}_{"_".join(columns)}_key" (23505)'
                    )
                seen.add(key)
        self.tables[table_name] = rows

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create an empty in-memory Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("sku_mappings", [...])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock and reset service singletons.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("customers", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.customer_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.sku_mapping_service.get_supabase_client", return_value=mock_supabase):
                with patch("services.customer_service._customer_service", None), \
                        patch("services.sku_mapping_service._sku_mapping_service", None), \
                        patch("services.sku_detection_service._sku_detection_service", None), \
                        patch("services.sku_import_service._sku_import_service", None), \
                        patch("services.sku_export_service._sku_export_service", None):
                    yield mock_supabase


@pytest.fixture
def customers(mock_supabase) -> list[dict]:
    """Two customers, ids 1 and 2."""
    rows = [
        CustomerFactory.create(id=1, name="Tech Solutions Inc"),
        CustomerFactory.create(id=2, name="Office Depot Co"),
    ]
    mock_supabase.set_table_data("customers", rows)
    return rows


@pytest.fixture
def toner_catalog(mock_db, mock_supabase, customers) -> MockSupabaseClient:
    """
    Small catalog of toner SKUs.

    1 CF226X  <- HP26X (customer 1)
    2 CE285A  <- HP85A (customer 1), 85A-BLK (customer 2)
    3 Q2612A  <- no variations
    """
    mock_supabase.set_table_data("sku_mappings", [
        MappingFactory.create(id=1, standard_sku="CF226X", standard_description="HP 26X High Yield Black Toner", updated_at=CATALOG_TIMESTAMP),
        MappingFactory.create(id=2, standard_sku="CE285A", standard_description="HP 85A Black Toner", updated_at=CATALOG_TIMESTAMP),
        MappingFactory.create(id=3, standard_sku="Q2612A", standard_description="HP 12A Black Toner", updated_at=CATALOG_TIMESTAMP),
    ])
    mock_supabase.set_table_data("sku_variations", [
        VariationFactory.create(id=1, mapping_id=1, customer_id=1, variation_sku="HP26X", source="Tech Solutions Inc"),
        VariationFactory.create(id=2, mapping_id=2, customer_id=1, variation_sku="HP85A", source="Customer Provided"),
        VariationFactory.create(id=3, mapping_id=2, customer_id=2, variation_sku="85A-BLK", source="Email Import"),
    ])
    return mock_supabase


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, toner_catalog):
            response = test_client_with_mock_db.get("/api/sku-mappings")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)

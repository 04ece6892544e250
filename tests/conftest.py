"""
Configuración de fixtures para pytest.

El pipeline escribe SQL específico de Postgres (advisory locks, ::date), así
que los tests de lógica usan un repositorio en memoria con la misma interfaz
que PostgresTariffRepository.
"""
from __future__ import annotations

import copy
from contextlib import contextmanager
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from tariff_sync.domain.entities.tariffs import TARIFF_FIELDS


class FakeConnection:
    """Conexión mínima: solo soporta el protocolo de context manager."""

    def __init__(self) -> None:
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True
        return False


class InMemoryTariffRepository:
    """
    Repositorio en memoria con la semántica de las tres tablas:
    - `warehouses` / `wh_tariffs`: PK (warehouse_name, date)
    - `wh_location`: PK warehouse_name
    """

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            "warehouses": [],
            "wh_tariffs": [],
            "wh_location": [],
        }
        self.lock_held_elsewhere = False
        self.lock_error: Optional[Exception] = None
        self.lock_calls: List[int] = []
        self.unlock_calls: List[int] = []
        self.fail_on_insert_table: Optional[str] = None
        self.connections: List[FakeConnection] = []

    def connect(self) -> FakeConnection:
        conn = FakeConnection()
        self.connections.append(conn)
        return conn

    @contextmanager
    def transaction(self, conn: Any):
        backup = copy.deepcopy(self.tables)
        try:
            yield
        except BaseException:
            self.tables = backup
            raise

    def try_advisory_lock(self, conn: Any, lock_key: int) -> bool:
        if self.lock_error is not None:
            raise self.lock_error
        if self.lock_held_elsewhere:
            return False
        self.lock_calls.append(lock_key)
        return True

    def advisory_unlock(self, conn: Any, lock_key: int) -> bool:
        self.unlock_calls.append(lock_key)
        return True

    def update_rows(
        self,
        conn: Any,
        *,
        table: str,
        key_column: str,
        key_value: Any,
        values: Dict[str, Any],
        day: Optional[date] = None,
    ) -> int:
        affected = 0
        for row in self.tables[table]:
            if row[key_column] != key_value:
                continue
            if day is not None and row["date"] != day:
                continue
            row.update(values)
            affected += 1
        return affected

    def insert_row(self, conn: Any, *, table: str, row: Dict[str, Any]) -> None:
        if self.fail_on_insert_table == table:
            raise RuntimeError(f"insert failed on {table}")
        for existing in self.tables[table]:
            same_name = existing["warehouse_name"] == row["warehouse_name"]
            if same_name and existing.get("date") == row.get("date"):
                raise RuntimeError(f"duplicate key on {table}: {row['warehouse_name']}")
        self.tables[table].append(dict(row))

    def fetch_export_rows(self, conn: Any, day: date) -> List[Dict[str, Any]]:
        locations = {r["warehouse_name"]: r for r in self.tables["wh_location"]}
        windows = {
            r["warehouse_name"]: r for r in self.tables["wh_tariffs"] if r["date"] == day
        }
        records = []
        for w in sorted(self.tables["warehouses"], key=lambda r: r["warehouse_name"]):
            if w["date"] != day:
                continue
            record = dict(w)
            record["geo_name"] = locations.get(w["warehouse_name"], {}).get("geo_name")
            window = windows.get(w["warehouse_name"], {})
            record["dt_next_box"] = window.get("dt_next_box")
            record["dt_till_max"] = window.get("dt_till_max")
            records.append(record)
        return records

    def rows(self, table: str, name: Optional[str] = None) -> List[Dict[str, Any]]:
        return [r for r in self.tables[table] if name is None or r["warehouse_name"] == name]


class FakeExporter:
    """Exportador que registra las llamadas (o falla si se configura)."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def write_rows(
        self,
        *,
        header: Sequence[str],
        rows: Sequence[Sequence[str]],
        sheet_title: str,
    ) -> int:
        self.calls.append({"header": list(header), "rows": [list(r) for r in rows], "sheet_title": sheet_title})
        if self.error is not None:
            raise self.error
        return len(rows) + 1


def _warehouse_entry(name: str, geo: str = "Центральный федеральный округ", value: str = "48") -> Dict[str, str]:
    entry = {field: value for field in TARIFF_FIELDS}
    entry["warehouseName"] = name
    entry["geoName"] = geo
    return entry


@pytest.fixture
def make_payload() -> Callable[..., Dict[str, Any]]:
    """Fábrica de payloads crudos con la forma de `tariffs/box`."""

    def _make(names: Sequence[str] = ("Moscow_1", "Kazan_2"), value: str = "48") -> Dict[str, Any]:
        return {
            "dtNextBox": "2026-10-19",
            "dtTillMax": "2026-10-31",
            "warehouseList": [_warehouse_entry(name, value=value) for name in names],
        }

    return _make


@pytest.fixture
def repository() -> InMemoryTariffRepository:
    return InMemoryTariffRepository()


@pytest.fixture
def exporter() -> FakeExporter:
    return FakeExporter()


@pytest.fixture
def today() -> date:
    return date(2026, 10, 18)

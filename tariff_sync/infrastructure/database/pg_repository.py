"""
Repositorio Postgres (psycopg) para el pipeline de tarifas:
- advisory lock por tarea (exclusión entre procesos)
- UPDATE por clave (con o sin partición diaria) / INSERT
- lectura de los datos del día para la exportación

La conexión se abre en autocommit: el lock de sesión no abre una
transacción implícita y la reconciliación delimita la suya con
`transaction(conn)`.
"""

from __future__ import annotations

import hashlib
from contextlib import AbstractContextManager
from datetime import date
from typing import Any, Dict, List, Optional

import psycopg
from psycopg.rows import dict_row

WAREHOUSES_TABLE = "warehouses"
TARIFFS_TABLE = "wh_tariffs"
LOCATION_TABLE = "wh_location"

# Columnas de `warehouses` en el orden de exportación.
WAREHOUSE_TARIFF_COLUMNS = [
    "box_delivery_base",
    "box_delivery_coef_expr",
    "box_delivery_liter",
    "box_delivery_marketplace_base",
    "box_delivery_marketplace_coef_expr",
    "box_delivery_marketplace_liter",
    "box_storage_base",
    "box_storage_coef_expr",
    "box_storage_liter",
]


def stable_lock_key(task_id: str) -> int:
    """
    Genera un lock key reproducible (bigint con signo) para pg_advisory_lock.

    hash() no es estable entre procesos; se usa blake2b de 8 bytes.
    """
    digest = hashlib.blake2b(task_id.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, byteorder="big", signed=True)


class PostgresTariffRepository:
    def __init__(self, dsn: str) -> None:
        self._dsn = dsn

    def connect(self) -> psycopg.Connection:
        """
        Abre conexión en autocommit. Las escrituras van dentro de `transaction(conn)`.
        """
        try:
            return psycopg.connect(self._dsn, row_factory=dict_row, autocommit=True)
        except psycopg.OperationalError as e:
            raise psycopg.OperationalError(
                f"{e}\n"
                f"Sugerencia: verifica que DATABASE_URL sea accesible desde donde corre el worker.\n"
                f"- Un hostname de Docker (p.ej. 'postgres') solo resuelve dentro de la red de Docker."
            ) from e

    def transaction(self, conn: psycopg.Connection) -> AbstractContextManager:
        """BEGIN/COMMIT; rollback automático si el bloque lanza."""
        return conn.transaction()

    def try_advisory_lock(self, conn: psycopg.Connection, lock_key: int) -> bool:
        """
        Evita ejecuciones simultáneas del mismo job (lock de sesión, no bloqueante).
        """
        with conn.cursor() as cur:
            cur.execute("SELECT pg_try_advisory_lock(%s) AS locked", (lock_key,))
            row = cur.fetchone()
            return bool(row and row.get("locked"))

    def advisory_unlock(self, conn: psycopg.Connection, lock_key: int) -> bool:
        with conn.cursor() as cur:
            cur.execute("SELECT pg_advisory_unlock(%s) AS unlocked", (lock_key,))
            row = cur.fetchone()
            return bool(row and row.get("unlocked"))

    def update_rows(
        self,
        conn: psycopg.Connection,
        *,
        table: str,
        key_column: str,
        key_value: Any,
        values: Dict[str, Any],
        day: Optional[date] = None,
    ) -> int:
        """
        UPDATE por clave. Si `day` viene, el UPDATE queda acotado a la partición
        de ese día (`date::date = day`) y nunca toca filas de otros días.

        Retorna la cantidad de filas afectadas.
        """
        if not values:
            raise ValueError(f"UPDATE sin columnas sobre '{table}'")

        set_sql = ", ".join([f'"{c}" = %s' for c in values])
        params: List[Any] = list(values.values())
        sql = f'UPDATE "{table}" SET {set_sql} WHERE "{key_column}" = %s'
        params.append(key_value)
        if day is not None:
            sql += ' AND "date"::date = %s'
            params.append(day)

        with conn.cursor() as cur:
            cur.execute(sql, params)
            return cur.rowcount or 0

    def insert_row(self, conn: psycopg.Connection, *, table: str, row: Dict[str, Any]) -> None:
        columns = list(row.keys())
        if not columns:
            raise ValueError(f"INSERT sin columnas sobre '{table}'")

        cols_sql = ", ".join([f'"{c}"' for c in columns])
        placeholders = ", ".join(["%s"] * len(columns))
        sql = f'INSERT INTO "{table}" ({cols_sql}) VALUES ({placeholders})'

        with conn.cursor() as cur:
            cur.execute(sql, [row[c] for c in columns])

    def fetch_export_rows(self, conn: psycopg.Connection, day: date) -> List[Dict[str, Any]]:
        """
        Filas del día para exportar: `warehouses` + ubicación + ventana de tarifas
        del mismo día. LEFT JOIN para no perder almacenes sin dimensión.
        """
        tariff_cols = ", ".join([f'w."{c}"' for c in WAREHOUSE_TARIFF_COLUMNS])
        sql = f"""
            SELECT w."warehouse_name", l."geo_name", {tariff_cols},
                   t."dt_next_box", t."dt_till_max"
            FROM "{WAREHOUSES_TABLE}" w
            LEFT JOIN "{LOCATION_TABLE}" l
                   ON l."warehouse_name" = w."warehouse_name"
            LEFT JOIN "{TARIFFS_TABLE}" t
                   ON t."warehouse_name" = w."warehouse_name"
                  AND t."date"::date = w."date"::date
            WHERE w."date"::date = %s
            ORDER BY w."warehouse_name"
        """
        with conn.cursor() as cur:
            cur.execute(sql, (day,))
            return list(cur.fetchall())

"""
Reconciliación snapshot -> Postgres.

Diseño (resumen):
- Todo ocurre en UNA transacción: o se escriben las tres tablas o ninguna
- Tablas con partición diaria (`wh_tariffs`, `warehouses`): UPDATE acotado a
  (warehouse_name, día); si no afectó filas, INSERT de la fila del día
- `wh_location`: UPDATE por warehouse_name; si no afectó filas, INSERT
- Las filas de días anteriores nunca se modifican

Idempotencia: correr dos veces el mismo snapshot el mismo día no crea
duplicados; la segunda corrida solo reporta updates.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Protocol, Tuple

from loguru import logger

from tariff_sync.application.services.tariff_normalizer import map_snapshot_to_rows
from tariff_sync.domain.entities.tariffs import ReconcileResult, TariffSnapshot
from tariff_sync.infrastructure.database.pg_repository import (
    LOCATION_TABLE,
    TARIFFS_TABLE,
    WAREHOUSES_TABLE,
)
from tariff_sync.shared.exceptions.domain import TransactionError


class TariffWriteRepository(Protocol):
    """Operaciones de escritura que necesita el reconciliador."""

    def transaction(self, conn: Any): ...

    def update_rows(
        self,
        conn: Any,
        *,
        table: str,
        key_column: str,
        key_value: Any,
        values: Dict[str, Any],
        day: Optional[date] = None,
    ) -> int: ...

    def insert_row(self, conn: Any, *, table: str, row: Dict[str, Any]) -> None: ...


class TariffReconciler:
    """
    Aplica un snapshot validado sobre las tres tablas y cuenta inserts/updates.
    """

    def __init__(self, repository: TariffWriteRepository) -> None:
        self._repo = repository

    def reconcile(self, conn: Any, snapshot: TariffSnapshot, day: date) -> ReconcileResult:
        """
        Ejecuta la reconciliación completa para `day`.

        Raises:
            TransactionError: cualquier fallo dentro de la transacción
                (ya se hizo rollback; los contadores parciales se descartan).
        """
        rows = map_snapshot_to_rows(snapshot)
        logger.info(
            f"Reconciliando {len(snapshot.warehouses)} almacenes para {day.isoformat()} "
            f"(dtNextBox={snapshot.dt_next_box!r}, dtTillMax={snapshot.dt_till_max!r})"
        )

        try:
            with self._repo.transaction(conn):
                result = ReconcileResult()
                result.tariffs_inserted, result.tariffs_updated = self._upsert(
                    conn, TARIFFS_TABLE, rows.tariffs, day=day
                )
                result.warehouses_inserted, result.warehouses_updated = self._upsert(
                    conn, WAREHOUSES_TABLE, rows.warehouses, day=day
                )
                result.locations_inserted, result.locations_updated = self._upsert(
                    conn, LOCATION_TABLE, rows.locations, day=None
                )
        except Exception as e:
            raise TransactionError(
                f"Reconciliación falló para {day.isoformat()}: {e}",
                details={"day": day.isoformat(), "warehouses": len(snapshot.warehouses)},
            ) from e

        logger.info(f"Reconciliación completada: {result}")
        return result

    def _upsert(
        self,
        conn: Any,
        table: str,
        rows: List[Dict[str, Any]],
        *,
        day: Optional[date],
    ) -> Tuple[int, int]:
        """
        UPDATE-luego-INSERT por fila. Con `day`, el "existe" se evalúa solo
        contra la partición de ese día.

        Retorna (insertados, actualizados).
        """
        inserted = 0
        updated = 0
        for row in rows:
            name = row["warehouse_name"]
            values = {k: v for k, v in row.items() if k != "warehouse_name"}

            affected = self._repo.update_rows(
                conn,
                table=table,
                key_column="warehouse_name",
                key_value=name,
                values=values,
                day=day,
            )
            if affected:
                updated += affected
                continue

            new_row = dict(row)
            if day is not None:
                new_row["date"] = day
            self._repo.insert_row(conn, table=table, row=new_row)
            inserted += 1

        return inserted, updated

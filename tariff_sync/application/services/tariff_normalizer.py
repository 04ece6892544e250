"""
Normalizador de tarifas.

Transforma un TariffSnapshot (strings tal como llegan de la API) en las
filas de las tres tablas destino. Sin I/O: todo es testeable en memoria.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tariff_sync.domain.entities.tariffs import TariffSnapshot

_WHITESPACE_RE = re.compile(r"\s+")


def to_number_or_null(value: Any) -> Optional[float]:
    """
    Convierte un string numérico de la API a float.

    - Se eliminan los espacios (también separadores de miles como "1 234")
    - La coma decimal pasa a punto ("0,5" -> 0.5)
    - Ausente, vacío, "-" o basura -> None (nunca 0, nunca excepción)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    normalized = _WHITESPACE_RE.sub("", str(value)).replace(",", ".")
    if not normalized or "_" in normalized:
        return None
    try:
        number = float(normalized)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


@dataclass
class SnapshotRows:
    """Filas listas para escribir, una lista por tabla, en orden del snapshot."""

    tariffs: List[Dict[str, Any]] = field(default_factory=list)
    warehouses: List[Dict[str, Any]] = field(default_factory=list)
    locations: List[Dict[str, Any]] = field(default_factory=list)


def map_snapshot_to_rows(snapshot: TariffSnapshot) -> SnapshotRows:
    """
    Mapea el snapshot a filas de `wh_tariffs`, `warehouses` y `wh_location`.

    La columna `date` no se incluye: la agrega el reconciliador al insertar.
    """
    rows = SnapshotRows()
    for warehouse in snapshot.warehouses:
        rows.tariffs.append({
            "warehouse_name": warehouse.warehouse_name,
            "dt_next_box": snapshot.dt_next_box,
            "dt_till_max": snapshot.dt_till_max,
        })

        warehouse_row: Dict[str, Any] = {"warehouse_name": warehouse.warehouse_name}
        for column, raw in warehouse.raw_tariffs().items():
            warehouse_row[column] = to_number_or_null(raw)
        rows.warehouses.append(warehouse_row)

        rows.locations.append({
            "warehouse_name": warehouse.warehouse_name,
            "geo_name": warehouse.geo_name,
        })
    return rows

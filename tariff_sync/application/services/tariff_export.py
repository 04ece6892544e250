"""
Exportación de las tarifas del día hacia la hoja de cálculo.

Lee lo persistido (no el snapshot): lo que se exporta es siempre el
estado reconciliado de la base.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol, Sequence

from loguru import logger

from tariff_sync.application.interfaces.spreadsheet_exporter import SpreadsheetExporter
from tariff_sync.infrastructure.database.pg_repository import WAREHOUSE_TARIFF_COLUMNS
from tariff_sync.shared.exceptions.domain import ExportError

EXPORT_HEADER: List[str] = [
    "warehouseName",
    "geoName",
    "boxDeliveryBase",
    "boxDeliveryCoefExpr",
    "boxDeliveryLiter",
    "boxDeliveryMarketplaceBase",
    "boxDeliveryMarketplaceCoefExpr",
    "boxDeliveryMarketplaceLiter",
    "boxStorageBase",
    "boxStorageCoefExpr",
    "boxStorageLiter",
    "dtNextBox",
    "dtTillMax",
]

MISSING_PLACEHOLDER = "-"
SHEET_TITLE_MAX_LEN = 90


class TariffReadRepository(Protocol):
    def connect(self) -> Any: ...

    def fetch_export_rows(self, conn: Any, day: date) -> List[Dict[str, Any]]: ...


def format_cell(value: Any) -> str:
    """Celda como string de display; None -> "-", 48.0 -> "48"."""
    if value is None:
        return MISSING_PLACEHOLDER
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return str(int(value))
        return str(value.normalize())
    return str(value)


def build_export_rows(records: Sequence[Dict[str, Any]]) -> List[List[str]]:
    """Filas de datos en el orden de EXPORT_HEADER."""
    rows = []
    for record in records:
        row = [
            record.get("warehouse_name") or "",
            record.get("geo_name") or "",
        ]
        row.extend(format_cell(record.get(column)) for column in WAREHOUSE_TARIFF_COLUMNS)
        row.append(format_cell(record.get("dt_next_box")))
        row.append(format_cell(record.get("dt_till_max")))
        rows.append(row)
    return rows


def build_sheet_title(day: date, prefix: str = "WB Tariffs") -> str:
    """Título de la hoja; se limita a 90 caracteres."""
    return f"{prefix} {day.isoformat()}"[:SHEET_TITLE_MAX_LEN]


class TariffExportService:
    """
    Arma header + filas del día y llama al exportador.
    """

    def __init__(
        self,
        repository: TariffReadRepository,
        exporter: SpreadsheetExporter,
        *,
        sheet_prefix: str = "WB Tariffs",
    ) -> None:
        self._repo = repository
        self._exporter = exporter
        self._sheet_prefix = sheet_prefix

    def export(self, day: date, conn: Optional[Any] = None) -> int:
        """
        Exporta los datos de `day`. Si no se pasa `conn`, abre una propia.

        Retorna la cantidad de filas escritas (0 si no hay datos del día).

        Raises:
            ExportError: fallo leyendo la base o escribiendo la hoja.
        """
        sheet_title = build_sheet_title(day, self._sheet_prefix)
        try:
            if conn is None:
                with self._repo.connect() as own_conn:
                    records = self._repo.fetch_export_rows(own_conn, day)
            else:
                records = self._repo.fetch_export_rows(conn, day)

            if not records:
                logger.info(f"Sin datos de almacenes para {day.isoformat()}; no se exporta")
                return 0

            rows = build_export_rows(records)
            written = self._exporter.write_rows(
                header=EXPORT_HEADER,
                rows=rows,
                sheet_title=sheet_title,
            )
        except Exception as e:
            raise ExportError(
                f"Exportación falló para '{sheet_title}': {e}",
                details={"day": day.isoformat(), "sheet_title": sheet_title},
            ) from e

        logger.info(f"Exportadas {written} filas a la hoja '{sheet_title}'")
        return written

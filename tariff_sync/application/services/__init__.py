"""
Servicios de aplicacion.

Logica de negocio reutilizable del pipeline de tarifas.
"""
from tariff_sync.application.services.tariff_normalizer import (
    SnapshotRows,
    map_snapshot_to_rows,
    to_number_or_null,
)
from tariff_sync.application.services.reconciliation import TariffReconciler
from tariff_sync.application.services.tariff_export import (
    EXPORT_HEADER,
    TariffExportService,
    build_export_rows,
    build_sheet_title,
)

__all__ = [
    # Normalizacion
    "SnapshotRows",
    "map_snapshot_to_rows",
    "to_number_or_null",
    # Reconciliacion
    "TariffReconciler",
    # Exportacion
    "EXPORT_HEADER",
    "TariffExportService",
    "build_export_rows",
    "build_sheet_title",
]

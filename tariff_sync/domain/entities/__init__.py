"""
Entidades del dominio.
"""
from tariff_sync.domain.entities.tariffs import (
    TARIFF_FIELDS,
    ReconcileResult,
    TariffSnapshot,
    WarehouseTariff,
)

__all__ = [
    "TARIFF_FIELDS",
    "ReconcileResult",
    "TariffSnapshot",
    "WarehouseTariff",
]

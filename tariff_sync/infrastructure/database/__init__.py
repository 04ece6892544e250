"""
Configuración de base de datos.

Importa todos los modelos para que se registren con Base
(Alembic los detecta desde aquí).
"""
from tariff_sync.infrastructure.database.models import (
    Base,
    WarehouseModel,
    WarehouseTariffWindowModel,
    WarehouseLocationModel,
)

"""
Entidades del dominio de tarifas de almacenes (Wildberries `tariffs/box`).

El esquema es declarativo: los modelos pydantic describen la forma exacta
que se acepta de la API. Los nombres de atributo son snake_case y los alias
coinciden con las claves camelCase del payload.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator, model_validator


# Campo del payload -> columna en la tabla `warehouses`
TARIFF_FIELDS: Dict[str, str] = {
    "boxDeliveryBase": "box_delivery_base",
    "boxDeliveryCoefExpr": "box_delivery_coef_expr",
    "boxDeliveryLiter": "box_delivery_liter",
    "boxDeliveryMarketplaceBase": "box_delivery_marketplace_base",
    "boxDeliveryMarketplaceCoefExpr": "box_delivery_marketplace_coef_expr",
    "boxDeliveryMarketplaceLiter": "box_delivery_marketplace_liter",
    "boxStorageBase": "box_storage_base",
    "boxStorageCoefExpr": "box_storage_coef_expr",
    "boxStorageLiter": "box_storage_liter",
}


class WarehouseTariff(BaseModel):
    """Tarifas de un almacén tal como llegan de la API (strings numéricos)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    warehouse_name: StrictStr = Field(alias="warehouseName", min_length=1)
    geo_name: StrictStr = Field(alias="geoName")
    box_delivery_base: StrictStr = Field(alias="boxDeliveryBase")
    box_delivery_coef_expr: StrictStr = Field(alias="boxDeliveryCoefExpr")
    box_delivery_liter: StrictStr = Field(alias="boxDeliveryLiter")
    box_delivery_marketplace_base: StrictStr = Field(alias="boxDeliveryMarketplaceBase")
    box_delivery_marketplace_coef_expr: StrictStr = Field(alias="boxDeliveryMarketplaceCoefExpr")
    box_delivery_marketplace_liter: StrictStr = Field(alias="boxDeliveryMarketplaceLiter")
    box_storage_base: StrictStr = Field(alias="boxStorageBase")
    box_storage_coef_expr: StrictStr = Field(alias="boxStorageCoefExpr")
    box_storage_liter: StrictStr = Field(alias="boxStorageLiter")

    @field_validator("warehouse_name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("warehouseName no puede estar vacío")
        return value

    def raw_tariffs(self) -> Dict[str, str]:
        """Los nueve campos de tarifa indexados por nombre de columna."""
        return {column: getattr(self, column) for column in TARIFF_FIELDS.values()}


class TariffSnapshot(BaseModel):
    """
    Un payload de tarifas validado para una fecha.

    Se produce una vez por fetch y se consume inmediatamente;
    nunca se persiste tal cual.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    dt_next_box: StrictStr = Field(alias="dtNextBox")
    dt_till_max: StrictStr = Field(alias="dtTillMax")
    warehouses: List[WarehouseTariff] = Field(alias="warehouseList")

    @model_validator(mode="after")
    def _unique_warehouse_names(self) -> "TariffSnapshot":
        seen = set()
        for warehouse in self.warehouses:
            if warehouse.warehouse_name in seen:
                raise ValueError(f"warehouseName duplicado en el snapshot: {warehouse.warehouse_name!r}")
            seen.add(warehouse.warehouse_name)
        return self


@dataclass
class ReconcileResult:
    """
    Contadores de la reconciliación, separados por tabla.

    Los contadores "legacy" (tariffsInserted, warehousesUpdated,
    warehousesInserted) mezclaban la tabla `warehouses` con `wh_location`
    y `wh_tariffs`; `legacy_counters()` los reconstruye para consumidores
    que todavía esperan esa forma.
    """

    tariffs_inserted: int = 0
    tariffs_updated: int = 0
    warehouses_inserted: int = 0
    warehouses_updated: int = 0
    locations_inserted: int = 0
    locations_updated: int = 0

    @property
    def total_changes(self) -> int:
        """Cero significa "sin cambios materiales" para el coordinador."""
        return (
            self.tariffs_inserted
            + self.tariffs_updated
            + self.warehouses_inserted
            + self.warehouses_updated
            + self.locations_inserted
            + self.locations_updated
        )

    def legacy_counters(self) -> Dict[str, int]:
        return {
            "tariffsInserted": self.tariffs_inserted,
            "warehousesUpdated": self.tariffs_updated + self.warehouses_updated + self.locations_updated,
            "warehousesInserted": self.warehouses_inserted + self.locations_inserted,
        }

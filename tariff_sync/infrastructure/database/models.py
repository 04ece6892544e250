"""
Modelos de base de datos (ORM).

Solo describen el layout de las tablas para Alembic; el pipeline de
sincronización escribe con SQL explícito vía psycopg (ver pg_repository).
"""
from sqlalchemy import Column, Date, Numeric, String, text
from sqlalchemy.orm import declarative_base


# Base para modelos de SQLAlchemy
Base = declarative_base()


class WarehouseModel(Base):
    """
    Tarifas numéricas por almacén y día.
    Una fila por almacén por día calendario (partición diaria).
    """

    __tablename__ = "warehouses"

    warehouse_name = Column(String(255), primary_key=True)
    date = Column(Date, primary_key=True, server_default=text("CURRENT_DATE"))

    box_delivery_base = Column(Numeric, nullable=True)
    box_delivery_coef_expr = Column(Numeric, nullable=True)
    box_delivery_liter = Column(Numeric, nullable=True)
    box_delivery_marketplace_base = Column(Numeric, nullable=True)
    box_delivery_marketplace_coef_expr = Column(Numeric, nullable=True)
    box_delivery_marketplace_liter = Column(Numeric, nullable=True)
    box_storage_base = Column(Numeric, nullable=True)
    box_storage_coef_expr = Column(Numeric, nullable=True)
    box_storage_liter = Column(Numeric, nullable=True)

    def __repr__(self):
        return f"<Warehouse(name={self.warehouse_name}, date={self.date})>"


class WarehouseTariffWindowModel(Base):
    """Ventana de vigencia de tarifas (dtNextBox/dtTillMax) por almacén y día."""

    __tablename__ = "wh_tariffs"

    warehouse_name = Column(String(255), primary_key=True)
    date = Column(Date, primary_key=True, server_default=text("CURRENT_DATE"))

    dt_next_box = Column(String(64), nullable=True)
    dt_till_max = Column(String(64), nullable=True)

    def __repr__(self):
        return f"<WarehouseTariffWindow(name={self.warehouse_name}, date={self.date})>"


class WarehouseLocationModel(Base):
    """Ubicación del almacén. Dimensión lenta: sin partición por día."""

    __tablename__ = "wh_location"

    warehouse_name = Column(String(255), primary_key=True)
    geo_name = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<WarehouseLocation(name={self.warehouse_name}, geo={self.geo_name})>"

"""
Worker de sincronización de tarifas de almacenes (Wildberries) -> PostgreSQL.

Pipeline programado (cron):
- Fetch de `tariffs/box` con timeout y reintentos
- Validación del payload
- Reconciliación transaccional sobre `warehouses`, `wh_tariffs` y `wh_location`
- Exportación condicional a hoja de cálculo cuando la base cambió
"""

__version__ = "1.0.0"

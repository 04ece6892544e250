"""
Integración con la API de tarifas de Wildberries (`/api/v1/tariffs/box`).

Este paquete solo hace I/O HTTP y validación de forma; no toca la base de datos.
"""

"""
Utilidades para manejo de fechas y horas.
"""
from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Día calendario actual en UTC. Es la fecha de partición de la sync."""
    return utc_now().date()

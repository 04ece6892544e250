"""
Punto de entrada del worker de tarifas.
Configura logging, arma el pipeline y arranca el scheduler (bloqueante).

El exportador de hoja de cálculo se configura con SPREADSHEET_EXPORTER
("paquete.modulo:factory"); sin él, las exportaciones se omiten con un warning.
"""
from loguru import logger

from tariff_sync.core.bootstrap import build_coordinator
from tariff_sync.core.config import settings
from tariff_sync.core.logging import setup_logging
from tariff_sync.core.scheduler import build_scheduler


def main() -> int:
    """
    Arranca el worker.

    Returns:
        int: Código de salida del proceso
    """
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Entorno: {settings.ENVIRONMENT}")

    coordinator = build_coordinator(settings)
    scheduler = build_scheduler(
        coordinator,
        enabled=settings.CRON_ENABLED,
        sync_cron=settings.CRON_SCHEDULE,
        export_cron=settings.DAILY_UPLOAD_SCHEDULE,
        timezone=settings.CRON_TIMEZONE,
        run_on_startup=settings.RUN_ON_STARTUP,
    )
    if scheduler is None:
        return 0

    logger.success("Worker iniciado correctamente")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Cerrando worker...")
        scheduler.shutdown(wait=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
Scheduler de los jobs del worker (APScheduler, triggers cron).

Dos programaciones independientes:
- sync de tarifas (por defecto cada hora, en punto)
- exportación diaria incondicional (por defecto 23:59)

Los jobs corren en un único thread: no hay ejecución paralela de la
lógica de sync dentro del proceso.
"""
from __future__ import annotations

from typing import Optional, Type

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from tariff_sync.application.use_cases.tariff_sync_use_cases import TariffSyncCoordinator
from tariff_sync.shared.exceptions.base import ConfigError
from tariff_sync.shared.utils.datetime_utils import utc_now

SYNC_JOB_ID = "wb_tariffs_sync"
DAILY_EXPORT_JOB_ID = "wb_tariffs_daily_export"


def parse_cron(expression: str, timezone: str) -> CronTrigger:
    """Crontab de 5 campos -> CronTrigger. Expresión o zona horaria inválida -> ConfigError."""
    try:
        return CronTrigger.from_crontab(expression, timezone=timezone)
    except (ValueError, LookupError) as e:
        raise ConfigError(
            f"Expresión cron o zona horaria inválida: {expression!r} [{timezone}] ({e})",
            details={"expression": expression, "timezone": timezone},
        ) from e


def build_scheduler(
    coordinator: TariffSyncCoordinator,
    *,
    enabled: bool,
    sync_cron: str,
    export_cron: str,
    timezone: str = "UTC",
    run_on_startup: bool = True,
    scheduler_cls: Type[BaseScheduler] = BlockingScheduler,
) -> Optional[BaseScheduler]:
    """
    Registra los dos jobs sobre el coordinador. Retorna None si CRON está deshabilitado.

    El scheduler se devuelve sin arrancar: quien llama decide cuándo hacer `start()`.
    """
    if not enabled:
        logger.info("[tariffs.cron] CRON disabled (CRON_ENABLED=false)")
        return None

    sync_trigger = parse_cron(sync_cron, timezone)
    export_trigger = parse_cron(export_cron, timezone)

    scheduler = scheduler_cls(
        executors={"default": ThreadPoolExecutor(max_workers=1)},
        job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300},
        timezone=timezone,
    )

    logger.info(f"[tariffs.cron] Scheduling tariffs job: {sync_cron} ({timezone})")
    sync_kwargs = {}
    if run_on_startup:
        sync_kwargs["next_run_time"] = utc_now()
    scheduler.add_job(
        coordinator.run_sync,
        trigger=sync_trigger,
        id=SYNC_JOB_ID,
        name="WB tariffs sync",
        replace_existing=True,
        **sync_kwargs,
    )

    logger.info(f"[tariffs.cron] Scheduling daily upload job: {export_cron} ({timezone})")
    scheduler.add_job(
        coordinator.run_daily_export,
        trigger=export_trigger,
        id=DAILY_EXPORT_JOB_ID,
        name="WB tariffs daily upload",
        replace_existing=True,
    )
    return scheduler

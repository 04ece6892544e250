"""
Construcción del pipeline a partir de Settings.

Es el único lugar que conoce todas las piezas concretas; el resto del
código recibe sus dependencias por constructor.
"""
from __future__ import annotations

import importlib
from typing import Optional

from loguru import logger

from tariff_sync.application.interfaces.spreadsheet_exporter import SpreadsheetExporter
from tariff_sync.application.services.reconciliation import TariffReconciler
from tariff_sync.application.services.tariff_export import TariffExportService
from tariff_sync.application.use_cases.tariff_sync_use_cases import TariffSyncCoordinator
from tariff_sync.core.config import Settings
from tariff_sync.infrastructure.database.pg_repository import (
    PostgresTariffRepository,
    stable_lock_key,
)
from tariff_sync.infrastructure.external.wb_tariffs.retry import RetryPolicy
from tariff_sync.infrastructure.external.wb_tariffs.wb_client import WBTariffsClient
from tariff_sync.shared.exceptions.base import ConfigError


def load_exporter(path: str, settings: Settings) -> SpreadsheetExporter:
    """
    Importa y construye el exportador desde `"paquete.modulo:factory"`.

    La factory recibe los Settings y retorna un SpreadsheetExporter.

    Raises:
        ConfigError: formato inválido, módulo o atributo inexistente.
    """
    module_path, sep, attr = path.partition(":")
    if not sep or not module_path or not attr:
        raise ConfigError(
            f"SPREADSHEET_EXPORTER debe tener la forma 'paquete.modulo:factory'. Valor actual: {path!r}",
            details={"path": path},
        )

    try:
        module = importlib.import_module(module_path)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigError(
            f"No se pudo cargar el exportador {path!r}: {e}",
            details={"path": path},
        ) from e

    exporter = factory(settings)
    logger.info(f"CONFIG: exportador de hoja de cálculo cargado desde {path}")
    return exporter


def build_coordinator(
    settings: Settings,
    *,
    exporter: Optional[SpreadsheetExporter] = None,
) -> TariffSyncCoordinator:
    """
    Arma repositorio, cliente WB, reconciliador, exportación y coordinador.

    `exporter` es el colaborador externo de la hoja de cálculo. Si no se pasa,
    se carga desde SPREADSHEET_EXPORTER; sin ninguno de los dos, las corridas
    reconcilian igual pero la exportación se omite con un warning.
    """
    dsn = settings.psycopg_dsn
    if "://" in dsn and not dsn.startswith(("postgres://", "postgresql://")):
        # El destino es Postgres (advisory locks, ::date). Evitamos errores silenciosos.
        raise ConfigError(
            f"DATABASE_URL debe apuntar a Postgres. Valor actual: {settings.effective_database_url}"
        )

    if not settings.WB_TOKEN:
        logger.warning("CONFIG: WB_TOKEN no configurado - la API puede responder 401")

    repository = PostgresTariffRepository(dsn)
    client = WBTariffsClient(
        token=settings.WB_TOKEN,
        tariffs_url=settings.WB_TARIFFS_URL,
        default_timeout_s=settings.HTTP_DEFAULT_TIMEOUT_S,
        tariffs_timeout_s=settings.WB_TARIFFS_TIMEOUT_S,
        retry_policy=RetryPolicy(
            max_attempts=settings.FETCH_MAX_ATTEMPTS,
            initial_delay_s=settings.FETCH_BACKOFF_INITIAL_S,
            factor=settings.FETCH_BACKOFF_FACTOR,
            max_delay_s=settings.FETCH_BACKOFF_MAX_S,
        ),
    )

    if exporter is None and settings.SPREADSHEET_EXPORTER:
        exporter = load_exporter(settings.SPREADSHEET_EXPORTER, settings)

    export_service = None
    if exporter is not None:
        export_service = TariffExportService(
            repository,
            exporter,
            sheet_prefix=settings.EXPORT_SHEET_PREFIX,
        )

    return TariffSyncCoordinator(
        repository=repository,
        fetcher=client,
        reconciler=TariffReconciler(repository),
        lock_key=stable_lock_key(settings.SYNC_LOCK_TASK_ID),
        export_service=export_service,
    )

"""
Caso de uso: una corrida programada de sincronización de tarifas.

Máquina de estados del coordinador:
    IDLE -> LOCKING -> RUNNING -> (EXPORTING) -> IDLE

- Guardia local: si llega un disparo mientras el estado no es IDLE, se omite.
- Guardia entre procesos: pg_try_advisory_lock; si otro worker lo tiene, se omite.
- El lock y el estado se liberan SIEMPRE (finally), falle lo que falle.
- Ningún error escapa de `run_sync`: todo termina en un RunOutcome logueado.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from loguru import logger

from tariff_sync.application.services.reconciliation import TariffReconciler
from tariff_sync.application.services.tariff_export import TariffExportService
from tariff_sync.domain.entities.tariffs import ReconcileResult, TariffSnapshot
from tariff_sync.shared.exceptions.base import AppException
from tariff_sync.shared.exceptions.domain import ExportError, LockUnavailable
from tariff_sync.shared.utils.datetime_utils import utc_now, utc_today

LOG_PREFIX = "[tariffs.cron]"


class RunState(str, Enum):
    IDLE = "idle"
    LOCKING = "locking"
    RUNNING = "running"
    EXPORTING = "exporting"


class RunStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED_BUSY = "skipped_busy"
    SKIPPED_LOCKED = "skipped_locked"


@dataclass(frozen=True)
class RunOutcome:
    """Resumen de una corrida, pensado para logging y tests."""

    status: RunStatus
    day: date
    started_at: datetime
    duration_s: float
    result: Optional[ReconcileResult] = None
    error: Optional[str] = None
    exported_rows: Optional[int] = None


class TariffFetcher(Protocol):
    def fetch_tariffs(self, day: date) -> TariffSnapshot: ...


class LockingRepository(Protocol):
    def connect(self) -> Any: ...

    def try_advisory_lock(self, conn: Any, lock_key: int) -> bool: ...

    def advisory_unlock(self, conn: Any, lock_key: int) -> bool: ...


class TariffSyncCoordinator:
    """
    Orquestador de la sincronización: un objeto por proceso, con su propio estado.

    Se construye una vez al arrancar y se entrega a los jobs del scheduler.
    """

    def __init__(
        self,
        *,
        repository: LockingRepository,
        fetcher: TariffFetcher,
        reconciler: TariffReconciler,
        lock_key: int,
        export_service: Optional[TariffExportService] = None,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self._repo = repository
        self._fetcher = fetcher
        self._reconciler = reconciler
        self._lock_key = lock_key
        self._export = export_service
        self._today = today
        self._state = RunState.IDLE
        self._state_lock = threading.Lock()

    @property
    def state(self) -> RunState:
        return self._state

    def _set_state(self, state: RunState) -> None:
        with self._state_lock:
            self._state = state

    def run_sync(self, day: Optional[date] = None) -> RunOutcome:
        """
        Ejecuta una corrida completa: lock -> fetch -> validación -> reconciliación
        -> exportación condicional.
        """
        started_at = utc_now()
        t0 = time.monotonic()
        day = day or self._today()
        now = started_at.isoformat()

        with self._state_lock:
            if self._state is not RunState.IDLE:
                logger.warning(
                    f"{LOG_PREFIX} {now} - previous run still in progress "
                    f"(state={self._state.value}), skipping this scheduled run"
                )
                return RunOutcome(
                    status=RunStatus.SKIPPED_BUSY,
                    day=day,
                    started_at=started_at,
                    duration_s=0.0,
                )
            self._state = RunState.LOCKING

        logger.info(f"{LOG_PREFIX} {now} - scheduled run start (day={day.isoformat()})")
        try:
            outcome = self._run_with_connection(day, started_at, t0)
        finally:
            self._set_state(RunState.IDLE)

        self._log_outcome(outcome)
        return outcome

    def _run_with_connection(self, day: date, started_at: datetime, t0: float) -> RunOutcome:
        try:
            conn = self._repo.connect()
        except Exception as e:
            return self._failed(day, started_at, t0, f"No se pudo conectar a Postgres: {e}")

        with conn:
            try:
                self._acquire_lock(conn)
            except LockUnavailable:
                logger.info(f"{LOG_PREFIX} Another worker holds the lock ({self._lock_key}) - skipping this run")
                return RunOutcome(
                    status=RunStatus.SKIPPED_LOCKED,
                    day=day,
                    started_at=started_at,
                    duration_s=time.monotonic() - t0,
                )

            try:
                return self._run_locked(conn, day, started_at, t0)
            finally:
                self._release_lock(conn)

    def _run_locked(self, conn: Any, day: date, started_at: datetime, t0: float) -> RunOutcome:
        self._set_state(RunState.RUNNING)
        try:
            snapshot = self._fetcher.fetch_tariffs(day)
            result = self._reconciler.reconcile(conn, snapshot, day)
        except AppException as e:
            return self._failed(day, started_at, t0, f"[{e.error_code}] {e.message}")
        except Exception as e:
            logger.exception(f"{LOG_PREFIX} run failed with unexpected error")
            return self._failed(day, started_at, t0, str(e))

        exported_rows = None
        changed = result.total_changes
        if changed > 0:
            logger.info(f"{LOG_PREFIX} detected {changed} DB changes, uploading to spreadsheet")
            exported_rows = self._export_day(day, conn)
        else:
            logger.info(f"{LOG_PREFIX} no DB changes detected, skipping spreadsheet upload")

        return RunOutcome(
            status=RunStatus.SUCCESS,
            day=day,
            started_at=started_at,
            duration_s=time.monotonic() - t0,
            result=result,
            exported_rows=exported_rows,
        )

    def _export_day(self, day: date, conn: Optional[Any] = None) -> Optional[int]:
        """Exporta sin propagar errores: la reconciliación ya quedó commiteada."""
        if self._export is None:
            logger.warning(f"{LOG_PREFIX} no spreadsheet exporter configured, upload skipped")
            return None

        previous = self._state
        self._set_state(RunState.EXPORTING)
        try:
            return self._export.export(day, conn=conn)
        except ExportError as e:
            logger.error(f"{LOG_PREFIX} upload failed: {e.message}")
            return None
        finally:
            self._set_state(previous)

    def run_daily_export(self, day: Optional[date] = None) -> Optional[int]:
        """
        Exportación diaria incondicional (no depende de los contadores de la última sync).
        """
        day = day or self._today()
        when = utc_now().isoformat()
        logger.info(f"{LOG_PREFIX} {when} - scheduled daily upload start (day={day.isoformat()})")

        if self._export is None:
            logger.warning(f"{LOG_PREFIX} no spreadsheet exporter configured, daily upload skipped")
            return None

        try:
            written = self._export.export(day)
        except ExportError as e:
            logger.error(f"{LOG_PREFIX} {when} - scheduled daily upload failed: {e.message}")
            return None

        logger.success(f"{LOG_PREFIX} {when} - scheduled daily upload complete ({written} rows)")
        return written

    def _acquire_lock(self, conn: Any) -> None:
        """
        Raises:
            LockUnavailable: otro proceso tiene el lock, o no se pudo consultar.
        """
        try:
            locked = self._repo.try_advisory_lock(conn, self._lock_key)
        except Exception as e:
            logger.error(f"{LOG_PREFIX} Could not acquire advisory lock: {e}")
            locked = False
        if not locked:
            raise LockUnavailable(self._lock_key)

    def _release_lock(self, conn: Any) -> None:
        try:
            self._repo.advisory_unlock(conn, self._lock_key)
        except Exception as e:
            # Al cerrarse la conexión Postgres libera el lock de sesión igualmente.
            logger.error(f"{LOG_PREFIX} Could not release advisory lock: {e}")

    def _failed(self, day: date, started_at: datetime, t0: float, error: str) -> RunOutcome:
        return RunOutcome(
            status=RunStatus.FAILED,
            day=day,
            started_at=started_at,
            duration_s=time.monotonic() - t0,
            error=error,
        )

    def _log_outcome(self, outcome: RunOutcome) -> None:
        duration_ms = int(outcome.duration_s * 1000)
        stamp = outcome.started_at.isoformat()
        if outcome.status is RunStatus.SUCCESS:
            logger.success(
                f"{LOG_PREFIX} {stamp} - run complete (duration={duration_ms}ms) "
                f"{outcome.result.legacy_counters()} {outcome.result}"
            )
        elif outcome.status is RunStatus.FAILED:
            logger.error(f"{LOG_PREFIX} {stamp} - run failed (duration={duration_ms}ms): {outcome.error}")

"""
Tests unitarios para TariffSyncCoordinator.

Cubren la máquina de estados, el advisory lock y la exportación condicional.
"""
from __future__ import annotations

import threading
from datetime import date
from typing import List

import pytest

from tariff_sync.application.services.reconciliation import TariffReconciler
from tariff_sync.application.services.tariff_export import TariffExportService
from tariff_sync.application.use_cases.tariff_sync_use_cases import (
    RunState,
    RunStatus,
    TariffSyncCoordinator,
)
from tariff_sync.domain.entities.tariffs import TariffSnapshot
from tariff_sync.shared.exceptions.domain import (
    FetchTimeoutError,
    TariffValidationError,
)

LOCK_KEY = 4242


class StubFetcher:
    def __init__(self, payload=None, error: Exception = None) -> None:
        self.payload = payload
        self.error = error
        self.calls: List[date] = []

    def fetch_tariffs(self, day: date) -> TariffSnapshot:
        self.calls.append(day)
        if self.error is not None:
            raise self.error
        return TariffSnapshot.model_validate(self.payload)


class BlockingFetcher(StubFetcher):
    """Se queda bloqueado dentro del fetch hasta que el test lo libere."""

    def __init__(self, payload) -> None:
        super().__init__(payload)
        self.entered = threading.Event()
        self.release = threading.Event()

    def fetch_tariffs(self, day: date) -> TariffSnapshot:
        self.entered.set()
        self.release.wait(timeout=5)
        return super().fetch_tariffs(day)


def _coordinator(repository, fetcher, exporter=None, today=date(2026, 10, 18)) -> TariffSyncCoordinator:
    export_service = TariffExportService(repository, exporter) if exporter is not None else None
    return TariffSyncCoordinator(
        repository=repository,
        fetcher=fetcher,
        reconciler=TariffReconciler(repository),
        lock_key=LOCK_KEY,
        export_service=export_service,
        today=lambda: today,
    )


class TestSuccessfulRun:
    def test_first_run_reconciles_and_exports_once(self, repository, exporter, make_payload, today) -> None:
        coordinator = _coordinator(repository, StubFetcher(make_payload()), exporter)

        outcome = coordinator.run_sync()

        assert outcome.status is RunStatus.SUCCESS
        assert outcome.day == today
        assert outcome.result.tariffs_inserted == 2
        assert outcome.exported_rows == 3
        assert len(exporter.calls) == 1
        assert repository.lock_calls == [LOCK_KEY]
        assert repository.unlock_calls == [LOCK_KEY]
        assert coordinator.state is RunState.IDLE

    def test_explicit_day_is_used(self, repository, make_payload) -> None:
        fetcher = StubFetcher(make_payload())
        coordinator = _coordinator(repository, fetcher)

        outcome = coordinator.run_sync(date(2026, 10, 1))

        assert fetcher.calls == [date(2026, 10, 1)]
        assert repository.rows("warehouses", "Moscow_1")[0]["date"] == date(2026, 10, 1)
        assert outcome.exported_rows is None

    def test_export_runs_even_when_only_updates(self, repository, exporter, make_payload) -> None:
        """Una segunda corrida idéntica sigue contando UPDATEs como cambios."""
        coordinator = _coordinator(repository, StubFetcher(make_payload()), exporter)
        coordinator.run_sync()

        second = coordinator.run_sync()

        assert second.result.tariffs_inserted == 0
        assert second.result.total_changes == 6
        assert len(exporter.calls) == 2

    def test_no_changes_skips_export(self, repository, exporter, make_payload) -> None:
        coordinator = _coordinator(repository, StubFetcher(make_payload(())), exporter)

        outcome = coordinator.run_sync()

        assert outcome.status is RunStatus.SUCCESS
        assert outcome.result.total_changes == 0
        assert outcome.exported_rows is None
        assert exporter.calls == []

    def test_export_failure_keeps_run_successful(self, repository, exporter, make_payload) -> None:
        exporter.error = RuntimeError("sheet not found")
        coordinator = _coordinator(repository, StubFetcher(make_payload()), exporter)

        outcome = coordinator.run_sync()

        assert outcome.status is RunStatus.SUCCESS
        assert outcome.exported_rows is None
        assert len(repository.rows("warehouses")) == 2
        assert coordinator.state is RunState.IDLE


class TestOverlapGuards:
    def test_busy_coordinator_skips_second_trigger(self, repository, make_payload) -> None:
        fetcher = BlockingFetcher(make_payload())
        coordinator = _coordinator(repository, fetcher)
        outcomes = []
        worker = threading.Thread(target=lambda: outcomes.append(coordinator.run_sync()))
        worker.start()
        try:
            assert fetcher.entered.wait(timeout=5)
            assert coordinator.state is RunState.RUNNING

            skipped = coordinator.run_sync()
        finally:
            fetcher.release.set()
            worker.join(timeout=5)

        assert skipped.status is RunStatus.SKIPPED_BUSY
        assert outcomes[0].status is RunStatus.SUCCESS
        assert fetcher.calls == [date(2026, 10, 18)]
        assert coordinator.state is RunState.IDLE

    def test_lock_held_by_other_process_skips_run(self, repository, make_payload) -> None:
        repository.lock_held_elsewhere = True
        fetcher = StubFetcher(make_payload())
        coordinator = _coordinator(repository, fetcher)

        outcome = coordinator.run_sync()

        assert outcome.status is RunStatus.SKIPPED_LOCKED
        assert fetcher.calls == []
        assert repository.unlock_calls == []
        assert coordinator.state is RunState.IDLE

    def test_lock_query_error_is_treated_as_locked(self, repository, make_payload) -> None:
        repository.lock_error = RuntimeError("connection reset")
        fetcher = StubFetcher(make_payload())

        outcome = _coordinator(repository, fetcher).run_sync()

        assert outcome.status is RunStatus.SKIPPED_LOCKED
        assert fetcher.calls == []


class TestFailures:
    @pytest.mark.parametrize(
        "error, code",
        [
            (FetchTimeoutError("https://wb.example/tariffs", 8.0), "FETCH_TIMEOUT"),
            (
                TariffValidationError(
                    request_url="https://wb.example/tariffs",
                    raw_preview="{}",
                    field_errors=[{"loc": "warehouseList", "message": "Field required", "type": "missing"}],
                ),
                "VALIDATION_ERROR",
            ),
        ],
    )
    def test_fetch_errors_fail_run_and_release_lock(self, repository, exporter, error, code) -> None:
        coordinator = _coordinator(repository, StubFetcher(error=error), exporter)

        outcome = coordinator.run_sync()

        assert outcome.status is RunStatus.FAILED
        assert outcome.error.startswith(f"[{code}]")
        assert repository.unlock_calls == [LOCK_KEY]
        assert exporter.calls == []
        assert coordinator.state is RunState.IDLE

    def test_transaction_error_rolls_back_and_releases(self, repository, exporter, make_payload) -> None:
        repository.fail_on_insert_table = "wh_tariffs"
        coordinator = _coordinator(repository, StubFetcher(make_payload()), exporter)

        outcome = coordinator.run_sync()

        assert outcome.status is RunStatus.FAILED
        assert outcome.error.startswith("[TRANSACTION_ERROR]")
        assert repository.rows("warehouses") == []
        assert repository.unlock_calls == [LOCK_KEY]
        assert exporter.calls == []

    def test_unexpected_error_is_contained(self, repository) -> None:
        coordinator = _coordinator(repository, StubFetcher(error=KeyError("boom")))

        outcome = coordinator.run_sync()

        assert outcome.status is RunStatus.FAILED
        assert repository.unlock_calls == [LOCK_KEY]

    def test_connect_failure_fails_run(self, repository, make_payload) -> None:
        def _refuse():
            raise OSError("connection refused")

        repository.connect = _refuse
        fetcher = StubFetcher(make_payload())
        coordinator = _coordinator(repository, fetcher)

        outcome = coordinator.run_sync()

        assert outcome.status is RunStatus.FAILED
        assert "connection refused" in outcome.error
        assert fetcher.calls == []
        assert coordinator.state is RunState.IDLE

    def test_recovers_after_failure(self, repository, make_payload) -> None:
        fetcher = StubFetcher(make_payload(), error=FetchTimeoutError("u", 8.0))
        coordinator = _coordinator(repository, fetcher)
        coordinator.run_sync()

        fetcher.error = None
        outcome = coordinator.run_sync()

        assert outcome.status is RunStatus.SUCCESS


class TestDailyExport:
    def test_exports_unconditionally(self, repository, exporter, make_payload, today) -> None:
        coordinator = _coordinator(repository, StubFetcher(make_payload()), exporter)
        coordinator.run_sync()

        written = coordinator.run_daily_export()

        assert written == 3
        assert len(exporter.calls) == 2
        assert exporter.calls[-1]["sheet_title"] == f"WB Tariffs {today.isoformat()}"

    def test_without_exporter_returns_none(self, repository, make_payload) -> None:
        coordinator = _coordinator(repository, StubFetcher(make_payload()))

        assert coordinator.run_daily_export() is None

    def test_export_failure_returns_none(self, repository, exporter, make_payload) -> None:
        coordinator = _coordinator(repository, StubFetcher(make_payload(())), exporter)
        TariffReconciler(repository).reconcile(
            repository.connect(), TariffSnapshot.model_validate(make_payload()), date(2026, 10, 18)
        )
        exporter.error = RuntimeError("quota exceeded")

        assert coordinator.run_daily_export() is None

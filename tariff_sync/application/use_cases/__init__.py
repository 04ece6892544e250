"""
Casos de uso del worker.
"""
from tariff_sync.application.use_cases.tariff_sync_use_cases import (
    RunOutcome,
    RunState,
    RunStatus,
    TariffSyncCoordinator,
)

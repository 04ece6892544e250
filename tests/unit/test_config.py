from __future__ import annotations

import sys
import types

import pytest

from tariff_sync.application.use_cases.tariff_sync_use_cases import TariffSyncCoordinator
from tariff_sync.core.bootstrap import build_coordinator, load_exporter
from tariff_sync.core.config import Settings, normalize_psycopg_dsn
from tariff_sync.infrastructure.database.pg_repository import stable_lock_key
from tariff_sync.shared.exceptions.base import ConfigError


@pytest.mark.parametrize(
    "dsn, expected",
    [
        ("postgresql+psycopg://u:p@h:5432/db", "postgresql://u:p@h:5432/db"),
        ("postgres+asyncpg://u:p@h/db", "postgres://u:p@h/db"),
        ("postgresql+psycopg2://u:p@h/db", "postgresql://u:p@h/db"),
        ("postgresql://u:p@h/db", "postgresql://u:p@h/db"),
        ("host=localhost dbname=wb", "host=localhost dbname=wb"),
    ],
)
def test_normalize_psycopg_dsn(dsn: str, expected: str) -> None:
    assert normalize_psycopg_dsn(dsn) == expected


def test_database_url_built_from_components() -> None:
    s = Settings(
        _env_file=None,
        DATABASE_URL="",
        DATABASE_HOST="db",
        DATABASE_PORT=6543,
        DATABASE_USER="wb",
        DATABASE_PASSWORD="secret",
        DATABASE_NAME="tariffs",
    )

    assert s.effective_database_url == "postgresql://wb:secret@db:6543/tariffs"


def test_database_url_overrides_components() -> None:
    s = Settings(_env_file=None, DATABASE_URL="postgresql+psycopg://a:b@c/d")

    assert s.effective_database_url == "postgresql+psycopg://a:b@c/d"
    assert s.psycopg_dsn == "postgresql://a:b@c/d"


def test_defaults() -> None:
    s = Settings(_env_file=None)

    assert s.CRON_SCHEDULE == "0 */1 * * *"
    assert s.DAILY_UPLOAD_SCHEDULE == "59 23 * * *"
    assert s.WB_TARIFFS_TIMEOUT_S == 8.0
    assert s.HTTP_DEFAULT_TIMEOUT_S == 10.0
    assert s.SYNC_LOCK_TASK_ID == "wbTraffic:tariffs"


def test_build_coordinator_rejects_non_postgres_dsn() -> None:
    s = Settings(_env_file=None, DATABASE_URL="sqlite:///./tariffs.db")

    with pytest.raises(ConfigError):
        build_coordinator(s)


def test_build_coordinator_without_exporter() -> None:
    s = Settings(_env_file=None, DATABASE_URL="postgresql://u:p@h/db", WB_TOKEN="t")

    coordinator = build_coordinator(s)

    assert isinstance(coordinator, TariffSyncCoordinator)
    assert coordinator._lock_key == stable_lock_key("wbTraffic:tariffs")
    assert coordinator._export is None


def test_build_coordinator_wires_exporter(exporter) -> None:
    s = Settings(_env_file=None, DATABASE_URL="postgresql://u:p@h/db", WB_TOKEN="t")

    coordinator = build_coordinator(s, exporter=exporter)

    assert coordinator._export is not None


@pytest.fixture
def exporter_module(monkeypatch, exporter):
    """Módulo importable con una factory de exportador que registra sus Settings."""
    module = types.ModuleType("wb_sheets_exporters")
    received = []

    def make_exporter(settings):
        received.append(settings)
        return exporter

    module.make_exporter = make_exporter
    module.received = received
    monkeypatch.setitem(sys.modules, "wb_sheets_exporters", module)
    return module


def test_build_coordinator_loads_exporter_from_settings(exporter_module, exporter) -> None:
    s = Settings(
        _env_file=None,
        DATABASE_URL="postgresql://u:p@h/db",
        WB_TOKEN="t",
        SPREADSHEET_EXPORTER="wb_sheets_exporters:make_exporter",
    )

    coordinator = build_coordinator(s)

    assert coordinator._export is not None
    assert coordinator._export._exporter is exporter
    assert exporter_module.received == [s]


def test_explicit_exporter_wins_over_setting(exporter_module, exporter) -> None:
    s = Settings(
        _env_file=None,
        DATABASE_URL="postgresql://u:p@h/db",
        SPREADSHEET_EXPORTER="wb_sheets_exporters:make_exporter",
    )

    build_coordinator(s, exporter=exporter)

    assert exporter_module.received == []


@pytest.mark.parametrize(
    "path",
    ["wb_sheets_exporters", "no_such_module_xyz:factory", "wb_sheets_exporters:missing"],
)
def test_load_exporter_rejects_bad_paths(exporter_module, path: str) -> None:
    with pytest.raises(ConfigError) as exc_info:
        load_exporter(path, Settings(_env_file=None))

    assert exc_info.value.details["path"] == path

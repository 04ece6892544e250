"""
CLI: una corrida de sincronización de tarifas (sin scheduler).

Uso recomendado:
  - Backfill manual o diagnóstico de una corrida concreta.
  - El worker programado es `main.py`; este script respeta el mismo advisory
    lock, así que es seguro lanzarlo con el worker corriendo.

Variables de entorno relevantes:
  - WB_TOKEN
  - DATABASE_URL (debe ser postgresql://... o postgres://...)

Ejecución:
  python scripts/run_tariff_sync.py
  python scripts/run_tariff_sync.py --date 2026-10-17
  python scripts/run_tariff_sync.py --export-only
"""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

# Cargar variables desde .env si existe (antes de instanciar Settings).
load_dotenv(_REPO_ROOT / ".env", override=False)

from tariff_sync.application.use_cases.tariff_sync_use_cases import RunStatus
from tariff_sync.core.bootstrap import build_coordinator
from tariff_sync.core.config import Settings
from tariff_sync.core.logging import setup_logging


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Fecha inválida (se espera YYYY-MM-DD): {value}") from e


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--date",
        type=_parse_day,
        default=None,
        help="Día a sincronizar (YYYY-MM-DD). Por defecto: hoy (UTC).",
    )
    parser.add_argument(
        "--export-only",
        action="store_true",
        help="No sincroniza: solo exporta los datos ya persistidos del día.",
    )
    args = parser.parse_args()

    settings = Settings()
    setup_logging(settings.LOG_LEVEL, "")
    coordinator = build_coordinator(settings)

    if args.export_only:
        written = coordinator.run_daily_export(args.date)
        return 0 if written is not None else 1

    outcome = coordinator.run_sync(args.date)
    logger.info(f"Resultado: status={outcome.status.value}, result={outcome.result}, error={outcome.error}")
    return 1 if outcome.status is RunStatus.FAILED else 0


if __name__ == "__main__":
    raise SystemExit(main())

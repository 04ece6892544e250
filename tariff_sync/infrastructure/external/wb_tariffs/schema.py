"""
Validación del payload de tarifas.

Funciones puras (sin I/O): reciben el JSON ya parseado y retornan un
resultado etiquetado (ok / errores por campo). Quien llama decide si
convertir el fallo en excepción.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from tariff_sync.domain.entities.tariffs import TariffSnapshot

# Límite del preview del payload crudo que viaja en los errores/logs.
RAW_PREVIEW_LIMIT = 2000


@dataclass(frozen=True)
class ValidationResult:
    """Resultado etiquetado: `snapshot` si ok, `errors` si no."""

    ok: bool
    snapshot: Optional[TariffSnapshot] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)
    request_url: str = ""
    raw_preview: str = ""


def unwrap_envelope(raw: Any) -> Any:
    """
    La API a veces envuelve el payload como {response: {data: {...}}}.
    Acepta la forma envuelta o la forma cruda.
    """
    if isinstance(raw, dict):
        response = raw.get("response")
        if isinstance(response, dict) and response.get("data"):
            return response["data"]
    return raw


def build_raw_preview(raw: Any, limit: int = RAW_PREVIEW_LIMIT) -> str:
    """Preview JSON del payload, truncado a `limit` caracteres."""
    try:
        preview = json.dumps(raw, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        preview = repr(raw)
    if len(preview) > limit:
        return preview[:limit] + "...<truncated>"
    return preview


def _field_errors(error: ValidationError) -> List[Dict[str, Any]]:
    errors = []
    for err in error.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
        errors.append({"loc": loc, "message": err.get("msg", ""), "type": err.get("type", "")})
    return errors


def validate_payload(raw: Any, request_url: str = "") -> ValidationResult:
    """
    Valida (y desenvuelve) el payload contra el esquema de TariffSnapshot.

    No hay aceptación parcial: o todo el snapshot es válido o nada.
    """
    payload = unwrap_envelope(raw)
    try:
        snapshot = TariffSnapshot.model_validate(payload)
    except ValidationError as e:
        return ValidationResult(
            ok=False,
            errors=_field_errors(e),
            request_url=request_url,
            raw_preview=build_raw_preview(raw),
        )
    return ValidationResult(ok=True, snapshot=snapshot)

"""
Excepciones del pipeline de sincronización de tarifas.

Taxonomía:
- FetchError (base) -> FetchTimeoutError, TransportError, HttpStatusError
- TariffValidationError: el payload no cumple el esquema esperado
- LockUnavailable: otro proceso tiene el advisory lock (señal de skip, no falla)
- TransactionError: fallo dentro de la transacción de reconciliación
- ExportError: fallo del exportador (se loguea, no falla la corrida)
"""
from typing import Any, Dict, List, Optional

from tariff_sync.shared.exceptions.base import AppException


class FetchError(AppException):
    """Excepción base para fallos al consultar la API de tarifas."""

    def __init__(
        self,
        message: str,
        url: str,
        error_code: str = "FETCH_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.url = url
        super().__init__(
            message=message,
            error_code=error_code,
            details={"url": url, **(details or {})}
        )


class FetchTimeoutError(FetchError):
    """El intento excedió su timeout."""

    def __init__(self, url: str, timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(
            message=f"Fetch timeout after {timeout_s}s: {url}",
            url=url,
            error_code="FETCH_TIMEOUT",
            details={"timeout_s": timeout_s}
        )


class TransportError(FetchError):
    """Fallo de red/DNS/conexión."""

    def __init__(self, url: str, reason: str):
        super().__init__(
            message=f"Transport error calling {url}: {reason}",
            url=url,
            error_code="FETCH_TRANSPORT",
            details={"reason": reason}
        )


class HttpStatusError(FetchError):
    """Respuesta no-2xx. No se reintenta."""

    def __init__(self, url: str, status_code: int, body: str, reason: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(
            message=f"FetchError: {status_code} {reason} - {body}".strip(),
            url=url,
            error_code="FETCH_HTTP_STATUS",
            details={"status_code": status_code, "body": body}
        )


class TariffValidationError(AppException):
    """
    El payload de tarifas no cumple el esquema.

    Incluye contexto suficiente para reproducir el fallo:
    URL del request, preview JSON del payload y errores por campo.
    """

    def __init__(
        self,
        request_url: str,
        raw_preview: str,
        field_errors: List[Dict[str, Any]]
    ):
        self.request_url = request_url
        self.raw_preview = raw_preview
        self.field_errors = field_errors
        super().__init__(
            message=(
                f"WB tariffs response validation failed: {field_errors} "
                f"- requestUrl={request_url} - raw={raw_preview}"
            ),
            error_code="VALIDATION_ERROR",
            details={
                "request_url": request_url,
                "raw_preview": raw_preview,
                "field_errors": field_errors,
            }
        )


class LockUnavailable(AppException):
    """Otro worker tiene el advisory lock. Es una señal de skip limpio."""

    def __init__(self, lock_key: int):
        self.lock_key = lock_key
        super().__init__(
            message=f"Advisory lock {lock_key} held by another worker",
            error_code="LOCK_UNAVAILABLE",
            details={"lock_key": lock_key}
        )


class TransactionError(AppException):
    """Fallo durante la reconciliación. La transacción completa hizo rollback."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, error_code="TRANSACTION_ERROR", details=details)


class ExportError(AppException):
    """Fallo del exportador de hoja de cálculo."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, error_code="EXPORT_ERROR", details=details)

from tariff_sync.shared.exceptions.base import AppException, ConfigError
from tariff_sync.shared.exceptions.domain import (
    ExportError,
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    LockUnavailable,
    TariffValidationError,
    TransactionError,
    TransportError,
)

__all__ = [
    "AppException",
    "ConfigError",
    "ExportError",
    "FetchError",
    "FetchTimeoutError",
    "HttpStatusError",
    "LockUnavailable",
    "TariffValidationError",
    "TransactionError",
    "TransportError",
]

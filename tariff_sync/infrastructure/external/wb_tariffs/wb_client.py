"""
Cliente HTTP mínimo para la API de tarifas de Wildberries (sin SDKs externos).

Requisitos cubiertos:
- requests (Session inyectable para tests)
- timeout por intento (10s genérico, 8s para tariffs/box) como deadline total:
  conexión, headers y lectura del body
- reintentos con backoff exponencial para timeouts y errores de red
- status no-2xx -> HttpStatusError (sin reintento)
- Authorization: Bearer <token> si hay token y el caller no puso uno
"""

from __future__ import annotations

import json
import time
from datetime import date
from typing import Any, Callable, Mapping, Optional, Tuple

import requests
from loguru import logger
from requests.structures import CaseInsensitiveDict

from tariff_sync.domain.entities.tariffs import TariffSnapshot
from tariff_sync.shared.exceptions.domain import (
    FetchTimeoutError,
    HttpStatusError,
    TariffValidationError,
    TransportError,
)

from .retry import RetryPolicy
from .schema import RAW_PREVIEW_LIMIT, validate_payload

DEFAULT_TARIFFS_URL = "https://common-api.wildberries.ru/api/v1/tariffs/box"

# El deadline del intento se verifica entre bloques del body.
BODY_CHUNK_SIZE = 1024


class WBTariffsClient:
    """
    Cliente HTTP de la API de tarifas. Retorna snapshots ya validados.

    Importante:
    - No convierte los strings numéricos: eso es responsabilidad del normalizador.
    - El timeout corta un intento; la RetryPolicy gobierna cuántos intentos hay.
    """

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        tariffs_url: str = DEFAULT_TARIFFS_URL,
        session: Optional[requests.Session] = None,
        default_timeout_s: float = 10.0,
        tariffs_timeout_s: float = 8.0,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._token = token or None
        self._tariffs_url = tariffs_url
        self._session = session or requests.Session()
        self._default_timeout_s = default_timeout_s
        self._tariffs_timeout_s = tariffs_timeout_s
        self._retry = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._clock = clock

    def _merge_headers(self, headers: Optional[Mapping[str, str]]) -> CaseInsensitiveDict:
        """Preserva los headers del caller; agrega Bearer solo si falta Authorization."""
        merged = CaseInsensitiveDict(headers or {})
        if self._token and "Authorization" not in merged:
            merged["Authorization"] = f"Bearer {self._token}"
        return merged

    @staticmethod
    def build_url(url: str, params: Optional[Mapping[str, Any]] = None) -> str:
        return requests.Request("GET", url, params=params).prepare().url

    def fetch_json(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout_s: Optional[float] = None,
    ) -> Any:
        """
        GET con timeout y reintentos. Retorna el JSON parseado (o None si el body no es JSON).

        Raises:
            FetchTimeoutError: el último intento excedió `timeout_s`
            TransportError: fallo de red en el último intento
            HttpStatusError: status no-2xx (no se reintenta)
        """
        timeout = timeout_s if timeout_s is not None else self._default_timeout_s
        request_url = self.build_url(url, params)
        merged_headers = self._merge_headers(headers)

        def _attempt() -> Tuple[requests.Response, bytes]:
            deadline = self._clock() + timeout
            try:
                response = self._session.get(
                    url, params=params, headers=merged_headers, timeout=timeout, stream=True
                )
                try:
                    body = self._read_body(response, deadline, request_url, timeout)
                finally:
                    response.close()
            except requests.Timeout as e:
                raise FetchTimeoutError(request_url, timeout) from e
            except requests.RequestException as e:
                raise TransportError(request_url, str(e)) from e
            return response, body

        response, body = self._retry.run(
            _attempt,
            retry_on=(FetchTimeoutError, TransportError),
            sleep=self._sleep,
            description=f"GET {request_url}",
        )

        if not 200 <= response.status_code < 300:
            text = body.decode(response.encoding or "utf-8", errors="replace") or "<no body>"
            raise HttpStatusError(
                request_url,
                response.status_code,
                text[:RAW_PREVIEW_LIMIT],
                reason=response.reason or "",
            )

        try:
            return json.loads(body)
        except ValueError:
            logger.warning(f"Respuesta 2xx sin JSON válido desde {request_url}")
            return None

    def _read_body(
        self,
        response: requests.Response,
        deadline: float,
        request_url: str,
        timeout: float,
    ) -> bytes:
        """
        Lee el body por bloques cortando el intento cuando pasa el deadline.

        `timeout` de requests solo acota cada lectura del socket: un servidor
        que manda el body de a poco nunca lo dispara.

        Raises:
            FetchTimeoutError: el intento superó `timeout` segundos en total
        """
        if self._clock() > deadline:
            raise FetchTimeoutError(request_url, timeout)

        chunks = []
        for chunk in response.iter_content(chunk_size=BODY_CHUNK_SIZE):
            if self._clock() > deadline:
                raise FetchTimeoutError(request_url, timeout)
            chunks.append(chunk)
        return b"".join(chunks)

    def fetch_tariffs(self, day: date) -> TariffSnapshot:
        """
        Obtiene las tarifas de `day` y las valida.

        Raises:
            FetchError (y subclases): fallo HTTP/red/timeout
            TariffValidationError: el payload no cumple el esquema
        """
        params = {"date": day.isoformat()}
        request_url = self.build_url(self._tariffs_url, params)

        raw = self.fetch_json(self._tariffs_url, params=params, timeout_s=self._tariffs_timeout_s)

        result = validate_payload(raw, request_url)
        if not result.ok:
            raise TariffValidationError(
                request_url=result.request_url,
                raw_preview=result.raw_preview,
                field_errors=result.errors,
            )

        logger.info(f"Tarifas obtenidas para {day.isoformat()}: {len(result.snapshot.warehouses)} almacenes")
        return result.snapshot

"""
Política de reintentos con backoff exponencial.

Se mantiene ortogonal al timeout: el timeout corta UN intento,
la política decide cuántos intentos se hacen y cuánto se espera entre ellos.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Tuple, Type, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Backoff exponencial: initial_delay_s * factor**(intento-1), acotado por max_delay_s.

    - max_attempts: intentos totales (1 = sin reintentos)
    - jitter: fracción del delay agregada al azar (0 = determinista)
    """

    max_attempts: int = 3
    initial_delay_s: float = 0.2
    factor: float = 2.0
    max_delay_s: float = 30.0
    jitter: float = 0.0

    def delay_for(self, attempt: int) -> float:
        """Espera después del intento `attempt` (1-based)."""
        base = min(self.max_delay_s, self.initial_delay_s * (self.factor ** (attempt - 1)))
        if self.jitter > 0:
            base += random.uniform(0, self.jitter * base)
        return base

    def run(
        self,
        operation: Callable[[], T],
        *,
        retry_on: Tuple[Type[BaseException], ...],
        sleep: Callable[[float], None] = time.sleep,
        description: str = "operation",
    ) -> T:
        """
        Ejecuta `operation` hasta que tenga éxito o se agoten los intentos.

        Solo se reintentan las excepciones en `retry_on`; cualquier otra se
        propaga inmediatamente. Agotado el presupuesto, se relanza el último error.
        """
        attempts = max(1, self.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except retry_on as e:
                if attempt >= attempts:
                    logger.warning(f"{description}: intento {attempt}/{attempts} falló, sin más reintentos ({e})")
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"{description}: intento {attempt}/{attempts} falló ({e}); reintentando en {delay:.2f}s"
                )
                sleep(delay)

        # Inalcanzable: el loop retorna o relanza.
        raise RuntimeError(f"{description}: retry loop terminó sin resultado")

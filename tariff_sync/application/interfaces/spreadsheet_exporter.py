"""
Interfaz del exportador a hoja de cálculo.

Este contrato existe para:
- Que el coordinador decida CUÁNDO exportar sin conocer el transporte.
- Facilitar tests unitarios sin credenciales ni red.
"""

from __future__ import annotations

from typing import Protocol, Sequence


class SpreadsheetExporter(Protocol):
    """
    Persiste filas tabulares en una hoja remota.

    Implementaciones:
    - Cliente real de la hoja de cálculo (fuera de este repositorio).
    - Fake/stub para tests.
    """

    def write_rows(
        self,
        *,
        header: Sequence[str],
        rows: Sequence[Sequence[str]],
        sheet_title: str,
    ) -> int:
        """
        Escribe `header` + `rows` en la hoja `sheet_title`.

        Retorna la cantidad de filas escritas. Ante cualquier error debe
        lanzar excepción (el caller la registra como ExportError).
        """

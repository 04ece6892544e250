"""
Configuracion de loguru para el worker.
"""
import sys

from loguru import logger


def setup_logging(level: str = "INFO", log_file: str = "") -> None:
    """
    Reemplaza el sink por defecto de loguru.

    Args:
        level: Nivel minimo (DEBUG, INFO, WARNING...)
        log_file: Ruta del archivo de log rotativo. Vacio = solo stderr.
    """
    logger.remove()
    logger.add(sys.stderr, level=level, backtrace=False, diagnose=False)

    if log_file:
        logger.add(
            log_file,
            rotation="500 MB",
            retention="10 days",
            level=level,
            enqueue=True,
        )

# ============================================================
# 📦 src/address_resolution/logs/logging_config.py
# ============================================================

import os
import sys

from loguru import logger


_FORMATO = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"


def setup_logging(level: str = None, log_file: str = None):
    """
    Configura o loguru uma única vez por entry point (CLI, API, worker).
    LOG_LEVEL / LOG_FILE podem vir do ambiente.
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("LOG_FILE")

    logger.remove()
    logger.add(sys.stdout, colorize=True, level=level, format=_FORMATO)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        logger.add(log_file, level=level, rotation="10 MB", retention=5, encoding="utf-8")

    logger.debug(f"🪵 Logging configurado (level={level}, arquivo={log_file or '—'})")
    return logger

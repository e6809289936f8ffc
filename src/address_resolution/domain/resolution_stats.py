# ============================================================
# 📦 src/address_resolution/domain/resolution_stats.py
# ============================================================

import threading
from typing import Dict

from loguru import logger


class ResolutionStats:
    """Contadores thread-safe do processo (origem da resolução, cache, geocoder)."""

    ORIGENS = ("explicit", "postal", "city_lookup", "fuzzy", "unknown")

    def __init__(self):
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {
            "cache_hit": 0,
            "cache_wait": 0,
            **{origem: 0 for origem in self.ORIGENS},
            "geocoder_calls": 0,
            "geocoder_retry": 0,
            "geocoder_falha": 0,
            "total": 0,
        }

    def incr(self, chave: str, n: int = 1):
        with self._lock:
            self._stats[chave] = self._stats.get(chave, 0) + n

    def get(self, chave: str) -> int:
        with self._lock:
            return self._stats.get(chave, 0)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._stats)

    # ============================================================
    # 📊 Resumo final de logs
    # ============================================================
    def exibir_resumo_logs(self):
        stats = self.snapshot()
        total = stats.get("total", 0)

        logger.info("📊 Resumo da resolução de endereços:")
        for origem in ("cache_hit", "cache_wait", *self.ORIGENS):
            count = stats.get(origem, 0)
            pct = (count / total * 100) if total else 0
            logger.info(f"   {origem:<18}: {count:>6} ({pct:5.1f}%)")

        logger.info(
            f"   geocoder          : {stats['geocoder_calls']} chamadas | "
            f"{stats['geocoder_retry']} retries | {stats['geocoder_falha']} falhas"
        )

        sucesso = total - stats.get("unknown", 0)
        taxa = (sucesso / total * 100) if total else 0
        logger.info(f"✅ Resolvidos: {sucesso}/{total} ({taxa:.1f}%)")

# ============================================================
# 📦 src/address_resolution/infrastructure/redis_store.py
# ============================================================

import json
from typing import List, Optional

from loguru import logger
from redis import Redis

from address_resolution.domain.errors import CacheCorruption
from address_resolution.entities.parsed_address import ParsedAddress
from address_resolution.infrastructure.resolution_cache import CacheEntry, CacheKey


# Append atômico no histórico, ignorando repetição consecutiva
_APPEND_DEDUP = """
local ultimo = redis.call('LINDEX', KEYS[1], -1)
if ultimo == ARGV[1] then
    return 0
end
redis.call('RPUSH', KEYS[1], ARGV[1])
return 1
"""


class RedisResolutionStore:
    """
    Backend compartilhado entre processos (CACHE_BACKEND=redis).
      addr:<rm>:<endereço>        → hash {value, resolved_at}
      addr:<rm>:<endereço>:hist   → lista (mais antigo primeiro)
      addr-alias:<rm>             → hash {variante normalizada: addr:<rm>:<endereço>}
    """

    PREFIXO = "addr"

    def __init__(self, conn: Redis):
        self.conn = conn
        self._append = conn.register_script(_APPEND_DEDUP)

    @classmethod
    def from_url(cls, url: str) -> "RedisResolutionStore":
        logger.info(f"🔌 [CACHE][REDIS] conectando em {url}")
        return cls(Redis.from_url(url, decode_responses=True))

    def _k(self, key: CacheKey) -> str:
        return f"{self.PREFIXO}:{key[0]}:{key[1]}"

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        dados = self.conn.hgetall(self._k(key))
        if not dados:
            return None
        try:
            value = ParsedAddress.from_dict(json.loads(dados["value"]))
            resolved_at = float(dados["resolved_at"])
        except (KeyError, ValueError, TypeError) as e:
            raise CacheCorruption(f"valor inválido em {self._k(key)}: {e}") from e
        history = self.conn.lrange(f"{self._k(key)}:hist", 0, -1)
        return CacheEntry(value, resolved_at, list(history))

    def put_value(self, key: CacheKey, value: ParsedAddress, resolved_at: float):
        self.conn.hset(
            self._k(key),
            mapping={
                "value": json.dumps(value.to_dict(), ensure_ascii=False),
                "resolved_at": resolved_at,
            },
        )

    def append_history(self, key: CacheKey, item: str) -> bool:
        return bool(self._append(keys=[f"{self._k(key)}:hist"], args=[item]))

    def reset_history(self, key: CacheKey, itens: Optional[List[str]] = None):
        hist = f"{self._k(key)}:hist"
        aliases = self._alias_k(key[0])
        alvo = self._k(key)
        orfas = [v for v, k in self.conn.hgetall(aliases).items() if k == alvo]
        pipe = self.conn.pipeline()
        pipe.delete(hist)
        if itens:
            pipe.rpush(hist, *itens)
        if orfas:
            pipe.hdel(aliases, *orfas)
        pipe.execute()

    # ------------------------------------------------------------
    # Índice variante → chave (hash por rm)
    # ------------------------------------------------------------
    def _alias_k(self, rm_key: str) -> str:
        return f"{self.PREFIXO}-alias:{rm_key}"

    def add_alias(self, key: CacheKey, variante: str):
        self.conn.hsetnx(self._alias_k(key[0]), variante, self._k(key))

    def find_alias(self, rm_key: str, variante: str) -> Optional[CacheKey]:
        alvo = self.conn.hget(self._alias_k(rm_key), variante)
        prefixo = f"{self.PREFIXO}:{rm_key}:"
        if not alvo or not alvo.startswith(prefixo):
            return None
        return rm_key, alvo[len(prefixo):]

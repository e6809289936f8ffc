# ============================================================
# 📦 src/address_resolution/infrastructure/resolution_cache.py
# ============================================================

import re
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from address_resolution.domain.address_normalizer import normalize_for_cache, normalize_rm
from address_resolution.domain.errors import CacheCorruption
from address_resolution.domain.resolution_stats import ResolutionStats
from address_resolution.entities.parsed_address import ParsedAddress


CacheKey = Tuple[str, str]

_SEPARADOR_HISTORICO = re.compile(r"\r?\n|\|\|")


def split_history(raw) -> List[str]:
    """
    Quebra um registro composto ("a||b\\nc") em itens aparados,
    sem vazios, na ordem gravada (mais antigo primeiro).
    """
    if raw is None:
        return []
    if not isinstance(raw, str):
        raise CacheCorruption(f"histórico com tipo inválido: {type(raw).__name__}")
    return [p.strip() for p in _SEPARADOR_HISTORICO.split(raw) if p and p.strip()]


def history_newest_first(itens: Iterable[str]) -> List[str]:
    plano: List[str] = []
    for item in itens:
        plano.extend(split_history(item))
    return list(dict.fromkeys(reversed(plano)))


@dataclass
class CacheEntry:
    value: ParsedAddress
    resolved_at: float
    history: List[str] = field(default_factory=list)

    def is_fresh(self, agora: float, ttl: float) -> bool:
        return agora - self.resolved_at < ttl


# ============================================================
# 🗄️ Backend em memória (padrão)
# ============================================================
class InMemoryResolutionStore:
    """Backend do processo. Todas as operações são atômicas sob um lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._aliases: Dict[CacheKey, CacheKey] = {}

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            return CacheEntry(entry.value, entry.resolved_at, list(entry.history))

    def put_value(self, key: CacheKey, value: ParsedAddress, resolved_at: float):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._entries[key] = CacheEntry(value, resolved_at)
            else:
                entry.value = value
                entry.resolved_at = resolved_at

    def append_history(self, key: CacheKey, item: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.history and entry.history[-1] == item:
                return False
            entry.history.append(item)
            return True

    def reset_history(self, key: CacheKey, itens: Optional[List[str]] = None):
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                entry.history = list(itens or [])
            self._aliases = {v: k for v, k in self._aliases.items() if k != key}

    # ------------------------------------------------------------
    # Índice variante → chave (mesmo rm)
    # ------------------------------------------------------------
    def add_alias(self, key: CacheKey, variante: str):
        with self._lock:
            self._aliases.setdefault((key[0], variante), key)

    def find_alias(self, rm_key: str, variante: str) -> Optional[CacheKey]:
        with self._lock:
            return self._aliases.get((rm_key, variante))

    def __len__(self):
        with self._lock:
            return len(self._entries)


# ============================================================
# 🧠 Cache de resolução
# ============================================================
class ResolutionCache:
    """
    Cache (rm, endereço normalizado) → ParsedAddress + histórico.

      - no máximo UMA resolução em andamento por chave: chamadores
        concorrentes da mesma chave aguardam o Future do primeiro
      - leituras no store acontecem fora do lock; o lock só protege
        o registro de resoluções em andamento
      - TTL expirado → revalidação preguiçosa; a entrada e o histórico
        nunca são removidos
      - resultados unresolved também são cacheados
      - variantes do histórico ficam indexadas: um endereço já visto
        como variante de outra chave do mesmo rm reaproveita a entrada
    """

    def __init__(
        self,
        store=None,
        ttl_seconds: float = 7 * 24 * 3600,
        clock: Callable[[], float] = time.time,
        stats: Optional[ResolutionStats] = None,
    ):
        self.store = store if store is not None else InMemoryResolutionStore()
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.stats = stats or ResolutionStats()

        self._inflight_lock = threading.Lock()
        self._inflight: Dict[CacheKey, Future] = {}

    @staticmethod
    def key(rm_name: Optional[str], address: Optional[str]) -> CacheKey:
        return normalize_rm(rm_name), normalize_for_cache(address)

    # ============================================================
    # 🔍 Leitura
    # ============================================================
    def _lookup(self, key: CacheKey) -> Optional[Tuple[CacheKey, CacheEntry]]:
        entry = self._safe_get(key)
        if entry is not None:
            return key, entry

        if not key[1]:
            return None
        outra = self.store.find_alias(key[0], key[1])
        if outra is None or outra == key:
            return None
        candidata = self._safe_get(outra)
        if candidata is None:
            return None
        logger.debug(f"[CACHE][ALIAS] '{key[1]}' encontrado no histórico de '{outra[1]}'")
        return outra, candidata

    def _safe_get(self, key: CacheKey) -> Optional[CacheEntry]:
        try:
            return self.store.get(key)
        except CacheCorruption as e:
            logger.warning(f"[CACHE][CORROMPIDO] {key} → histórico resetado | {e}")
            self.store.reset_history(key)
        try:
            return self.store.get(key)
        except CacheCorruption as e:
            # valor ilegível: tratado como miss, a próxima resolução sobrescreve
            logger.warning(f"[CACHE][CORROMPIDO] {key} → valor descartado (miss) | {e}")
            return None

    def _fresh(self, key: CacheKey) -> Tuple[Optional[Tuple[CacheKey, CacheEntry]], bool]:
        achado = self._lookup(key)
        fresco = achado is not None and achado[1].is_fresh(self.clock(), self.ttl_seconds)
        return achado, fresco

    def get(self, rm_name: str, address: str) -> Optional[Tuple[ParsedAddress, List[str]]]:
        """Valor fresco + histórico (mais novo primeiro), ou None (miss / expirado)."""
        achado, fresco = self._fresh(self.key(rm_name, address))
        if not fresco:
            return None
        chave, entry = achado
        return entry.value, self._history_of(chave, entry)

    def get_history(self, rm_name: str, address: str) -> List[str]:
        achado = self._lookup(self.key(rm_name, address))
        if achado is None:
            return []
        return self._history_of(*achado)

    def _history_of(self, chave: CacheKey, entry: CacheEntry) -> List[str]:
        try:
            return history_newest_first(entry.history)
        except CacheCorruption as e:
            logger.warning(f"[CACHE][CORROMPIDO] {chave} → histórico resetado | {e}")
            self.store.reset_history(chave)
            return []

    # ============================================================
    # 💾 Escrita
    # ============================================================
    def put(self, rm_name: str, address: str, parsed: ParsedAddress):
        chave = self.key(rm_name, address)
        self.store.put_value(chave, parsed, self.clock())
        self._append(chave, address)
        logger.debug(f"[CACHE][WRITE] {chave} → {parsed.source.value}")

    def _append(self, chave: CacheKey, address: Optional[str]):
        variante = (address or "").strip()
        if variante:
            self.store.append_history(chave, variante)
            self._indexar(chave, variante)

    def _indexar(self, chave: CacheKey, variante: str):
        normalizada = normalize_for_cache(variante)
        if normalizada and normalizada != chave[1]:
            self.store.add_alias(chave, normalizada)

    def seed(self, rm_name: str, address: str, parsed: ParsedAddress, history_raw=None):
        """Pré-carrega uma entrada (ex.: histórico vindo da planilha)."""
        chave = self.key(rm_name, address)
        self.store.put_value(chave, parsed, self.clock())
        brutos = history_raw if isinstance(history_raw, (list, tuple)) else [history_raw]
        try:
            itens = [p for bruto in brutos for p in split_history(bruto)]
        except CacheCorruption as e:
            logger.warning(f"[CACHE][SEED][CORROMPIDO] {chave} → histórico ignorado | {e}")
            itens = []
        self.store.reset_history(chave, itens)
        for item in itens:
            self._indexar(chave, item)

    # ============================================================
    # 🔒 Resolução com deduplicação de chamadas em andamento
    # ============================================================
    def _hit(self, achado: Tuple[CacheKey, CacheEntry], address: str, trace: str) -> ParsedAddress:
        chave_real, entry = achado
        self.stats.incr("cache_hit")
        self._append(chave_real, address)
        logger.debug(f"[{trace}][CACHE][HIT] {chave_real}")
        return entry.value

    def get_or_resolve(
        self,
        rm_name: str,
        address: str,
        resolver: Callable[[], ParsedAddress],
        trace: str = "CACHE",
    ) -> ParsedAddress:
        chave = self.key(rm_name, address)

        achado, fresco = self._fresh(chave)
        if fresco:
            return self._hit(achado, address, trace)

        with self._inflight_lock:
            futuro = self._inflight.get(chave)
            dono = futuro is None
            if dono:
                futuro = Future()
                self._inflight[chave] = futuro

        if not dono:
            self.stats.incr("cache_wait")
            logger.debug(f"[{trace}][CACHE][AGUARDANDO] {chave}")
            return futuro.result()

        try:
            # outra thread pode ter gravado entre a leitura e o registro
            achado, fresco = self._fresh(chave)
            if fresco:
                valor = self._hit(achado, address, trace)
            else:
                if achado is not None:
                    logger.info(f"[{trace}][CACHE][EXPIRADO] {chave} → revalidando")
                valor = resolver()
                self.put(rm_name, address, valor)
            futuro.set_result(valor)
            return valor
        except BaseException as e:
            futuro.set_exception(e)
            raise
        finally:
            with self._inflight_lock:
                self._inflight.pop(chave, None)

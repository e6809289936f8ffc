# ============================================================
# 📦 src/address_resolution/application/address_resolution_service.py
# ============================================================

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from address_resolution.domain.address_normalizer import fix_encoding
from address_resolution.domain.errors import ValidationError
from address_resolution.domain.resolution_stats import ResolutionStats
from address_resolution.domain.resolution_strategies import ResolutionPipeline
from address_resolution.entities.parsed_address import ParsedAddress
from address_resolution.infrastructure.resolution_cache import ResolutionCache


class AddressResolutionService:
    """
    Serviço de resolução de endereços

    Ordem:
      1. Cache (rm, endereço normalizado) fresco → retorna
      2. Pipeline de estágios (pode chamar o geocoder)
      3. Grava no cache + histórico

    Nunca levanta para o chamador do lote: qualquer falha vira unresolved.
    """

    def __init__(
        self,
        pipeline: ResolutionPipeline,
        cache: ResolutionCache,
        max_workers: int = 10,
        stats: Optional[ResolutionStats] = None,
    ):
        self.pipeline = pipeline
        self.cache = cache
        self.max_workers = max_workers
        self.stats = stats or pipeline.stats

        self._executor_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    # ============================================================
    # 🌍 Resolução unitária
    # ============================================================
    def resolve(self, rm_name: Optional[str], address: Optional[str], timeout: Optional[float] = None) -> ParsedAddress:
        """
        Com timeout: o cálculo continua em background e popula o cache,
        mas o chamador recebe TimeoutError.
        """
        if timeout is None:
            return self._resolve_one(rm_name, address)
        return self.resolve_async(rm_name, address).result(timeout=timeout)

    def resolve_async(self, rm_name: Optional[str], address: Optional[str]) -> Future:
        """
        Future de entrega. cancel() só descarta o resultado para este
        chamador; a resolução em andamento termina e fica no cache.
        """
        entrega: Future = Future()
        interno = self._get_executor().submit(self._resolve_one, rm_name, address)

        def _repassar(f: Future):
            if not entrega.set_running_or_notify_cancel():
                logger.debug(f"[RESOLVE][CANCELADO] rm={rm_name} endereço descartado para o chamador")
                return
            exc = f.exception()
            if exc is not None:
                entrega.set_exception(exc)
            else:
                entrega.set_result(f.result())

        interno.add_done_callback(_repassar)
        return entrega

    def _resolve_one(self, rm_name: Optional[str], address: Optional[str]) -> ParsedAddress:
        trace = f"GEO-{int(time.time() * 1000)}"
        self.stats.incr("total")

        endereco = fix_encoding(address) if isinstance(address, str) else address
        if not endereco or not str(endereco).strip():
            logger.warning(f"[{trace}][FALHA] Endereço vazio (rm={rm_name})")
            self.stats.incr("unknown")
            return ParsedAddress.unresolved()

        logger.debug(f"[{trace}][INICIO] rm={rm_name} | RAW={endereco}")
        try:
            return self.cache.get_or_resolve(
                rm_name,
                endereco,
                lambda: self.pipeline.resolve(endereco, trace=trace),
                trace=trace,
            )
        except Exception as e:
            logger.error(f"[{trace}][ERRO] rm={rm_name} endereço='{endereco}' | {e}", exc_info=True)
            return ParsedAddress.unresolved()

    # ============================================================
    # 📜 Histórico
    # ============================================================
    def history(self, rm_name: Optional[str], address: Optional[str]) -> List[str]:
        if not rm_name or not str(rm_name).strip():
            raise ValidationError("parâmetro 'rm' é obrigatório")
        if not address or not str(address).strip():
            raise ValidationError("parâmetro 'address' é obrigatório")
        return self.cache.get_history(rm_name, address)

    # ============================================================
    # ⚡ Execução em lote (barreira: retorna só após todas terminarem)
    # ============================================================
    def resolve_batch(self, entradas: Sequence[Tuple[Optional[str], Optional[str]]]) -> Dict[int, ParsedAddress]:
        if not entradas:
            return {}

        logger.info(f"[BATCH][INICIO] {len(entradas)} endereços | workers={self.max_workers}")
        resultados: Dict[int, ParsedAddress] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futuros = {
                executor.submit(self._resolve_one, rm, endereco): idx
                for idx, (rm, endereco) in enumerate(entradas)
            }
            for futuro in as_completed(futuros):
                idx = futuros[futuro]
                try:
                    resultados[idx] = futuro.result()
                except Exception as e:
                    logger.error(f"[BATCH][ERRO][idx={idx}] erro={e}", exc_info=True)
                    resultados[idx] = ParsedAddress.unresolved()

        logger.info("[BATCH][FIM]")
        return resultados

    def exibir_resumo_logs(self):
        self.stats.exibir_resumo_logs()

    # ------------------------------------------------------------
    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="resolve"
                )
            return self._executor

    def shutdown(self):
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

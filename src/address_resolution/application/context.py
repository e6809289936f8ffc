# ============================================================
# 📦 src/address_resolution/application/context.py
# ============================================================

import threading
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from address_resolution.application.address_resolution_service import AddressResolutionService
from address_resolution.config.settings import Settings
from address_resolution.domain.geo_reference_index import GeoReferenceIndex
from address_resolution.domain.resolution_stats import ResolutionStats
from address_resolution.domain.resolution_strategies import ResolutionPipeline
from address_resolution.infrastructure.geocoder_adapter import GeocoderAdapter, NominatimProvider
from address_resolution.infrastructure.resolution_cache import ResolutionCache


@dataclass
class ResolutionContext:
    """
    Estado compartilhado do processo (índice, cache, estatísticas).
    Criado UMA vez por processo e passado por referência para quem
    precisar; nunca é resetado implicitamente.
    """

    settings: Settings
    stats: ResolutionStats
    index: GeoReferenceIndex
    geocoder: GeocoderAdapter
    cache: ResolutionCache
    service: AddressResolutionService


def build_context(settings: Optional[Settings] = None, provider=None, store=None) -> ResolutionContext:
    settings = settings or Settings.from_env()
    stats = ResolutionStats()

    if provider is None:
        provider = NominatimProvider(
            base_url=settings.nominatim_url,
            user_agent=settings.geocoder_user_agent,
            timeout=settings.geocoder_timeout,
            limit=settings.geocoder_limit,
            country_codes=settings.country_codes,
        )
    geocoder = GeocoderAdapter(
        provider,
        max_retries=1,
        retry_delay=settings.geocoder_retry_delay,
        min_interval=settings.geocoder_min_interval,
        stats=stats,
    )

    if store is None and settings.cache_backend == "redis":
        from address_resolution.infrastructure.redis_store import RedisResolutionStore

        store = RedisResolutionStore.from_url(settings.redis_url)

    cache = ResolutionCache(store=store, ttl_seconds=settings.cache_ttl_seconds, stats=stats)
    index = GeoReferenceIndex.from_defaults()
    pipeline = ResolutionPipeline(index, geocoder, stats=stats)
    service = AddressResolutionService(pipeline, cache, max_workers=settings.max_workers, stats=stats)

    logger.info(
        f"🧩 Contexto de resolução criado | geocoder={settings.nominatim_url} | "
        f"cache={settings.cache_backend} | ttl={settings.cache_ttl_seconds}s | workers={settings.max_workers}"
    )
    return ResolutionContext(settings, stats, index, geocoder, cache, service)


# ============================================================
# 🔒 Instância única do processo (API / worker)
# ============================================================
_lock = threading.Lock()
_context: Optional[ResolutionContext] = None


def get_context() -> ResolutionContext:
    global _context
    with _lock:
        if _context is None:
            _context = build_context()
        return _context


def set_context(context: Optional[ResolutionContext]):
    """Substitui a instância do processo (testes / bootstrap explícito)."""
    global _context
    with _lock:
        _context = context

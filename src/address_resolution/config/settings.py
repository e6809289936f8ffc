# ============================================================
# 📦 src/address_resolution/config/settings.py
# ============================================================

import os
from dataclasses import dataclass


def _env_float(nome: str, padrao: float) -> float:
    valor = os.getenv(nome)
    if valor is None or not valor.strip():
        return padrao
    return float(valor.replace(",", "."))


def _env_int(nome: str, padrao: int) -> int:
    valor = os.getenv(nome)
    if valor is None or not valor.strip():
        return padrao
    return int(valor)


@dataclass
class Settings:
    """
    Configuração do processo (lida do ambiente / .env).
    load_dotenv() deve ser chamado pelo entry point ANTES de from_env().
    """

    nominatim_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "RMPotential-Geo-Analysis/1.0 (address-resolution)"
    geocoder_timeout: float = 5.0
    geocoder_min_interval: float = 1.0
    geocoder_retry_delay: float = 0.8
    geocoder_limit: int = 5
    country_codes: str = "ru"

    cache_ttl_seconds: float = 7 * 24 * 3600
    cache_backend: str = "memory"
    redis_url: str = "redis://redis:6379/0"

    max_workers: int = 10

    sheets_data_dir: str = "data/sheets"
    output_dir: str = "output/reports"
    potential_base_uplift: float = 1.15

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            nominatim_url=os.getenv("NOMINATIM_URL", cls.nominatim_url).rstrip("/"),
            geocoder_user_agent=os.getenv("GEOCODER_USER_AGENT", cls.geocoder_user_agent),
            geocoder_timeout=_env_float("GEOCODER_TIMEOUT", cls.geocoder_timeout),
            geocoder_min_interval=_env_float("GEOCODER_MIN_INTERVAL", cls.geocoder_min_interval),
            geocoder_retry_delay=_env_float("GEOCODER_RETRY_DELAY", cls.geocoder_retry_delay),
            geocoder_limit=_env_int("GEOCODER_LIMIT", cls.geocoder_limit),
            country_codes=os.getenv("GEOCODER_COUNTRY_CODES", cls.country_codes),
            cache_ttl_seconds=_env_float("CACHE_TTL_SECONDS", cls.cache_ttl_seconds),
            cache_backend=os.getenv("CACHE_BACKEND", cls.cache_backend).strip().lower(),
            redis_url=os.getenv("REDIS_URL", cls.redis_url),
            max_workers=_env_int("RESOLUTION_MAX_WORKERS", cls.max_workers),
            sheets_data_dir=os.getenv("SHEETS_DATA_DIR", cls.sheets_data_dir),
            output_dir=os.getenv("OUTPUT_DIR", cls.output_dir),
            potential_base_uplift=_env_float("POTENTIAL_BASE_UPLIFT", cls.potential_base_uplift),
        )

# ============================================================
# 📦 src/address_resolution/infrastructure/geocoder_adapter.py
# ============================================================

import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from geopy.distance import geodesic
from loguru import logger

from address_resolution.domain.errors import PermanentUpstreamError, TransientUpstreamError
from address_resolution.domain.resolution_stats import ResolutionStats


# ============================================================
# 🧾 Consulta e candidatos
# ============================================================
@dataclass(frozen=True)
class GeocodeQuery:
    q: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postalcode: Optional[str] = None

    def params(self) -> Dict[str, str]:
        if self.q is not None:
            return {"q": self.q}
        campos = {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "postalcode": self.postalcode,
        }
        return {k: v for k, v in campos.items() if v}

    def describe(self) -> str:
        return " | ".join(f"{k}={v}" for k, v in self.params().items())


@dataclass(frozen=True)
class GeocodeCandidate:
    lat: float
    lon: float
    display_name: str
    city: Optional[str] = None
    region: Optional[str] = None
    road: Optional[str] = None
    house_number: Optional[str] = None
    postcode: Optional[str] = None

    @classmethod
    def from_nominatim(cls, item: Dict[str, Any]) -> "GeocodeCandidate":
        addr = item.get("address") or {}
        return cls(
            lat=float(item["lat"]),
            lon=float(item["lon"]),
            display_name=str(item.get("display_name") or ""),
            city=addr.get("city") or addr.get("town") or addr.get("village"),
            region=addr.get("state") or addr.get("region"),
            road=addr.get("road"),
            house_number=addr.get("house_number"),
            postcode=addr.get("postcode"),
        )


# ============================================================
# 🧠 Coordenadas genéricas (0,0 / centroide do país)
# ============================================================
_CENTROIDE_RUSSIA = (61.52401, 105.318756)


def coordenada_generica(lat: Optional[float], lon: Optional[float]) -> bool:
    if lat is None or lon is None:
        return True
    if abs(lat) < 0.0001 and abs(lon) < 0.0001:
        return True
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return True
    if geodesic((lat, lon), _CENTROIDE_RUSSIA).km < 50:
        return True
    return False


# ============================================================
# 🌍 Provedor: Nominatim /search
# ============================================================
class NominatimProvider:
    """
    Uma chamada HTTP por search(). Não faz retry: classifica o erro
    (Transient / Permanent) e deixa a política para o GeocoderAdapter.
    """

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout: float = 5.0,
        limit: int = 5,
        country_codes: str = "ru",
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.limit = limit
        self.country_codes = country_codes
        self.session = session or requests.Session()
        self.headers = {"User-Agent": user_agent}

    def search(self, query: GeocodeQuery) -> List[GeocodeCandidate]:
        params = {
            **query.params(),
            "format": "jsonv2",
            "addressdetails": 1,
            "limit": self.limit,
            "countrycodes": self.country_codes,
        }
        logger.debug(f"[NOMINATIM][REQ] {params}")

        try:
            r = self.session.get(
                f"{self.base_url}/search",
                params=params,
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransientUpstreamError(str(e), service="nominatim") from e

        if r.status_code == 429 or r.status_code >= 500:
            raise TransientUpstreamError(r.text[:200], status_code=r.status_code, service="nominatim")
        if r.status_code >= 400:
            raise PermanentUpstreamError(r.text[:200], status_code=r.status_code, service="nominatim")

        try:
            dados = r.json()
        except ValueError as e:
            raise PermanentUpstreamError(f"JSON inválido: {e}", status_code=r.status_code, service="nominatim") from e

        if not isinstance(dados, list):
            return []

        candidatos = []
        for item in dados:
            try:
                cand = GeocodeCandidate.from_nominatim(item)
            except (KeyError, TypeError, ValueError):
                continue
            if coordenada_generica(cand.lat, cand.lon):
                logger.warning(f"⚠️ Coordenada genérica descartada: {cand.display_name} → ({cand.lat}, {cand.lon})")
                continue
            candidatos.append(cand)
        return candidatos


# ============================================================
# 🔁 Adapter: retry limitado + rate limit
# ============================================================
class GeocoderAdapter:
    """
    Único ponto de I/O bloqueante do pipeline.
      - TransientUpstreamError → exatamente 1 retry, depois MISS
      - PermanentUpstreamError → MISS imediato
      - intervalo mínimo entre chamadas (rate limit do provedor)
    lookup() nunca levanta: None = falha, [] = zero candidatos.
    """

    def __init__(
        self,
        provider,
        max_retries: int = 1,
        retry_delay: float = 0.8,
        min_interval: float = 1.0,
        stats: Optional[ResolutionStats] = None,
    ):
        self.provider = provider
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.min_interval = min_interval
        self.stats = stats or ResolutionStats()

        self._throttle_lock = threading.Lock()
        self._ultima_chamada = 0.0

    def _throttle(self):
        if self.min_interval <= 0:
            return
        with self._throttle_lock:
            espera = self._ultima_chamada + self.min_interval - time.monotonic()
            if espera > 0:
                time.sleep(espera)
            self._ultima_chamada = time.monotonic()

    def lookup(self, query: GeocodeQuery, trace: str = "GEO") -> Optional[List[GeocodeCandidate]]:
        tentativa = 0
        while True:
            self._throttle()
            self.stats.incr("geocoder_calls")
            try:
                candidatos = self.provider.search(query)
                logger.debug(f"[{trace}][GEOCODER][OK] {query.describe()} → {len(candidatos)} candidato(s)")
                return candidatos

            except TransientUpstreamError as e:
                tentativa += 1
                if tentativa > self.max_retries:
                    self.stats.incr("geocoder_falha")
                    logger.warning(f"[{trace}][GEOCODER][MISS] {query.describe()} | {e} (após {self.max_retries} retry)")
                    return None
                self.stats.incr("geocoder_retry")
                logger.warning(f"[{trace}][GEOCODER][RETRY] tentativa {tentativa}/{self.max_retries} | {e}")
                if self.retry_delay > 0:
                    time.sleep(self.retry_delay)

            except PermanentUpstreamError as e:
                self.stats.incr("geocoder_falha")
                logger.warning(f"[{trace}][GEOCODER][PERMANENTE] {query.describe()} | {e}")
                return None

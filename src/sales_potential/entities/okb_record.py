# ============================================================
# 📦 src/sales_potential/entities/okb_record.py
# ============================================================

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from address_resolution.config.ru_geo import CITY_TO_REGION
from address_resolution.domain.address_normalizer import normalize_for_cache, normalize_geo_name
from address_resolution.domain.geo_reference_index import geography_key, standardize_region


# ============================================================
# 🔤 Cabeçalhos aceitos na base OKB (planilha de referência)
# ============================================================
OKB_HEADER_ALIASES = {
    "name": ("наименование", "название", "name", "клиент"),
    "legal_address": ("юридический адрес", "юр адрес", "адрес", "legal_address", "address"),
    "region": ("субъект", "регион", "область", "region"),
    "city": ("город", "населенный пункт", "city"),
    "activity": ("вид деятельности", "деятельность", "оквэд", "activity"),
    "status": ("статус", "status"),
    "lat": ("lat", "latitude", "широта"),
    "lon": ("lon", "lng", "longitude", "долгота"),
}

_STATUS_INATIVO = ("ликвид", "закрыт", "прекращ", "банкрот", "неактив", "не действ")
_FORMA_JURIDICA = re.compile(r"\b(?:ооо|оао|зао|пао|ао|ип|нко|ано)\b\.?", re.I)


def normalize_header_key(valor: Any) -> str:
    return re.sub(r"[\s ]+", " ", str(valor or "")).strip().lower().replace("ё", "е")


def normalize_client_name(nome: Optional[str]) -> str:
    """Nome sem forma jurídica (ООО, ИП...) e sem aspas, para comparar clientes."""
    if not nome:
        return ""
    s = str(nome).casefold().replace("ё", "е")
    s = re.sub(r"[\"'«»“”]", " ", s)
    s = _FORMA_JURIDICA.sub(" ", s)
    s = re.sub(r"[^0-9a-zа-я]+", " ", s)
    return " ".join(s.split())


def _parse_coord(valor: Any) -> Optional[float]:
    if valor is None:
        return None
    texto = str(valor).replace(",", ".").strip()
    if not texto:
        return None
    try:
        return float(texto)
    except ValueError:
        return None


@dataclass
class OKBRecord:
    """
    Registro da base de referência (OKB).
    Obrigatórios: name + (region ou city ou legal_address).
    """

    name: str
    legal_address: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    activity: Optional[str] = None
    status: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    def __post_init__(self):
        self.name = str(self.name or "").strip()
        if not self.name:
            raise ValueError("❌ OKB sem nome")

        for campo in ("legal_address", "region", "city", "activity", "status"):
            valor = getattr(self, campo)
            valor = str(valor).strip() if valor is not None else ""
            setattr(self, campo, valor or None)

        if not (self.region or self.city or self.legal_address):
            raise ValueError("❌ OKB sem região, cidade ou endereço")

        self.region = standardize_region(self.region) or CITY_TO_REGION.get(normalize_geo_name(self.city))

        # coordenadas fora do intervalo (ou 0) são descartadas
        lat, lon = _parse_coord(self.lat), _parse_coord(self.lon)
        if lat is None or lon is None or not (abs(lat) <= 90 and abs(lon) <= 180) or lat == 0:
            lat, lon = None, None
        self.lat, self.lon = lat, lon

    # ------------------------------------------------------------
    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "OKBRecord":
        chaves = {normalize_header_key(k): v for k, v in row.items()}
        dados: Dict[str, Any] = {}
        for campo, aliases in OKB_HEADER_ALIASES.items():
            for alias in aliases:
                valor = chaves.get(alias)
                if valor is not None and str(valor).strip() and str(valor).lower() != "nan":
                    dados[campo] = valor
                    break
        if "name" not in dados:
            raise ValueError("❌ OKB sem nome")
        return cls(**dados)

    @property
    def is_active(self) -> bool:
        if not self.status:
            return True
        status = self.status.casefold()
        return not any(marca in status for marca in _STATUS_INATIVO)

    @property
    def geo_key(self) -> Optional[str]:
        return geography_key(self.city, self.region)

    @property
    def region_key(self) -> Optional[str]:
        return geography_key(None, self.region)

    @property
    def name_key(self) -> str:
        return normalize_client_name(self.name)

    @property
    def address_key(self) -> str:
        return normalize_for_cache(self.legal_address)

# ============================================================
# 📦 src/address_resolution/entities/parsed_address.py
# ============================================================

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, List, Dict, Any


class ResolutionSource(str, Enum):
    EXPLICIT = "explicit"
    POSTAL = "postal"
    CITY_LOOKUP = "city_lookup"
    FUZZY = "fuzzy"
    UNKNOWN = "unknown"


class ResolutionStatus(str, Enum):
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


DEFAULT_COUNTRY = "Россия"


@dataclass
class ParsedAddress:
    """
    Endereço resolvido (registro geográfico normalizado).
    Sempre existe um ParsedAddress para qualquer entrada: o fallback
    universal é status=unresolved / source=unknown / confidence=0.
    """

    # ============================================================
    # Componentes do endereço
    # ============================================================
    country: str = DEFAULT_COUNTRY
    region: Optional[str] = None
    city: Optional[str] = None
    street: Optional[str] = None
    house: Optional[str] = None
    postal_code: Optional[str] = None

    # ============================================================
    # Coordenadas (somente com source != unknown e geocoder OK)
    # ============================================================
    lat: Optional[float] = None
    lon: Optional[float] = None

    # ============================================================
    # Metadados da resolução
    # ============================================================
    confidence: float = 0.0
    source: ResolutionSource = ResolutionSource.UNKNOWN
    ambiguous_candidates: List[str] = field(default_factory=list)
    status: ResolutionStatus = ResolutionStatus.UNRESOLVED

    def __post_init__(self):
        """Normaliza tipos logo após a criação da instância."""
        self.source = ResolutionSource(self.source)
        self.status = ResolutionStatus(self.status)

        if not 0.0 <= float(self.confidence) <= 1.0:
            raise ValueError(f"❌ confidence fora de [0, 1]: {self.confidence}")
        self.confidence = round(float(self.confidence), 4)

        if isinstance(self.lat, str) and self.lat.strip():
            self.lat = float(self.lat.replace(",", "."))
        if isinstance(self.lon, str) and self.lon.strip():
            self.lon = float(self.lon.replace(",", "."))

        if self.source == ResolutionSource.UNKNOWN:
            self.lat = None
            self.lon = None

    # ------------------------------------------------------------
    @classmethod
    def unresolved(cls, postal_code: Optional[str] = None) -> "ParsedAddress":
        return cls(postal_code=postal_code)

    @property
    def is_resolved(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    def geography_label(self) -> Optional[str]:
        """Cidade quando conhecida, senão região."""
        return self.city or self.region

    def describe(self) -> str:
        partes = [p for p in (self.region, self.city, self.street, self.house) if p]
        return ", ".join(partes) if partes else "—"

    # ------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["source"] = self.source.value
        d["status"] = self.status.value
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParsedAddress":
        campos = {
            "country", "region", "city", "street", "house", "postal_code",
            "lat", "lon", "confidence", "source", "ambiguous_candidates", "status",
        }
        kwargs = {k: v for k, v in data.items() if k in campos}
        kwargs["ambiguous_candidates"] = list(kwargs.get("ambiguous_candidates") or [])
        return cls(**kwargs)

# ============================================================
# 📦 src/sales_potential/entities/aggregated_row.py
# ============================================================

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

UNKNOWN_GEOGRAPHY = "unknown"


@dataclass
class AggregatedDataRow:
    """
    Grupo (rm, marca, geografia).
    growth_potential / growth_percentage são derivados: nunca armazenados.
    """

    rm: str
    brand: str
    geo_key: str
    city: Optional[str] = None
    region: Optional[str] = None
    fact: float = 0.0
    potential: float = 0.0
    clients: List[str] = field(default_factory=list)
    potential_clients: List[str] = field(default_factory=list)
    total_market: int = 0

    @property
    def key(self) -> str:
        return f"{self.rm}|{self.brand}|{self.geo_key}"

    @property
    def is_unknown_geography(self) -> bool:
        return self.geo_key == UNKNOWN_GEOGRAPHY

    @property
    def growth_potential(self) -> float:
        return max(self.potential - self.fact, 0.0)

    @property
    def growth_percentage(self) -> float:
        if self.fact <= 0:
            return 0.0
        return self.growth_potential / self.fact * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "rm": self.rm,
            "brand": self.brand,
            "geo_key": self.geo_key,
            "city": self.city,
            "region": self.region,
            "fact": round(self.fact, 3),
            "potential": round(self.potential, 3),
            "growth_potential": round(self.growth_potential, 3),
            "growth_percentage": round(self.growth_percentage, 2),
            "active_clients": len(self.clients),
            "potential_clients_count": len(self.potential_clients),
            "total_market": self.total_market,
            "clients": list(self.clients),
            "potential_clients": list(self.potential_clients),
        }

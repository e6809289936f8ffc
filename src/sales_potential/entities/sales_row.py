# ============================================================
# 📦 src/sales_potential/entities/sales_row.py
# ============================================================

from dataclasses import dataclass
from typing import Optional

from address_resolution.domain.geo_reference_index import geography_key
from address_resolution.entities.parsed_address import ParsedAddress

UNKNOWN_RM = "Unknown_RM"
DEFAULT_BRAND = "Без бренда"
DEFAULT_PACKAGING = "Не указана"
DEFAULT_CHANNEL = "Не определен"


@dataclass
class SalesRow:
    """Linha transacional (cliente × marca) já separada por marca."""

    rm: str
    brand: str
    fact: float
    address: Optional[str] = None
    client_name: Optional[str] = None
    packaging: str = DEFAULT_PACKAGING
    channel: str = DEFAULT_CHANNEL
    source_file: Optional[str] = None
    row_index: Optional[int] = None

    def __post_init__(self):
        self.rm = str(self.rm or "").strip() or UNKNOWN_RM
        self.brand = str(self.brand or "").strip() or DEFAULT_BRAND
        self.fact = float(self.fact or 0.0)
        if self.address is not None:
            self.address = str(self.address).strip() or None


@dataclass
class ResolvedSalesRow:
    row: SalesRow
    parsed: ParsedAddress

    @property
    def geo_key(self) -> Optional[str]:
        if not self.parsed.is_resolved:
            return None
        return geography_key(self.parsed.city, self.parsed.region)

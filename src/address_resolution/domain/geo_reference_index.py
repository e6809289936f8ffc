# ============================================================
# 📦 src/address_resolution/domain/geo_reference_index.py
# ============================================================

import re
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from address_resolution.config.ru_geo import (
    CITY_ALIASES,
    CITY_TO_REGION,
    POSTAL_CODES,
    POSTAL_PREFIXES,
    REGION_KEYWORD_MAP,
)
from address_resolution.domain.address_normalizer import normalize_geo_name, tokenize


@dataclass(frozen=True)
class GeoEntity:
    """Nome conhecido (cidade ou região) usado em CITY_LOOKUP / FUZZY."""

    key: str
    kind: str  # "city" | "region"
    city: Optional[str]
    region: Optional[str]

    @property
    def tokens(self) -> Tuple[str, ...]:
        return tuple(tokenize(self.key))

    @property
    def label(self) -> str:
        if self.city and self.region and self.city != self.region:
            return f"{self.city}, {self.region}"
        return self.city or self.region or self.key


_GENERICOS_REGIAO = {"область", "край", "округ", "автономный"}


@dataclass(frozen=True)
class PostalMatch:
    region: str
    city: Optional[str]
    specificity: float


def _title(key: str) -> str:
    return "-".join(
        " ".join(p[:1].upper() + p[1:] for p in parte.split(" "))
        for parte in key.split("-")
    ).replace("-На-", "-на-")


def standardize_region(valor: Optional[str]) -> Optional[str]:
    """
    Região canônica a partir de texto livre ("Орёл", "моск. обл.",
    "Респ. Татарстан"). Retorna None quando vazio.
    """
    if not valor or not str(valor).strip():
        return None

    chave = normalize_geo_name(valor).replace(".", " ")
    chave = " ".join(chave.split())

    if chave in ("орел", "orel"):
        return "Орловская область"
    if chave in CITY_TO_REGION and chave in ("москва", "санкт-петербург", "севастополь"):
        return CITY_TO_REGION[chave]

    for palavra, padrao in REGION_KEYWORD_MAP.items():
        if palavra in chave:
            return padrao

    chave = re.sub(r"\bобл\b", "область", chave)
    chave = re.sub(r"\bресп\b", "республика", chave)
    return " ".join(
        p if p in _GENERICOS_REGIAO else p[:1].upper() + p[1:]
        for p in chave.split(" ")
    )


def geography_key(city: Optional[str], region: Optional[str]) -> Optional[str]:
    """Chave de agrupamento: cidade (apelidos resolvidos) ou, sem cidade, a região padrão."""
    chave = normalize_geo_name(city)
    if chave:
        return CITY_ALIASES.get(chave, chave)
    regiao = standardize_region(region)
    return normalize_geo_name(regiao) if regiao else None


class GeoReferenceIndex:
    """
    Índice de nomes geográficos conhecidos.
    Construído uma vez por processo; estendido com a base OKB
    ANTES do lote. Leituras concorrentes são seguras (snapshot imutável).
    """

    def __init__(
        self,
        city_to_region: Dict[str, str],
        region_keywords: Dict[str, str],
        aliases: Dict[str, str],
        postal_prefixes: Dict[str, Tuple[str, Optional[str]]],
        postal_codes: Dict[str, Tuple[str, Optional[str]]],
    ):
        self._lock = threading.Lock()
        self._cities: Dict[str, GeoEntity] = {}
        self._regions: Dict[str, GeoEntity] = {}
        self.aliases = dict(aliases)
        self.region_keywords = dict(region_keywords)
        self.postal_prefixes = dict(postal_prefixes)
        self.postal_codes = dict(postal_codes)

        for chave, regiao in city_to_region.items():
            self._cities[chave] = GeoEntity(chave, "city", _title(chave), regiao)
        for regiao in set(city_to_region.values()) | set(region_keywords.values()):
            chave = normalize_geo_name(regiao)
            self._regions.setdefault(chave, GeoEntity(chave, "region", None, regiao))

    @classmethod
    def from_defaults(cls) -> "GeoReferenceIndex":
        return cls(CITY_TO_REGION, REGION_KEYWORD_MAP, CITY_ALIASES, POSTAL_PREFIXES, POSTAL_CODES)

    # ============================================================
    # 🔍 Consultas
    # ============================================================
    def city(self, nome: Optional[str]) -> Optional[GeoEntity]:
        chave = normalize_geo_name(nome)
        chave = self.aliases.get(chave, chave)
        return self._cities.get(chave)

    def region(self, nome: Optional[str]) -> Optional[GeoEntity]:
        chave = normalize_geo_name(nome)
        if chave in self._regions:
            return self._regions[chave]
        for palavra, padrao in self.region_keywords.items():
            if palavra in chave.split() or chave == palavra:
                return self._regions.get(normalize_geo_name(padrao))
        return None

    def postal(self, codigo: Optional[str]) -> Optional[PostalMatch]:
        """
        Especificidade:
          1.0 → índice exato conhecido
          0.8 → prefixo que identifica a cidade
          0.6 → prefixo que identifica só a região
        """
        if not codigo:
            return None
        if codigo in self.postal_codes:
            regiao, cidade = self.postal_codes[codigo]
            return PostalMatch(regiao, cidade, 1.0)
        if len(codigo) == 6 and codigo[:3] in self.postal_prefixes:
            regiao, cidade = self.postal_prefixes[codigo[:3]]
            return PostalMatch(regiao, cidade, 0.8 if cidade else 0.6)
        return None

    def entities(self) -> List[GeoEntity]:
        with self._lock:
            return list(self._cities.values()) + list(self._regions.values())

    def alias_entities(self) -> List[Tuple[str, GeoEntity]]:
        saida = []
        for alias, chave in self.aliases.items():
            ent = self._cities.get(chave)
            if ent:
                saida.append((alias, ent))
        return saida

    # ============================================================
    # ➕ Extensão com a base de referência (OKB)
    # ============================================================
    def extend(self, pares: Iterable[Tuple[Optional[str], Optional[str]]]) -> int:
        """Adiciona pares (cidade, região). Retorna quantos nomes novos entraram."""
        novos = 0
        with self._lock:
            cidades = dict(self._cities)
            regioes = dict(self._regions)
            for cidade, regiao in pares:
                regiao_padrao = standardize_region(regiao)
                if regiao_padrao:
                    chave_r = normalize_geo_name(regiao_padrao)
                    if chave_r not in regioes:
                        regioes[chave_r] = GeoEntity(chave_r, "region", None, regiao_padrao)
                        novos += 1
                chave_c = normalize_geo_name(cidade)
                if chave_c and len(chave_c) > 2 and chave_c not in cidades:
                    cidades[chave_c] = GeoEntity(
                        chave_c, "city", _title(chave_c),
                        regiao_padrao or CITY_TO_REGION.get(chave_c),
                    )
                    novos += 1
            self._cities = cidades
            self._regions = regioes

        if novos:
            logger.info(f"🗺️ [GEO_INDEX] {novos} nomes novos adicionados a partir da base OKB")
        return novos

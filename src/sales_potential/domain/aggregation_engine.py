# ============================================================
# 📦 src/sales_potential/domain/aggregation_engine.py
# ============================================================

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

import pandas as pd
from loguru import logger

from address_resolution.domain.address_normalizer import normalize_for_cache
from sales_potential.entities.aggregated_row import UNKNOWN_GEOGRAPHY, AggregatedDataRow
from sales_potential.entities.okb_record import OKBRecord, normalize_client_name
from sales_potential.entities.sales_row import ResolvedSalesRow


def _primeiro(serie: pd.Series) -> Optional[str]:
    valores = serie.dropna()
    return valores.iloc[0] if not valores.empty else None


class AggregationEngine:
    """
    Agrupa linhas resolvidas por (rm, marca, geografia) e estima o potencial:

        potential = fact × base_uplift + n_potenciais × fact médio por cliente

    n_potenciais = entradas ATIVAS da OKB na mesma geografia que ainda
    não são clientes do grupo. Linhas sem geografia vão para o grupo
    "unknown" do rm (nunca descartadas).
    """

    COLUNAS = ["rm", "brand", "geo_key", "city", "region", "fact", "client", "client_key", "address_key"]

    def __init__(self, reference: Iterable[OKBRecord], base_uplift: float = 1.15):
        self.base_uplift = base_uplift
        self._por_cidade: Dict[str, List[OKBRecord]] = defaultdict(list)
        self._por_regiao: Dict[str, List[OKBRecord]] = defaultdict(list)

        total = 0
        for rec in reference:
            total += 1
            if rec.city and rec.geo_key:
                self._por_cidade[rec.geo_key].append(rec)
            if rec.region_key:
                self._por_regiao[rec.region_key].append(rec)

        logger.info(
            f"📚 [AGREGACAO] referência: {total} registros | "
            f"{len(self._por_cidade)} cidades | {len(self._por_regiao)} regiões"
        )

    # ============================================================
    # 🧱 Linhas → DataFrame
    # ============================================================
    def _to_frame(self, rows: Iterable[ResolvedSalesRow]) -> pd.DataFrame:
        registros = []
        for r in rows:
            geo = r.geo_key
            cliente = r.row.client_name or r.row.address or ""
            registros.append({
                "rm": r.row.rm,
                "brand": r.row.brand,
                "geo_key": geo or UNKNOWN_GEOGRAPHY,
                "city": r.parsed.city if geo else None,
                "region": r.parsed.region if geo else None,
                "fact": float(r.row.fact),
                "client": cliente,
                "client_key": normalize_client_name(cliente),
                "address_key": normalize_for_cache(r.row.address),
            })
        return pd.DataFrame(registros, columns=self.COLUNAS)

    # ============================================================
    # 📊 Agregação
    # ============================================================
    def aggregate(self, rows: Iterable[ResolvedSalesRow]) -> List[AggregatedDataRow]:
        df = self._to_frame(rows)
        if df.empty:
            logger.warning("⚠️ [AGREGACAO] nenhuma linha para agregar")
            return []

        saida: List[AggregatedDataRow] = []
        for (rm, brand, geo_key), grupo in df.groupby(["rm", "brand", "geo_key"], sort=False):
            clientes = grupo[grupo["client_key"] != ""].drop_duplicates("client_key")
            linha = AggregatedDataRow(
                rm=rm,
                brand=brand,
                geo_key=geo_key,
                city=_primeiro(grupo["city"]),
                region=_primeiro(grupo["region"]),
                fact=float(grupo["fact"].sum()),
                clients=clientes["client"].tolist(),
            )
            self._calcular_potencial(linha, set(grupo["client_key"]), set(grupo["address_key"]))
            saida.append(linha)

        saida.sort(key=lambda r: (-r.growth_potential, r.key))

        desconhecidos = [r for r in saida if r.is_unknown_geography]
        logger.info(
            f"✅ [AGREGACAO] {len(df)} linhas → {len(saida)} grupos "
            f"({len(desconhecidos)} sem geografia, fact={sum(r.fact for r in desconhecidos):.2f})"
        )
        return saida

    def _calcular_potencial(self, linha: AggregatedDataRow, client_keys: set, address_keys: set):
        if linha.is_unknown_geography:
            linha.potential = linha.fact * self.base_uplift
            return

        candidatos = self._por_cidade.get(linha.geo_key, []) if linha.city else self._por_regiao.get(linha.geo_key, [])
        linha.total_market = len(candidatos)

        vistos = set()
        potenciais = []
        for rec in candidatos:
            if not rec.is_active or rec.name_key in vistos:
                continue
            if rec.name_key in client_keys or (rec.address_key and rec.address_key in address_keys):
                continue
            vistos.add(rec.name_key)
            potenciais.append(rec.name)

        linha.potential_clients = potenciais
        media = linha.fact / len(linha.clients) if linha.clients else 0.0
        linha.potential = linha.fact * self.base_uplift + len(potenciais) * media

    # ------------------------------------------------------------
    @staticmethod
    def fact_by_rm(linhas: Iterable[AggregatedDataRow]) -> Dict[str, float]:
        totais: Dict[str, float] = defaultdict(float)
        for linha in linhas:
            totais[linha.rm] += linha.fact
        return dict(totais)

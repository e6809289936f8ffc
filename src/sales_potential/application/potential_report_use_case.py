# ============================================================
# 📦 src/sales_potential/application/potential_report_use_case.py
# ============================================================

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import pandas as pd
from loguru import logger

from address_resolution.application.context import ResolutionContext
from address_resolution.domain.errors import UpstreamError
from sales_potential.domain.aggregation_engine import AggregationEngine
from sales_potential.domain.errors import ReferenceDataUnavailable
from sales_potential.domain.okb_validation_service import OKBValidationService
from sales_potential.domain.sales_row_parser import SalesRowParser
from sales_potential.entities.aggregated_row import AggregatedDataRow
from sales_potential.entities.sales_row import ResolvedSalesRow, SalesRow
from sales_potential.infrastructure.sheet_store import SheetStore, call_with_retry, iter_file_rows


@dataclass
class PotentialReport:
    year: int
    rows: List[AggregatedDataRow]
    total_sales_rows: int = 0
    unresolved_rows: int = 0
    okb_total: int = 0
    okb_invalid: pd.DataFrame = field(default_factory=pd.DataFrame)
    elapsed_seconds: float = 0.0

    def summary(self) -> dict:
        return {
            "year": self.year,
            "groups": len(self.rows),
            "sales_rows": self.total_sales_rows,
            "unresolved_rows": self.unresolved_rows,
            "okb_total": self.okb_total,
            "okb_invalid": int(len(self.okb_invalid)),
            "fact_total": round(sum(r.fact for r in self.rows), 3),
            "growth_potential_total": round(sum(r.growth_potential for r in self.rows), 3),
            "elapsed_seconds": round(self.elapsed_seconds, 2),
        }


class PotentialReportUseCase:
    """
    Caso de uso: relatório de potencial de crescimento de um ano.

      1. Base OKB (falha → ReferenceDataUnavailable, lote abortado)
      2. Índice geográfico estendido com cidades/regiões da OKB
      3. Planilhas de vendas do ano (paginadas)
      4. Resolução de endereços em lote (barreira)
      5. Agregação
    """

    def __init__(
        self,
        store: SheetStore,
        context: ResolutionContext,
        base_uplift: Optional[float] = None,
        page_size: int = 500,
        progress: Optional[Callable[[int, str], None]] = None,
    ):
        self.store = store
        self.context = context
        self.base_uplift = base_uplift if base_uplift is not None else context.settings.potential_base_uplift
        self.page_size = page_size
        self.progress = progress or (lambda pct, step: None)
        self.validator = OKBValidationService()

    # ============================================================
    # 📚 Base de referência
    # ============================================================
    def load_reference(self):
        try:
            raw = call_with_retry(self.store.get_okb_data, "get_okb_data")
        except UpstreamError as e:
            logger.error(f"❌ [OKB] falha ao carregar a base de referência: {e}")
            raise ReferenceDataUnavailable(f"base OKB indisponível: {e}") from e

        validos, invalidos = self.validator.validar(raw)
        novos = self.context.index.extend((r.city, r.region) for r in validos)
        logger.info(f"🗺️ [OKB] índice geográfico: +{novos} nomes")
        return validos, invalidos, len(raw)

    # ============================================================
    # 📄 Vendas
    # ============================================================
    def load_sales(self, year: int) -> List[SalesRow]:
        arquivos = call_with_retry(lambda: self.store.list_files_for_year(year), f"list_files_for_year({year})")
        logger.info(f"📄 [SALES] {len(arquivos)} arquivo(s) para {year}")

        linhas: List[SalesRow] = []
        parser = SalesRowParser()
        for arquivo in arquivos:
            parser.reset()
            antes = len(linhas)
            for offset, pagina in iter_file_rows(self.store, arquivo.id, self.page_size):
                linhas.extend(parser.parse_page(pagina, source_file=arquivo.name, offset=offset))
            linhas.extend(parser.finish(source_file=arquivo.name))
            logger.info(f"   {arquivo.name}: {len(linhas) - antes} linha(s)")

        if parser.rejeitados_rm:
            logger.warning(f"⚠️ [SALES] {parser.rejeitados_rm} valor(es) de RM inválidos → Unknown_RM")
        return linhas

    # ============================================================
    # 🚀 Execução
    # ============================================================
    def execute(self, year: int) -> PotentialReport:
        inicio = time.time()
        logger.info(f"🚀 [POTENCIAL] relatório {year}")

        self.progress(5, "Carregando base OKB")
        reference, okb_invalid, okb_total = self.load_reference()

        self.progress(20, "Lendo planilhas de vendas")
        linhas = self.load_sales(year)

        self.progress(40, f"Resolvendo {len(linhas)} endereços")
        resolvidos_idx = self.context.service.resolve_batch([(l.rm, l.address) for l in linhas])
        resolvidos = [ResolvedSalesRow(l, resolvidos_idx[i]) for i, l in enumerate(linhas)]
        self.context.service.exibir_resumo_logs()

        self.progress(80, "Agregando")
        engine = AggregationEngine(reference, base_uplift=self.base_uplift)
        grupos = engine.aggregate(resolvidos)

        report = PotentialReport(
            year=year,
            rows=grupos,
            total_sales_rows=len(linhas),
            unresolved_rows=sum(1 for r in resolvidos if not r.parsed.is_resolved),
            okb_total=okb_total,
            okb_invalid=okb_invalid,
            elapsed_seconds=time.time() - inicio,
        )
        self.progress(95, "Relatório calculado")
        logger.success(f"✅ [POTENCIAL] {report.summary()}")
        return report

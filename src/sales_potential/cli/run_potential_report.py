# ============================================================
# 📦 src/sales_potential/cli/run_potential_report.py
# ============================================================

import argparse
import sys
import uuid
from datetime import datetime

from dotenv import load_dotenv
from loguru import logger

from address_resolution.application.context import build_context
from address_resolution.config.settings import Settings
from address_resolution.logs.logging_config import setup_logging
from sales_potential.application.potential_report_use_case import PotentialReportUseCase
from sales_potential.domain.errors import ReferenceDataUnavailable
from sales_potential.infrastructure.sheet_store import LocalSheetStore
from sales_potential.reporting.export_potential_report import exportar_relatorio


def _enfileirar(args) -> int:
    from sales_potential.infrastructure.queue_factory import fila_potencial
    from sales_potential.jobs import processar_relatorio_potencial

    job_id = f"potential-{args.year}-{datetime.utcnow().strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:6]}"
    job = fila_potencial().enqueue(
        processar_relatorio_potencial,
        args.year, args.data_dir, args.output_dir,
        job_id=job_id,
        result_ttl=86400,
        failure_ttl=86400,
    )
    job.meta.update({"progress": 0, "status": "queued", "step": "Enfileirado"})
    job.save_meta()

    print("\n=== 🚀 JOB DE POTENCIAL ENFILEIRADO ===")
    print(f"Ano: {args.year}")
    print(f"Job ID: {job.id}")
    print("=======================================")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Relatório de potencial de crescimento por RM / marca / geografia")
    parser.add_argument("--year", type=int, required=True, help="Ano das planilhas de vendas (ex: 2024)")
    parser.add_argument("--data_dir", default=None, help="Pasta com okb.* e <ano>/ (default: SHEETS_DATA_DIR)")
    parser.add_argument("--output_dir", default=None, help="Pasta de saída (default: OUTPUT_DIR)")
    parser.add_argument("--uplift", type=float, default=None, help="Fator base do potencial (default: POTENTIAL_BASE_UPLIFT)")
    parser.add_argument("--workers", type=int, default=None, help="Workers de resolução de endereços")
    parser.add_argument("--enqueue", action="store_true", help="Enfileira no RQ em vez de executar localmente")
    args = parser.parse_args(argv)

    load_dotenv()
    setup_logging()

    if args.enqueue:
        return _enfileirar(args)

    settings = Settings.from_env()
    if args.workers:
        settings.max_workers = args.workers

    ctx = build_context(settings)
    store = LocalSheetStore(args.data_dir or settings.sheets_data_dir)
    use_case = PotentialReportUseCase(store, ctx, base_uplift=args.uplift)

    try:
        report = use_case.execute(args.year)
    except ReferenceDataUnavailable as e:
        logger.error(f"❌ Relatório abortado: {e}")
        return 2
    finally:
        ctx.service.shutdown()

    arquivos = exportar_relatorio(report, args.output_dir or settings.output_dir)

    print("\n=== 📊 POTENCIAL DE CRESCIMENTO ===")
    for chave, valor in report.summary().items():
        print(f"{chave:<24}: {valor}")
    for formato, caminho in arquivos.items():
        print(f"📂 {formato}: {caminho}")
    print("===================================")
    return 0


if __name__ == "__main__":
    sys.exit(main())

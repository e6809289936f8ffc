# ============================================================
# 📦 src/sales_potential/jobs.py
# ============================================================

from typing import Optional

from loguru import logger
from rq import get_current_job

from address_resolution.application.context import get_context
from sales_potential.application.potential_report_use_case import PotentialReportUseCase
from sales_potential.domain.errors import ReferenceDataUnavailable
from sales_potential.infrastructure.sheet_store import LocalSheetStore
from sales_potential.reporting.export_potential_report import exportar_relatorio


def _atualizar_meta(job, progress: int, step: str, status: Optional[str] = None):
    if not job:
        return
    job.meta.update({"progress": int(progress), "step": step})
    if status:
        job.meta["status"] = status
    job.save_meta()


# ============================================================
# 🚀 Job RQ: relatório de potencial de um ano
# ============================================================
def processar_relatorio_potencial(year: int, data_dir: Optional[str] = None, output_dir: Optional[str] = None):
    """Executado pelo worker RQ (fila potential_reports). Progresso em job.meta."""
    job = get_current_job()
    job_id = job.id if job else "local"
    logger.info(f"🚀 Iniciando job {job_id} (ano={year})")

    ctx = get_context()
    store = LocalSheetStore(data_dir or ctx.settings.sheets_data_dir)

    _atualizar_meta(job, 0, "Iniciando", status="running")
    try:
        use_case = PotentialReportUseCase(
            store,
            ctx,
            progress=lambda pct, step: _atualizar_meta(job, pct, step),
        )
        report = use_case.execute(year)
        arquivos = exportar_relatorio(report, output_dir or ctx.settings.output_dir)

        _atualizar_meta(job, 100, "Finalizado", status="done")
        logger.success(f"✅ Job {job_id} finalizado")
        return {"status": "done", "job_id": job_id, "summary": report.summary(), "files": arquivos}

    except ReferenceDataUnavailable as e:
        logger.error(f"❌ Job {job_id}: base OKB indisponível | {e}")
        _atualizar_meta(job, 100, "Erro: base OKB indisponível", status="error")
        return {"status": "error", "job_id": job_id, "error": str(e)}

    except Exception as e:
        logger.error(f"💥 Erro no job {job_id}: {e}", exc_info=True)
        _atualizar_meta(job, 100, "Erro", status="error")
        return {"status": "error", "job_id": job_id, "error": str(e)}

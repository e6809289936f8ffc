# ==========================================================
# 📦 src/sales_potential/api/routes.py
# ==========================================================

import os
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
from rq.exceptions import NoSuchJobError
from rq.job import Job

from address_resolution.domain.errors import ValidationError
from sales_potential.infrastructure.queue_factory import fila_potencial, get_redis_conn
from sales_potential.jobs import processar_relatorio_potencial

router = APIRouter()


class PotentialJobRequest(BaseModel):
    year: int
    data_dir: Optional[str] = None
    output_dir: Optional[str] = None


# ==========================================================
# 🔌 Dependências (substituídas nos testes)
# ==========================================================
def get_queue():
    return fila_potencial()


def get_job_fetcher():
    conn = get_redis_conn()
    return lambda job_id: Job.fetch(job_id, connection=conn)


# ==========================================================
# 🚀 Enfileirar relatório
# ==========================================================
@router.post("/jobs", tags=["Potencial"])
def criar_job(body: PotentialJobRequest, queue=Depends(get_queue)):
    if not 2000 <= body.year <= 2100:
        raise ValidationError(f"ano inválido: {body.year}")

    job_id = f"potential-{body.year}-{datetime.utcnow().strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:6]}"
    job = queue.enqueue(
        processar_relatorio_potencial,
        body.year, body.data_dir, body.output_dir,
        job_id=job_id,
        job_timeout=int(os.getenv("POTENTIAL_JOB_TIMEOUT", 3600)),
        result_ttl=86400,
        failure_ttl=86400,
    )

    job.meta["progress"] = 0
    job.meta["status"] = "queued"
    job.meta["step"] = "Job enfileirado e aguardando execução"
    job.save_meta()

    logger.success(f"📤 Job de potencial enfileirado: {job.id}")
    return {"status": "queued", "job_id": job.id, "year": body.year}


# ==========================================================
# 📊 Status do job
# ==========================================================
@router.get("/jobs/{job_id}", tags=["Potencial"])
def status_job(job_id: str, fetch_job=Depends(get_job_fetcher)):
    try:
        job = fetch_job(job_id)
    except NoSuchJobError:
        return JSONResponse(status_code=404, content={"error": f"job {job_id} não encontrado"})

    return {
        "job_id": job.id,
        "status": job.meta.get("status") or job.get_status(),
        "progress": job.meta.get("progress", 0),
        "step": job.meta.get("step", ""),
        "result": job.result if job.is_finished else None,
    }

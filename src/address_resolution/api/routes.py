# ==========================================================
# 📦 src/address_resolution/api/routes.py
# ==========================================================

from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from loguru import logger
from pydantic import BaseModel

from address_resolution.api.dependencies import get_resolution_context
from address_resolution.application.context import ResolutionContext
from address_resolution.domain.errors import ValidationError
from address_resolution.infrastructure.geocoder_adapter import GeocodeQuery

router = APIRouter()


class ResolveRequest(BaseModel):
    rm: Optional[str] = None
    address: str


class ResolveBatchRequest(BaseModel):
    items: List[ResolveRequest]


# ==========================================================
# 🧠 Health check
# ==========================================================
@router.get("/health", tags=["Status"])
def health_check(ctx: ResolutionContext = Depends(get_resolution_context)):
    return {"status": "ok", "message": "Address resolution API saudável 🧩", "stats": ctx.stats.snapshot()}


# ==========================================================
# 📜 Histórico de resoluções (mais novo primeiro)
# ==========================================================
@router.get("/history", tags=["Endereços"])
def get_history(
    rm: str = Query(...),
    address: str = Query(...),
    ctx: ResolutionContext = Depends(get_resolution_context),
):
    history = ctx.service.history(rm, address)
    logger.info(f"📜 Histórico consultado rm={rm} → {len(history)} item(ns)")
    return {"rm": rm, "address": address, "history": history}


# ==========================================================
# 🌍 Resolver endereço(s)
# ==========================================================
@router.post("/resolve", tags=["Endereços"])
def resolve_address(body: ResolveRequest, ctx: ResolutionContext = Depends(get_resolution_context)):
    if not body.address.strip():
        raise ValidationError("campo 'address' não pode ser vazio")
    parsed = ctx.service.resolve(body.rm, body.address)
    return {"rm": body.rm, "address": body.address, "result": parsed.to_dict()}


@router.post("/resolve/batch", tags=["Endereços"])
def resolve_batch(body: ResolveBatchRequest, ctx: ResolutionContext = Depends(get_resolution_context)):
    if not body.items:
        raise ValidationError("lista 'items' vazia")
    resultados = ctx.service.resolve_batch([(i.rm, i.address) for i in body.items])
    return {
        "total": len(body.items),
        "results": [
            {"rm": item.rm, "address": item.address, "result": resultados[idx].to_dict()}
            for idx, item in enumerate(body.items)
        ],
    }


# ==========================================================
# 🔎 Proxy de busca no geocoder (sem retry, erro repassado)
# ==========================================================
@router.get("/geocode", tags=["Endereços"])
def geocode(q: str = Query(...), ctx: ResolutionContext = Depends(get_resolution_context)):
    if not q.strip():
        raise ValidationError("parâmetro 'q' é obrigatório")
    candidatos = ctx.geocoder.provider.search(GeocodeQuery(q=q.strip()))
    return {"query": q, "total": len(candidatos), "results": [asdict(c) for c in candidatos]}

# ==========================================================
# 📦 src/address_resolution/api/middleware.py
# ==========================================================

import json

import numpy as np
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from address_resolution.domain.errors import ResolutionError, UpstreamError, ValidationError


def _clean(obj):
    if isinstance(obj, dict):
        return {k: _clean(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_clean(i) for i in obj]
    if isinstance(obj, float) and (np.isnan(obj) or np.isinf(obj)):
        return None
    return obj


# ==========================================================
# 🧹 Saneamento JSON (NaN / inf → null)
# ==========================================================
async def sanitize_json_response(request: Request, call_next):
    response = await call_next(request)

    if "application/json" in response.headers.get("content-type", ""):
        raw_body = b"".join([chunk async for chunk in response.body_iterator])
        try:
            content = json.loads(raw_body)
        except ValueError:
            logger.warning(f"[API] corpo JSON inválido em {request.url.path}")
            return JSONResponse(content={"error": "resposta inválida"}, status_code=500)
        return JSONResponse(content=_clean(content), status_code=response.status_code)

    return response


# ==========================================================
# ❌ Erros de fronteira → {"error": ...}
# ==========================================================
def register_error_handlers(app: FastAPI):
    @app.exception_handler(RequestValidationError)
    async def _parametros_invalidos(request: Request, exc: RequestValidationError):
        campos = [".".join(str(p) for p in e.get("loc", []) if p not in ("query", "body")) for e in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"error": f"parâmetros ausentes ou inválidos: {', '.join(c for c in campos if c)}"},
        )

    @app.exception_handler(ValidationError)
    async def _validacao(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(UpstreamError)
    async def _upstream(request: Request, exc: UpstreamError):
        logger.error(f"[API][UPSTREAM] {request.url.path} | {exc}")
        return JSONResponse(
            status_code=502,
            content={
                "error": str(exc),
                "service": exc.service,
                "upstream_status": exc.status_code,
            },
        )

    @app.exception_handler(ResolutionError)
    async def _resolucao(request: Request, exc: ResolutionError):
        logger.error(f"[API][ERRO] {request.url.path} | {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})


def setup_app(app: FastAPI):
    app.middleware("http")(sanitize_json_response)
    register_error_handlers(app)

# ==========================================================
# 📦 src/sales_potential/api/potential_api.py
# ==========================================================

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from address_resolution.api.middleware import setup_app
from address_resolution.api.routes import router as address_router
from address_resolution.logs.logging_config import setup_logging
from sales_potential.api.routes import router as potential_router

load_dotenv()
setup_logging()

app = FastAPI(
    title="RM Potential API",
    description="Resolução de endereços + relatório de potencial de crescimento por RM",
    version="1.0.0",
    openapi_url="/openapi.json",
    docs_url="/docs",
)

# ==========================================================
# 🌍 CORS
# ==========================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_app(app)

# ==========================================================
# 🔀 Rotas principais
# ==========================================================
app.include_router(address_router, prefix="/address")
app.include_router(potential_router, prefix="/potential")


@app.get("/", tags=["Status"])
def root():
    return {"status": "RM Potential API online 🚀"}


@app.get("/health", tags=["Status"])
def health():
    return {"status": "ok"}


# ==========================================================
# 🚀 Execução standalone (dev)
# ==========================================================
if __name__ == "__main__":
    uvicorn.run("sales_potential.api.potential_api:app", host="0.0.0.0", port=8000)

# ============================================================
# 📦 src/sales_potential/domain/okb_validation_service.py
# ============================================================

from typing import Any, Iterable, List, Mapping, Tuple

import pandas as pd
from loguru import logger

from sales_potential.entities.okb_record import OKBRecord


class OKBValidationService:
    """
    Validação da base OKB na fronteira de ingestão.
    Retorna registros válidos + DataFrame de inválidos (com motivo).
    """

    def validar(self, rows: Iterable[Mapping[str, Any]]) -> Tuple[List[OKBRecord], pd.DataFrame]:
        validos: List[OKBRecord] = []
        invalidos = []

        for idx, row in enumerate(rows):
            if not any(str(v).strip() for v in row.values() if v is not None):
                continue
            try:
                validos.append(OKBRecord.from_row(row))
            except ValueError as e:
                invalidos.append({**dict(row), "linha": idx, "motivo_invalidade": str(e).replace("❌ ", "")})

        df_invalidos = pd.DataFrame(invalidos)
        if invalidos:
            logger.warning(f"⚠️ [OKB] {len(invalidos)} registro(s) rejeitado(s) por campos obrigatórios faltando.")
        logger.info(f"✅ [OKB] {len(validos)} registro(s) válidos.")

        return validos, df_invalidos

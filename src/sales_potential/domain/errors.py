# ============================================================
# 📦 src/sales_potential/domain/errors.py
# ============================================================

from address_resolution.domain.errors import ResolutionError


class ReferenceDataUnavailable(ResolutionError):
    """Base OKB não carregou: o lote inteiro é abortado, sem saída parcial."""

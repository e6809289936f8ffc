# ============================================================
# 📦 src/address_resolution/domain/errors.py
# ============================================================

from typing import Optional


class ResolutionError(Exception):
    """Base de todos os erros do pipeline de resolução."""


class ValidationError(ResolutionError):
    """Entrada ausente ou malformada. Nunca é retentada."""


class UpstreamError(ResolutionError):
    def __init__(self, message: str, status_code: Optional[int] = None, service: str = "upstream"):
        super().__init__(message)
        self.status_code = status_code
        self.service = service

    def __str__(self):
        base = super().__str__()
        if self.status_code is not None:
            return f"[{self.service}][HTTP {self.status_code}] {base}"
        return f"[{self.service}] {base}"


class TransientUpstreamError(UpstreamError):
    """Timeout / 5xx / 429: retentado uma vez e depois vira MISS."""


class PermanentUpstreamError(UpstreamError):
    """4xx que não é rate-limit: falha do estágio, sem retry."""


class CacheCorruption(ResolutionError):
    """Histórico armazenado malformado. É resetado, nunca propagado."""

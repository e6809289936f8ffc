# ==========================================================
# 📦 src/address_resolution/api/dependencies.py
# ==========================================================

from address_resolution.application.context import ResolutionContext, get_context


def get_resolution_context() -> ResolutionContext:
    """Contexto único do processo (sobrescrito via dependency_overrides nos testes)."""
    return get_context()

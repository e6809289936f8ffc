# ============================================================
# 📦 src/sales_potential/infrastructure/sheet_store.py
# ============================================================

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol, Tuple, TypeVar

import pandas as pd
from loguru import logger

from address_resolution.domain.errors import PermanentUpstreamError, TransientUpstreamError

T = TypeVar("T")


@dataclass(frozen=True)
class SheetFile:
    id: str
    name: str
    year: int


@dataclass
class SheetPage:
    rows: List[List[Any]] = field(default_factory=list)
    has_more: bool = False


class SheetStore(Protocol):
    def get_okb_data(self) -> List[Dict[str, Any]]: ...

    def list_files_for_year(self, year: int) -> List[SheetFile]: ...

    def fetch_rows(self, file_id: str, offset: int, limit: int) -> SheetPage: ...


# ============================================================
# 🔁 Retry das chamadas à planilha (1 retry em erro transitório)
# ============================================================
def call_with_retry(fn: Callable[[], T], descricao: str, tentativas: int = 2, espera: float = 1.0) -> T:
    for tentativa in range(1, tentativas + 1):
        try:
            return fn()
        except TransientUpstreamError as e:
            if tentativa >= tentativas:
                raise
            logger.warning(f"[SHEETS][RETRY] {descricao} tentativa {tentativa}/{tentativas} | {e}")
            if espera > 0:
                time.sleep(espera)
    raise RuntimeError("inalcançável")


def iter_file_rows(store: SheetStore, file_id: str, page_size: int = 500) -> Iterator[Tuple[int, List[List[Any]]]]:
    """
    Percorre um arquivo página a página. Páginas curtas (menos linhas
    que o limite) com has_more=True são aceitas: o offset avança pelo
    que realmente veio. Página vazia encerra.
    """
    offset = 0
    while True:
        page = call_with_retry(lambda: store.fetch_rows(file_id, offset, page_size), f"fetch_rows({file_id}, {offset})")
        if page.rows:
            yield offset, page.rows
        if not page.has_more or not page.rows:
            break
        offset += len(page.rows)


# ============================================================
# 📁 Adapter local: exports CSV/XLSX em disco
# ============================================================
class LocalSheetStore:
    """
    <root>/okb.csv|okb.xlsx         → base de referência
    <root>/<ano>/**/*.csv|*.xlsx    → planilhas de vendas do ano
    """

    EXTENSOES = (".csv", ".xlsx")

    def __init__(self, root: str):
        self.root = Path(root)
        self._cache: Dict[str, pd.DataFrame] = {}

    # ------------------------------------------------------------
    @staticmethod
    def _detectar_separador(path: Path) -> str:
        with open(path, "r", encoding="utf-8-sig") as f:
            linha = f.readline()
            return ";" if ";" in linha else ","

    def _ler(self, path: Path, header) -> pd.DataFrame:
        if not path.exists():
            raise PermanentUpstreamError(f"arquivo não encontrado: {path}", status_code=404, service="sheets")
        try:
            if path.suffix.lower() == ".csv":
                df = pd.read_csv(
                    path,
                    sep=self._detectar_separador(path),
                    dtype=str,
                    header=header,
                    encoding="utf-8-sig",
                    keep_default_na=False,
                )
            else:
                df = pd.read_excel(path, dtype=str, header=header)
        except (OSError, pd.errors.ParserError, ValueError) as e:
            raise TransientUpstreamError(f"falha lendo {path.name}: {e}", service="sheets") from e

        return df.astype(object).where(pd.notnull(df), None)

    # ============================================================
    # 📚 OKB
    # ============================================================
    def get_okb_data(self) -> List[Dict[str, Any]]:
        for ext in self.EXTENSOES:
            path = self.root / f"okb{ext}"
            if path.exists():
                df = self._ler(path, header=0)
                df.columns = [str(c).strip() for c in df.columns]
                logger.info(f"📚 [SHEETS] OKB carregada de {path} ({len(df)} linhas)")
                return df.to_dict(orient="records")
        raise PermanentUpstreamError(f"base OKB não encontrada em {self.root}", status_code=404, service="sheets")

    # ============================================================
    # 📄 Arquivos de vendas
    # ============================================================
    def list_files_for_year(self, year: int) -> List[SheetFile]:
        pasta = self.root / str(year)
        if not pasta.is_dir():
            logger.warning(f"⚠️ [SHEETS] pasta do ano {year} inexistente: {pasta}")
            return []
        arquivos = sorted(
            p for p in pasta.rglob("*")
            if p.is_file() and p.suffix.lower() in self.EXTENSOES and not p.name.startswith("~$")
        )
        return [SheetFile(id=str(p.relative_to(self.root)), name=p.name, year=year) for p in arquivos]

    def fetch_rows(self, file_id: str, offset: int, limit: int) -> SheetPage:
        if file_id not in self._cache:
            self._cache[file_id] = self._ler(self.root / file_id, header=None)
        df = self._cache[file_id]

        fatia = df.iloc[offset: offset + limit]
        has_more = offset + limit < len(df)
        if not has_more:
            self._cache.pop(file_id, None)
        return SheetPage(rows=fatia.values.tolist(), has_more=has_more)

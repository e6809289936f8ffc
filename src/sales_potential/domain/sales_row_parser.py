# ============================================================
# 📦 src/sales_potential/domain/sales_row_parser.py
# ============================================================

import math
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from sales_potential.entities.sales_row import (
    DEFAULT_BRAND,
    DEFAULT_CHANNEL,
    DEFAULT_PACKAGING,
    UNKNOWN_RM,
    SalesRow,
)

# ============================================================
# 🔤 Cabeçalhos (comparados sem espaços / NBSP, minúsculos)
# ============================================================
RM_KEYS = ("рм", "региональныйменеджер")
BRAND_KEYS = ("торговаямарка", "бренд")
PACKAGING_KEYS = ("фасовка", "упаковка", "видупаковки")
CHANNEL_KEYS = ("каналпродаж", "типтт", "сегмент")
FACT_KEYS = ("вес", "количество", "факт", "объем", "продажи", "отгрузки", "кг", "тонн")

# valores da coluna RM que na verdade são descrição de produto
_RM_STOP_WORDS = (
    "нет специализации", "нет", "для ", "без ", "корм", "кошек", "собак", "стерилиз",
    "чувствител", "пород", "weight", "adult", "junior", "kitten", "puppy", "специализ",
    "продук", "товар",
)


def normalize_header_key(valor: Any) -> str:
    return re.sub(r"[\r\n\t\s ]", "", str(valor or "")).lower().replace("ё", "е")


def parse_clean_float(valor: Any) -> float:
    """'1 234,5' → 1234.5 ; vazio / inválido → 0."""
    if isinstance(valor, (int, float)):
        return 0.0 if isinstance(valor, float) and math.isnan(valor) else float(valor)
    if not valor:
        return 0.0
    texto = re.sub(r"[\s ]", "", str(valor)).replace(",", ".", 1)
    try:
        return float(texto)
    except ValueError:
        return 0.0


def is_valid_manager(valor: Any) -> bool:
    if not valor:
        return False
    v = str(valor).strip().lower()
    return len(v) >= 2 and not any(w in v for w in _RM_STOP_WORDS)


def _vazio(valor: Any) -> bool:
    if valor is None:
        return True
    if isinstance(valor, float) and math.isnan(valor):
        return True
    return not str(valor).strip()


class SalesRowParser:
    """
    Converte páginas cruas da planilha (lista de listas) em SalesRow.
    Os cabeçalhos detectados valem para as páginas seguintes do mesmo
    arquivo. Enquanto o cabeçalho não aparece, as linhas ficam pendentes
    (páginas curtas podem trazer só o título).
    """

    HEADER_SCAN_ROWS = 20

    def __init__(self):
        self.headers: Optional[List[str]] = None
        self.rejeitados_rm = 0
        self._pendentes: List[Sequence[Any]] = []
        self._offset_pendente = 0

    def reset(self):
        self.headers = None
        self._pendentes = []
        self._offset_pendente = 0

    # ============================================================
    # 🧭 Cabeçalho: primeira linha que contém "адрес"
    # ============================================================
    @staticmethod
    def detect_header(raw_rows: Sequence[Sequence[Any]]) -> Optional[int]:
        for i, row in enumerate(raw_rows):
            if any("адрес" in str(c or "").lower() for c in row):
                return i
        return None

    def parse_page(
        self,
        raw_rows: Sequence[Sequence[Any]],
        source_file: Optional[str] = None,
        offset: int = 0,
    ) -> List[SalesRow]:
        if not raw_rows:
            return []

        if self.headers:
            return self._parse_rows(raw_rows, source_file, offset)

        if not self._pendentes:
            self._offset_pendente = offset
        self._pendentes.extend(raw_rows)

        h = self.detect_header(self._pendentes)
        if h is None:
            if len(self._pendentes) < self.HEADER_SCAN_ROWS:
                return []
            h = 0
        return self._aplicar_cabecalho(h, source_file)

    def finish(self, source_file: Optional[str] = None) -> List[SalesRow]:
        """Fim do arquivo sem cabeçalho reconhecido: a primeira linha vira cabeçalho."""
        if self.headers or not self._pendentes:
            return []
        return self._aplicar_cabecalho(0, source_file)

    def _aplicar_cabecalho(self, h: int, source_file: Optional[str]) -> List[SalesRow]:
        pendentes, inicio = self._pendentes, self._offset_pendente
        self._pendentes = []
        self.headers = [str(c or "").strip() for c in pendentes[h]]
        logger.debug(f"[SALES][HEADER] {source_file}: {self.headers}")
        return self._parse_rows(pendentes[h + 1:], source_file, inicio + h + 1)

    def _parse_rows(self, dados: Sequence[Sequence[Any]], source_file: Optional[str], inicio: int) -> List[SalesRow]:
        mapa = self._mapear_colunas(self.headers)
        saida: List[SalesRow] = []

        for i, row in enumerate(dados):
            registro = {h: row[j] if j < len(row) else None for j, h in enumerate(self.headers) if h}
            if all(_vazio(v) for v in registro.values()):
                continue
            saida.extend(self._parse_row(registro, mapa, source_file, inicio + i))

        return saida

    # ------------------------------------------------------------
    def _mapear_colunas(self, headers: List[str]) -> Dict[str, Optional[str]]:
        chaves = {h: normalize_header_key(h) for h in headers if h}

        def exato(opcoes: Tuple[str, ...]) -> List[str]:
            return [h for h, k in chaves.items() if k in opcoes]

        def contem(opcoes: Tuple[str, ...]) -> Optional[str]:
            for opcao in opcoes:
                for h, k in chaves.items():
                    if opcao in k:
                        return h
            return None

        return {
            "rm": exato(RM_KEYS),
            "address": contem(("адрес",)),
            "client": contem(("наименование", "клиент")),
            "brand": contem(BRAND_KEYS),
            "packaging": contem(PACKAGING_KEYS),
            "channel": contem(CHANNEL_KEYS),
            "fact": contem(FACT_KEYS),
        }

    def _parse_row(self, registro: Dict[str, Any], mapa, source_file, idx) -> List[SalesRow]:
        rm = ""
        for coluna in mapa["rm"]:
            if is_valid_manager(registro.get(coluna)):
                rm = str(registro[coluna]).strip()
                break
        if not rm:
            if any(not _vazio(registro.get(c)) for c in mapa["rm"]):
                self.rejeitados_rm += 1
            rm = UNKNOWN_RM

        def valor(coluna: Optional[str]) -> Optional[str]:
            if coluna is None or _vazio(registro.get(coluna)):
                return None
            return str(registro[coluna]).strip()

        endereco = valor(mapa["address"])
        canal = valor(mapa["channel"])
        if not canal or len(canal) < 2:
            canal = DEFAULT_CHANNEL

        marcas = [b.strip() for b in re.split(r"[,;]", valor(mapa["brand"]) or DEFAULT_BRAND) if b.strip()]
        if not marcas:
            marcas = [DEFAULT_BRAND]

        total = parse_clean_float(registro.get(mapa["fact"])) if mapa["fact"] else 0.0
        por_marca = total / len(marcas)

        return [
            SalesRow(
                rm=rm,
                brand=marca,
                fact=por_marca,
                address=endereco,
                client_name=valor(mapa["client"]),
                packaging=valor(mapa["packaging"]) or DEFAULT_PACKAGING,
                channel=canal,
                source_file=source_file,
                row_index=idx,
            )
            for marca in marcas
        ]

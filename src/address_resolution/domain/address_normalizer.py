# ============================================================
# 📦 src/address_resolution/domain/address_normalizer.py
# ============================================================

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Optional, List


# ============================================================
# 🔤 DICIONÁRIO DE ABREVIAÇÕES → FORMA COMPLETA (geocoding)
# ============================================================
ABREVIACOES = {
    r"\bул\b\.?": "улица",
    r"\bпр-т\b\.?": "проспект",
    r"\bпросп\b\.?": "проспект",
    r"\bпр\b\.": "проспект",
    r"\bпер\b\.?": "переулок",
    r"\bш\b\.?": "шоссе",
    r"\bб-р\b\.?": "бульвар",
    r"\bбул\b\.?": "бульвар",
    r"\bпл\b\.?": "площадь",
    r"\bнаб\b\.?": "набережная",
    r"\bмкр\b\.?": "микрорайон",
    r"\bр-н\b\.?": "район",
    r"\bобл\b\.?": "область",
    r"\bресп\b\.?": "республика",
}

# Complementos finais que confundem geocoders (escritório, apartamento...)
_COMPLEMENTOS = r"\b(?:кв|квартира|оф|офис|пом|помещение|этаж|эт|комн|каб)\b.*$"

_DELIMITADORES = re.compile(r"[;|/\\\r\n\t]+")
_POSTAL_RE = re.compile(r"(?<!\d)(\d{5,6})(?!\d)")
_TOKEN_RE = re.compile(r"[0-9a-zа-я]+(?:-[0-9a-zа-я]+)*")
_PAIS_FINAL = re.compile(r",?\s*(?:россия|российская федерация|рф|russia)\s*$", re.I)


# ============================================================
# 🔤 Utils internos
# ============================================================

def fix_encoding(s: str) -> str:
    """
    Corrige mojibake comum de CSVs exportados por Excel/Windows
    (UTF-8 lido como cp1251). Mantém o texto original quando a
    recodificação não faz sentido. Remove caracteres invisíveis.
    """
    if not isinstance(s, str):
        return s

    try:
        s = s.encode("cp1251").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        pass

    s = "".join(c for c in s if ord(c) >= 32 or c in "\n\t")
    s = unicodedata.normalize("NFC", s)
    return s.strip()


def _casefold(s: str) -> str:
    return s.casefold().replace("ё", "е")


def _limpeza_basica(s: str) -> str:
    s = s.strip()
    s = re.sub(r"\s{2,}", " ", s)
    s = re.sub(r"(?:,\s*)+,", ",", s)
    s = re.sub(r"^\s*,|\s*,\s*$", "", s)
    return s.strip()


# ============================================================
# 🧱 NORMALIZAÇÃO BASE
# ============================================================
# - NÃO muda caixa
# - unifica delimitadores e espaços
# - remove "Россия" no final
# ============================================================

def normalize_base(endereco: Optional[str]) -> str:
    if not endereco:
        return ""

    s = str(endereco).replace(" ", " ").strip()
    s = _DELIMITADORES.sub(",", s)
    s = re.sub(r"\s+", " ", s)
    s = re.sub(r"\s*,\s*", ", ", s)
    s = _limpeza_basica(s)
    s = _PAIS_FINAL.sub("", s)

    return _limpeza_basica(s)


def extract_postal_code(texto: Optional[str]) -> Optional[str]:
    """Primeiro token de 5–6 dígitos isolado (índice postal)."""
    if not texto:
        return None
    m = _POSTAL_RE.search(texto)
    return m.group(1) if m else None


def tokenize(texto: str) -> List[str]:
    return _TOKEN_RE.findall(_casefold(texto or ""))


@dataclass(frozen=True)
class NormalizedAddress:
    raw: str
    text: str
    postal_code: Optional[str] = None
    tokens: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text

    def text_without_postal(self) -> str:
        if not self.postal_code:
            return self.text
        return _limpeza_basica(re.sub(rf"(?<!\d){self.postal_code}(?!\d)", "", self.text))


def normalize_address(endereco: Optional[str]) -> NormalizedAddress:
    """
    Texto aparado, case-folded, com delimitadores unificados
    + índice postal extraído (quando houver). Função pura.
    """
    raw = "" if endereco is None else str(endereco)
    texto = _casefold(normalize_base(raw))
    return NormalizedAddress(
        raw=raw,
        text=texto,
        postal_code=extract_postal_code(texto),
        tokens=tokenize(texto),
    )


# ============================================================
# 🧠 PARA CACHE (CHAVE CANÔNICA)
# ============================================================
# - agressivo e determinístico
# - pontuação vira espaço
# ============================================================

def normalize_for_cache(endereco: Optional[str]) -> str:
    if not endereco:
        return ""

    s = _casefold(normalize_base(endereco))
    s = re.sub(r"[^0-9a-zа-я\- ]", " ", s)
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def normalize_rm(rm_name: Optional[str]) -> str:
    return re.sub(r"\s+", " ", _casefold(rm_name or "")).strip()


# ============================================================
# 🧭 PARA GEOCODIFICAÇÃO (Nominatim)
# ============================================================

def normalize_for_geocoding(endereco: Optional[str]) -> str:
    if not endereco:
        return ""

    s = normalize_base(endereco).lower()

    for padrao, completo in ABREVIACOES.items():
        s = re.sub(padrao, completo, s)

    # "г. Москва" → "Москва" / "д. 5" → "5"
    s = re.sub(r"\b(?:г|гор|город)\b\.?\s*", "", s)
    s = re.sub(r"\b(?:д|дом)\b\.?\s*(?=\d)", "", s)

    s = re.sub(_COMPLEMENTOS, "", s)
    return _limpeza_basica(s)


# ============================================================
# 🗺️ Chave de geografia (cidade / região)
# ============================================================

def normalize_geo_name(nome: Optional[str]) -> str:
    if not nome:
        return ""

    s = _casefold(str(nome).replace(" ", " "))
    s = re.sub(r"[\"'«»]", "", s)
    s = re.sub(r"^\s*(?:г|гор|город)\b\.?\s*", "", s)
    s = re.sub(r"\s+", " ", s)
    return s.strip(" .,")


# ============================================================
# 📦 src/address_resolution/domain/resolution_strategies.py
# ============================================================

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger
from rapidfuzz import fuzz, process

from address_resolution.domain.address_normalizer import (
    NormalizedAddress,
    normalize_address,
    normalize_base,
    normalize_for_geocoding,
    normalize_geo_name,
    tokenize,
)
from address_resolution.domain.geo_reference_index import (
    GeoEntity,
    GeoReferenceIndex,
    standardize_region,
)
from address_resolution.domain.resolution_stats import ResolutionStats
from address_resolution.entities.parsed_address import (
    ParsedAddress,
    ResolutionSource,
    ResolutionStatus,
)
from address_resolution.infrastructure.geocoder_adapter import (
    GeocodeCandidate,
    GeocodeQuery,
    GeocoderAdapter,
)


# ============================================================
# 🧭 Estágios (máquina de estados explícita)
# ============================================================
class Stage(str, Enum):
    EXPLICIT = "EXPLICIT"
    POSTAL = "POSTAL"
    CITY_LOOKUP = "CITY_LOOKUP"
    FUZZY = "FUZZY"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class StageSpec:
    """
    Faixa de confiança do estágio. O score nativo s ∈ [0, 1] é aceito
    quando s >= min_score e mapeado linearmente para [floor, ceiling].
    As faixas não se sobrepõem: explicit ≥ postal ≥ city_lookup ≥ fuzzy.
    """

    source: ResolutionSource
    floor: float
    ceiling: float
    min_score: float
    handler: Optional[str]

    def confidence(self, score: float) -> float:
        if self.ceiling <= self.floor or self.min_score >= 1.0:
            return self.floor
        frac = (min(score, 1.0) - self.min_score) / (1.0 - self.min_score)
        return self.floor + (self.ceiling - self.floor) * max(frac, 0.0)

    def with_ambiguity(self, confidence: float) -> float:
        # metade da distância até o piso: continua aceito, mas abaixo do caso único
        return self.floor + (confidence - self.floor) * 0.5


STAGE_ORDER: Tuple[Stage, ...] = (
    Stage.EXPLICIT,
    Stage.POSTAL,
    Stage.CITY_LOOKUP,
    Stage.FUZZY,
    Stage.UNKNOWN,
)

STAGE_SPECS: Dict[Stage, StageSpec] = {
    Stage.EXPLICIT: StageSpec(ResolutionSource.EXPLICIT, 0.85, 1.0, 0.7, "_stage_explicit"),
    Stage.POSTAL: StageSpec(ResolutionSource.POSTAL, 0.70, 0.85, 0.5, "_stage_postal"),
    Stage.CITY_LOOKUP: StageSpec(ResolutionSource.CITY_LOOKUP, 0.50, 0.70, 0.5, "_stage_city_lookup"),
    Stage.FUZZY: StageSpec(ResolutionSource.FUZZY, 0.30, 0.50, 0.8, "_stage_fuzzy"),
    Stage.UNKNOWN: StageSpec(ResolutionSource.UNKNOWN, 0.0, 0.0, 1.0, None),
}


# ============================================================
# 🧾 Resultado intermediário de um estágio
# ============================================================
@dataclass
class StageOutcome:
    score: float
    region: Optional[str] = None
    city: Optional[str] = None
    street: Optional[str] = None
    house: Optional[str] = None
    postal_code: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    alternatives: List[str] = field(default_factory=list)


@dataclass
class StructuralParse:
    """Componentes reconhecidos pela leitura estrutural (partes separadas por vírgula)."""

    region: Optional[str] = None
    city: Optional[str] = None
    city_known: bool = False
    street: Optional[str] = None
    house: Optional[str] = None


@dataclass
class _Contexto:
    normalized: NormalizedAddress
    partes: List[str]
    estrutura: StructuralParse
    trace: str


# ============================================================
# 🔤 Padrões da leitura estrutural
# ============================================================
_MARCADOR_RUA = re.compile(
    r"\b(?:ул|улица|пр-т|просп|проспект|пр|пер|переулок|ш|шоссе|б-р|бул|бульвар|"
    r"пл|площадь|наб|набережная|мкр|микрорайон|проезд|тупик|аллея|тракт)\b\.?",
    re.I,
)
_MARCADOR_CIDADE = re.compile(r"^\s*(?:г|гор|город)\b\.?\s*", re.I)
_MARCADOR_REGIAO = re.compile(r"\b(?:обл|область|край|респ|республика|ао|округ)\b\.?", re.I)
_CASA_SEPARADA = re.compile(
    r"^(?:д|дом)?\.?\s*(\d+[а-яa-z]?(?:\s*(?:/|к|корп\.?|стр\.?)\s*\d+)?)$", re.I
)
_CASA_NA_RUA = re.compile(
    r"^(.*?\D)[\s,]+(?:д\.?\s*|дом\s+)?(\d+[а-яa-z]?(?:\s*(?:/|к|корп\.?|стр\.?)\s*\d+)?)$", re.I
)


# "область", "край"... sozinhos não identificam nenhuma região
_TOKENS_GENERICOS = {"область", "край", "республика", "округ", "автономный", "город"}


def _casefold(s: str) -> str:
    return s.casefold().replace("ё", "е")


class ResolutionPipeline:
    """
    Pipeline de resolução em estágios:

      EXPLICIT → POSTAL → CITY_LOOKUP → FUZZY → UNKNOWN

    Para no primeiro estágio que atinge o seu limiar. A ordem e as
    faixas vêm de STAGE_ORDER / STAGE_SPECS (dados, não fluxo de controle).
    resolve() nunca levanta: a saída universal é UNKNOWN.
    """

    def __init__(
        self,
        index: GeoReferenceIndex,
        geocoder: Optional[GeocoderAdapter] = None,
        stats: Optional[ResolutionStats] = None,
        stage_order: Tuple[Stage, ...] = STAGE_ORDER,
        stage_specs: Optional[Dict[Stage, StageSpec]] = None,
        ambiguity_margin: float = 0.05,
    ):
        self.index = index
        self.geocoder = geocoder
        self.stats = stats or ResolutionStats()
        self.stage_order = stage_order
        self.stage_specs = stage_specs or STAGE_SPECS
        self.ambiguity_margin = ambiguity_margin

        if self.stage_order[-1] != Stage.UNKNOWN:
            raise ValueError("❌ O último estágio precisa ser UNKNOWN")

    # ============================================================
    # 🌍 Entrada principal
    # ============================================================
    def resolve(self, endereco: Optional[str], trace: str = "GEO") -> ParsedAddress:
        normalized = normalize_address(endereco)

        if normalized.is_empty:
            logger.warning(f"[{trace}][VAZIO] endereço vazio → unresolved")
            self.stats.incr("unknown")
            return ParsedAddress.unresolved()

        partes = [p.strip() for p in normalize_base(normalized.raw).split(",") if p.strip()]
        ctx = _Contexto(
            normalized=normalized,
            partes=partes,
            estrutura=self._parse_structure(partes, normalized.postal_code),
            trace=trace,
        )

        for stage in self.stage_order:
            spec = self.stage_specs[stage]
            if spec.handler is None:
                break

            handler: Callable[[_Contexto], Optional[StageOutcome]] = getattr(self, spec.handler)
            try:
                outcome = handler(ctx)
            except Exception as e:
                # falha de um estágio nunca derruba o pipeline
                logger.warning(f"[{trace}][{stage.value}][ERRO] {e}", exc_info=True)
                outcome = None

            if outcome is None or outcome.score < spec.min_score:
                logger.debug(f"[{trace}][{stage.value}][MISS]")
                continue

            parsed = self._aceitar(stage, spec, outcome, ctx)
            self.stats.incr(spec.source.value)
            logger.info(
                f"[{trace}][{stage.value}][OK] {parsed.describe()} "
                f"conf={parsed.confidence} coords=({parsed.lat}, {parsed.lon})"
            )
            return parsed

        logger.warning(f"[{trace}][UNKNOWN] '{normalized.raw}' não resolvido")
        self.stats.incr("unknown")
        return ParsedAddress.unresolved(postal_code=normalized.postal_code)

    # ============================================================
    # ✅ Aceitação + enriquecimento de coordenadas
    # ============================================================
    def _aceitar(self, stage: Stage, spec: StageSpec, outcome: StageOutcome, ctx: _Contexto) -> ParsedAddress:
        if outcome.lat is None or outcome.lon is None:
            try:
                self._enriquecer_coordenadas(outcome, ctx)
            except Exception as e:
                # o match já aceito é mantido, só sem coordenadas
                logger.warning(f"[{ctx.trace}][{stage.value}][STRUCT][ERRO] {e}", exc_info=True)
                outcome.lat, outcome.lon = None, None

        confianca = spec.confidence(outcome.score)
        alternativas = [a for a in dict.fromkeys(outcome.alternatives) if a]
        if alternativas:
            confianca = spec.with_ambiguity(confianca)
            logger.info(f"[{ctx.trace}][{stage.value}][AMBIGUO] {len(alternativas)} alternativa(s)")

        return ParsedAddress(
            region=outcome.region,
            city=outcome.city,
            street=outcome.street,
            house=outcome.house,
            postal_code=outcome.postal_code or ctx.normalized.postal_code,
            lat=outcome.lat,
            lon=outcome.lon,
            confidence=confianca,
            source=spec.source,
            ambiguous_candidates=alternativas,
            status=ResolutionStatus.RESOLVED,
        )

    def _enriquecer_coordenadas(self, outcome: StageOutcome, ctx: _Contexto):
        if self.geocoder is None:
            return

        rua = None
        if outcome.street:
            rua = f"{outcome.house} {outcome.street}" if outcome.house else outcome.street

        query = GeocodeQuery(
            street=rua,
            city=outcome.city,
            state=outcome.region if outcome.region != outcome.city else None,
            postalcode=outcome.postal_code if not outcome.city else None,
        )
        if not query.params():
            return

        candidatos = self.geocoder.lookup(query, trace=f"{ctx.trace}][STRUCT")
        if not candidatos:
            logger.warning(f"[{ctx.trace}][STRUCT][MISS] sem coordenadas para {query.describe()}")
            return

        primeiro = candidatos[0]
        outcome.lat, outcome.lon = primeiro.lat, primeiro.lon
        outcome.alternatives.extend(
            c.display_name for c in candidatos[1:] if c.display_name != primeiro.display_name
        )

    # ============================================================
    # 🧱 Leitura estrutural (compartilhada entre os estágios)
    # ============================================================
    def _parse_structure(self, partes: List[str], postal: Optional[str]) -> StructuralParse:
        estrutura = StructuralParse()

        for parte in partes:
            if postal and postal in parte:
                parte = parte.replace(postal, "").strip(" ,")
                if not parte:
                    continue
            chave = _casefold(parte)

            if estrutura.street is None and _MARCADOR_RUA.search(chave):
                m = _CASA_NA_RUA.match(parte)
                if m:
                    estrutura.street, estrutura.house = m.group(1).strip(" ,"), m.group(2)
                else:
                    estrutura.street = parte
                continue

            if estrutura.street is not None and estrutura.house is None:
                m = _CASA_SEPARADA.match(chave)
                if m:
                    estrutura.house = m.group(1)
                    continue

            if estrutura.city is None:
                ent = self.index.city(parte)
                if ent is not None:
                    estrutura.city, estrutura.city_known = ent.city, True
                    estrutura.region = estrutura.region or ent.region
                    continue
                if _MARCADOR_CIDADE.match(parte):
                    nome = _MARCADOR_CIDADE.sub("", parte).strip()
                    if nome:
                        estrutura.city = nome[:1].upper() + nome[1:]
                        continue

            if estrutura.region is None and (_MARCADOR_REGIAO.search(chave) or self.index.region(parte)):
                ent = self.index.region(parte)
                estrutura.region = ent.region if ent else standardize_region(parte)

        return estrutura

    # ============================================================
    # 1) EXPLICIT: cidade + rua reconhecidas estruturalmente
    # ============================================================
    def _stage_explicit(self, ctx: _Contexto) -> Optional[StageOutcome]:
        e = ctx.estrutura
        if not e.city or not e.street:
            return None

        score = 1.0
        if not e.house:
            score -= 0.1
        if not e.region:
            score -= 0.15

        return StageOutcome(
            score=score,
            region=e.region,
            city=e.city,
            street=e.street,
            house=e.house,
        )

    # ============================================================
    # 2) POSTAL: índice postal (tabela local → geocoder)
    # ============================================================
    def _stage_postal(self, ctx: _Contexto) -> Optional[StageOutcome]:
        codigo = ctx.normalized.postal_code
        if not codigo:
            return None

        e = ctx.estrutura
        match = self.index.postal(codigo)
        if match is not None:
            return StageOutcome(
                score=match.specificity,
                region=match.region,
                city=match.city or (e.city if e.region == match.region else None),
                street=e.street,
                house=e.house,
                postal_code=codigo,
            )

        if self.geocoder is None:
            return None

        candidatos = self.geocoder.lookup(GeocodeQuery(postalcode=codigo), trace=f"{ctx.trace}][POSTAL")
        if not candidatos:
            return None

        primeiro = candidatos[0]
        return StageOutcome(
            score=0.9 if primeiro.postcode == codigo else 0.7,
            region=standardize_region(primeiro.region),
            city=primeiro.city,
            street=e.street,
            house=e.house,
            postal_code=codigo,
            lat=primeiro.lat,
            lon=primeiro.lon,
            alternatives=_alternativas(candidatos),
        )

    # ============================================================
    # 3) CITY_LOOKUP: sobreposição de tokens com nomes conhecidos
    # ============================================================
    def _stage_city_lookup(self, ctx: _Contexto) -> Optional[StageOutcome]:
        tokens = set(ctx.normalized.tokens)
        if not tokens:
            return None

        pontuados: List[Tuple[float, GeoEntity]] = []
        for chave, ent in [(ent.key, ent) for ent in self.index.entities()] + self.index.alias_entities():
            ent_tokens = [t for t in tokenize(chave) if t not in _TOKENS_GENERICOS]
            if not ent_tokens:
                continue
            score = len(tokens & set(ent_tokens)) / len(ent_tokens)
            if score > 0:
                pontuados.append((score, ent))

        if not pontuados:
            return None

        escolhido, alternativas, melhor = self._escolher(pontuados)
        e = ctx.estrutura
        return StageOutcome(
            score=melhor,
            region=escolhido.region,
            city=escolhido.city,
            street=e.street if escolhido.city else None,
            house=e.house if escolhido.city else None,
            alternatives=alternativas,
        )

    # ============================================================
    # 4) FUZZY: similaridade (rapidfuzz) → geocoder texto livre
    # ============================================================
    def _stage_fuzzy(self, ctx: _Contexto) -> Optional[StageOutcome]:
        spec = self.stage_specs[Stage.FUZZY]
        entidades = {ent.key: ent for ent in self.index.entities()}
        for alias, ent in self.index.alias_entities():
            entidades.setdefault(alias, ent)

        pontuados: List[Tuple[float, GeoEntity]] = []
        for parte in ctx.partes:
            chave = normalize_geo_name(parte)
            if not chave or chave == ctx.normalized.postal_code or _MARCADOR_RUA.search(chave):
                continue
            for nome, score, _ in process.extract(chave, list(entidades), scorer=fuzz.ratio, limit=5):
                if score / 100.0 >= spec.min_score:
                    pontuados.append((score / 100.0, entidades[nome]))

        if pontuados:
            escolhido, alternativas, melhor = self._escolher(pontuados)
            return StageOutcome(
                score=melhor,
                region=escolhido.region,
                city=escolhido.city,
                street=ctx.estrutura.street if escolhido.city else None,
                house=ctx.estrutura.house if escolhido.city else None,
                alternatives=alternativas,
            )

        if self.geocoder is None:
            return None

        texto = normalize_for_geocoding(ctx.normalized.raw)
        if not texto:
            return None

        candidatos = self.geocoder.lookup(GeocodeQuery(q=texto), trace=f"{ctx.trace}][LIVRE")
        if not candidatos:
            return None

        primeiro = candidatos[0]
        similaridade = fuzz.token_set_ratio(_casefold(texto), _casefold(primeiro.display_name)) / 100.0
        if similaridade < spec.min_score:
            logger.debug(f"[{ctx.trace}][FUZZY][LIVRE] similaridade baixa {similaridade:.2f}: {primeiro.display_name}")
            return None

        return StageOutcome(
            score=similaridade,
            region=standardize_region(primeiro.region),
            city=primeiro.city,
            street=primeiro.road,
            house=primeiro.house_number,
            postal_code=primeiro.postcode,
            lat=primeiro.lat,
            lon=primeiro.lon,
            alternatives=_alternativas(candidatos),
        )

    # ------------------------------------------------------------
    def _escolher(self, pontuados: List[Tuple[float, GeoEntity]]) -> Tuple[GeoEntity, List[str], float]:
        """
        Melhor entidade (cidade antes de região em empate) + alternativas
        com score dentro da margem de ambiguidade.
        """
        pontuados.sort(key=lambda x: (-x[0], x[1].kind != "city", x[1].label))
        melhor, escolhido = pontuados[0]

        alternativas: List[str] = []
        for score, ent in pontuados[1:]:
            if melhor - score > self.ambiguity_margin:
                break
            if ent.label == escolhido.label:
                continue
            # região da própria cidade escolhida não é ambiguidade
            if ent.kind == "region" and ent.region == escolhido.region:
                continue
            alternativas.append(ent.label)

        return escolhido, alternativas, melhor


def _alternativas(candidatos: List[GeocodeCandidate]) -> List[str]:
    primeiro = candidatos[0].display_name
    return [c.display_name for c in candidatos[1:] if c.display_name != primeiro]

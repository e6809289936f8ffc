# tests/address_resolution/application/test_address_resolution_service.py

import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError

import pytest

from address_resolution.application.context import build_context
from address_resolution.domain.errors import CacheCorruption, ValidationError
from address_resolution.entities.parsed_address import ResolutionSource, ResolutionStatus
from address_resolution.infrastructure.resolution_cache import InMemoryResolutionStore

from tests.conftest import FakeProvider


ENDERECO = "г. Москва, ул. Ленина 5"


def test_resolve_usa_pipeline_e_cache(make_context):
    provider = FakeProvider()
    ctx = make_context(provider)

    primeiro = ctx.service.resolve("Иванов", ENDERECO)
    segundo = ctx.service.resolve("Иванов", ENDERECO)

    assert primeiro.source == ResolutionSource.EXPLICIT
    assert primeiro == segundo
    assert provider.calls == 1
    assert ctx.stats.get("cache_hit") == 1
    assert ctx.stats.get("total") == 2


def test_chamadas_paralelas_da_mesma_chave_chamam_geocoder_uma_vez(make_context):
    provider = FakeProvider(delay=0.1)
    ctx = make_context(provider)

    with ThreadPoolExecutor(max_workers=8) as pool:
        resultados = list(pool.map(lambda _: ctx.service.resolve("Иванов", ENDERECO), range(8)))

    assert provider.calls == 1
    assert all(r == resultados[0] for r in resultados)


def test_endereco_vazio_nao_chama_nada(make_context):
    provider = FakeProvider()
    ctx = make_context(provider)

    for vazio in (None, "", "   "):
        parsed = ctx.service.resolve("Иванов", vazio)
        assert parsed.status == ResolutionStatus.UNRESOLVED
        assert parsed.source == ResolutionSource.UNKNOWN

    assert provider.calls == 0
    assert len(ctx.cache.store) == 0


def test_resolve_batch_retorna_todos_os_indices(make_context):
    ctx = make_context(FakeProvider(lambda q: []))

    entradas = [
        ("Иванов", ENDERECO),
        ("Иванов", "qwxz zzkq"),
        ("Петров", ""),
        ("Петров", "Казань"),
    ]
    resultados = ctx.service.resolve_batch(entradas)

    assert sorted(resultados) == [0, 1, 2, 3]
    assert resultados[0].source == ResolutionSource.EXPLICIT
    assert resultados[1].source == ResolutionSource.UNKNOWN
    assert resultados[2].source == ResolutionSource.UNKNOWN
    assert resultados[3].source == ResolutionSource.CITY_LOOKUP
    assert ctx.service.resolve_batch([]) == {}


def test_cancelar_entrega_nao_interrompe_resolucao(make_context):
    gate = threading.Event()
    provider = FakeProvider(gate=gate)
    ctx = make_context(provider)

    entrega = ctx.service.resolve_async("Иванов", ENDERECO)
    assert entrega.cancel()
    gate.set()
    ctx.service.shutdown()

    assert ctx.cache.get("Иванов", ENDERECO) is not None
    assert provider.calls == 1


def test_timeout_do_chamador_nao_impede_cache(make_context):
    gate = threading.Event()
    provider = FakeProvider(gate=gate)
    ctx = make_context(provider)

    with pytest.raises(FuturesTimeoutError):
        ctx.service.resolve("Иванов", ENDERECO, timeout=0.05)

    gate.set()
    ctx.service.shutdown()

    valor, historico = ctx.cache.get("Иванов", ENDERECO)
    assert valor.source == ResolutionSource.EXPLICIT
    assert historico == [ENDERECO]


def test_historico_apos_resolucoes(make_context):
    ctx = make_context()

    ctx.service.resolve("Иванов", "Г. Москва, ул. Ленина 5")
    ctx.service.resolve("Иванов", "г. москва ул. ленина 5")

    assert ctx.service.history("Иванов", "г москва ул ленина 5") == [
        "г. москва ул. ленина 5",
        "Г. Москва, ул. Ленина 5",
    ]
    assert ctx.service.history("Петров", "г москва ул ленина 5") == []


@pytest.mark.parametrize("rm, endereco", [(None, ENDERECO), ("  ", ENDERECO), ("Иванов", None), ("Иванов", "")])
def test_historico_exige_parametros(make_context, rm, endereco):
    ctx = make_context()

    with pytest.raises(ValidationError):
        ctx.service.history(rm, endereco)


def test_erro_inesperado_vira_unresolved(make_context):
    ctx = make_context()

    def quebra(*args, **kwargs):
        raise RuntimeError("boom")

    ctx.cache.get_or_resolve = quebra

    parsed = ctx.service.resolve("Иванов", ENDERECO)

    assert parsed.status == ResolutionStatus.UNRESOLVED


class _StoreComValorIlegivel(InMemoryResolutionStore):
    def __init__(self):
        super().__init__()
        self.ilegivel = True

    def get(self, key):
        if self.ilegivel:
            raise CacheCorruption("valor inválido")
        return super().get(key)

    def put_value(self, key, value, resolved_at):
        self.ilegivel = False
        super().put_value(key, value, resolved_at)


def test_valor_ilegivel_no_cache_e_resolvido_de_novo(settings):
    provider = FakeProvider()
    ctx = build_context(settings, provider=provider, store=_StoreComValorIlegivel())
    try:
        parsed = ctx.service.resolve("Иванов", ENDERECO)
        de_novo = ctx.service.resolve("Иванов", ENDERECO)
    finally:
        ctx.service.shutdown()

    assert parsed.status == ResolutionStatus.RESOLVED
    assert parsed.source == ResolutionSource.EXPLICIT
    assert de_novo == parsed
    assert provider.calls == 1

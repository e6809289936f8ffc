# tests/address_resolution/infrastructure/test_resolution_cache.py

import threading
import time

import pytest

from address_resolution.domain.errors import CacheCorruption
from address_resolution.entities.parsed_address import ParsedAddress, ResolutionSource, ResolutionStatus
from address_resolution.infrastructure.resolution_cache import (
    InMemoryResolutionStore,
    ResolutionCache,
    history_newest_first,
    split_history,
)


class FakeClock:
    def __init__(self, agora=1_000.0):
        self.agora = agora

    def __call__(self):
        return self.agora


def _moscow(confidence=1.0):
    return ParsedAddress(
        region="Москва",
        city="Москва",
        street="ул. Ленина",
        house="5",
        lat=55.75,
        lon=37.61,
        confidence=confidence,
        source=ResolutionSource.EXPLICIT,
        status=ResolutionStatus.RESOLVED,
    )


# ============================================================
# 📜 Histórico composto
# ============================================================
def test_split_history_quebra_separadores_e_remove_vazios():
    assert split_history("a||b\nc") == ["a", "b", "c"]
    assert split_history("  a ||  ||\r\nb ") == ["a", "b"]
    assert split_history(None) == []


def test_split_history_tipo_invalido():
    with pytest.raises(CacheCorruption):
        split_history(123)


def test_history_newest_first():
    assert history_newest_first(["a||b\nc"]) == ["c", "b", "a"]
    assert history_newest_first(["a", "b", "a"]) == ["a", "b"]


def test_seed_com_registro_composto():
    cache = ResolutionCache()
    cache.seed("Иванов", "Москва, Ленина 5", _moscow(), "a||b\nc")

    assert cache.get_history("Иванов", "Москва, Ленина 5") == ["c", "b", "a"]


def test_seed_corrompido_vira_historico_vazio():
    cache = ResolutionCache()
    cache.seed("Иванов", "Москва, Ленина 5", _moscow(), [123])

    assert cache.get_history("Иванов", "Москва, Ленина 5") == []
    valor, _ = cache.get("Иванов", "Москва, Ленина 5")
    assert valor.city == "Москва"


def test_historico_corrompido_no_store_e_resetado():
    store = InMemoryResolutionStore()
    cache = ResolutionCache(store=store)
    cache.put("Иванов", "Москва, Ленина 5", _moscow())
    chave = cache.key("Иванов", "Москва, Ленина 5")
    store.reset_history(chave, [123])

    assert cache.get_history("Иванов", "Москва, Ленина 5") == []
    assert store.get(chave).history == []


# ============================================================
# 💾 Leitura / escrita
# ============================================================
def test_put_get_idempotente():
    cache = ResolutionCache()
    cache.put("Иванов", "Москва, Ленина 5", _moscow())
    cache.put("Иванов", "Москва, Ленина 5", _moscow())

    valor, historico = cache.get("Иванов", "Москва, Ленина 5")
    assert valor == _moscow()
    assert historico == ["Москва, Ленина 5"]
    assert len(cache.store) == 1


def test_chave_usa_rm_e_endereco_normalizados():
    cache = ResolutionCache()
    cache.put(" Иванов ", "Г. Москва, ул. Ленина, д.5", _moscow())

    achado = cache.get("иванов", "г. москва ул. ленина д. 5")
    assert achado is not None
    assert cache.get("Петров", "г. москва ул. ленина д. 5") is None


def test_hit_com_variante_nova_e_anexada():
    cache = ResolutionCache()
    chamadas = []

    def resolver():
        chamadas.append(1)
        return _moscow()

    cache.get_or_resolve("Иванов", "Г. Москва, ул. Ленина, д.5", resolver)
    cache.get_or_resolve("Иванов", "г. москва ул. ленина д. 5", resolver)
    cache.get_or_resolve("Иванов", "г. москва ул. ленина д. 5", resolver)

    assert len(chamadas) == 1
    assert cache.get_history("Иванов", "г. москва ул. ленина д. 5") == [
        "г. москва ул. ленина д. 5",
        "Г. Москва, ул. Ленина, д.5",
    ]
    assert cache.stats.get("cache_hit") == 2


def test_unresolved_tambem_e_cacheado():
    cache = ResolutionCache()
    chamadas = []

    def resolver():
        chamadas.append(1)
        return ParsedAddress.unresolved()

    primeiro = cache.get_or_resolve("Иванов", "qwxz zzkq", resolver)
    segundo = cache.get_or_resolve("Иванов", "qwxz zzkq", resolver)

    assert primeiro.source == segundo.source == ResolutionSource.UNKNOWN
    assert len(chamadas) == 1


def test_ttl_expirado_revalida_e_preserva_historico():
    relogio = FakeClock()
    cache = ResolutionCache(ttl_seconds=60, clock=relogio)
    versoes = [_moscow(0.9), _moscow(1.0)]
    chamadas = []

    def resolver():
        chamadas.append(1)
        return versoes[len(chamadas) - 1]

    cache.get_or_resolve("Иванов", "Москва, Ленина 5", resolver)
    relogio.agora += 61
    assert cache.get("Иванов", "Москва, Ленина 5") is None

    valor = cache.get_or_resolve("Иванов", "Москва, Ленина 5", resolver)

    assert len(chamadas) == 2
    assert valor.confidence == 1.0
    assert cache.get_history("Иванов", "Москва, Ленина 5") == ["Москва, Ленина 5"]


def test_alias_pelo_historico_de_outra_chave():
    cache = ResolutionCache()
    cache.seed("Иванов", "Москва, Ленина 5", _moscow(), "Москва Ленина дом 5||Мск, Ленина 5")

    achado = cache.get("Иванов", "мск ленина 5")
    assert achado is not None
    assert achado[0].city == "Москва"
    assert cache.get("Петров", "мск ленина 5") is None


def test_erro_do_resolver_propaga_e_libera_chave():
    cache = ResolutionCache()

    def quebra():
        raise RuntimeError("falhou")

    with pytest.raises(RuntimeError):
        cache.get_or_resolve("Иванов", "Москва", quebra)

    assert cache.get_or_resolve("Иванов", "Москва", _moscow).city == "Москва"


# ============================================================
# 🔒 Concorrência
# ============================================================
def test_chamadas_concorrentes_resolvem_uma_vez():
    cache = ResolutionCache()
    chamadas = []
    lock = threading.Lock()
    inicio = threading.Barrier(8)

    def resolver():
        with lock:
            chamadas.append(1)
        time.sleep(0.1)
        return _moscow()

    resultados = []

    def worker():
        inicio.wait()
        resultados.append(cache.get_or_resolve("Иванов", "Москва, Ленина 5", resolver))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(chamadas) == 1
    assert len(resultados) == 8
    assert all(r == _moscow() for r in resultados)


def test_alias_sai_do_indice_quando_historico_e_resetado():
    store = InMemoryResolutionStore()
    cache = ResolutionCache(store=store)
    cache.seed("Иванов", "Москва, Ленина 5", _moscow(), "Мск, Ленина 5")
    assert cache.get("Иванов", "мск ленина 5") is not None

    store.reset_history(cache.key("Иванов", "Москва, Ленина 5"))

    assert cache.get("Иванов", "мск ленина 5") is None
    assert cache.get("Иванов", "Москва, Ленина 5") is not None


# ============================================================
# 🧨 Valor corrompido no store
# ============================================================
class _StoreValorCorrompido(InMemoryResolutionStore):
    """Valor ilegível até a próxima gravação (reset do histórico não conserta)."""

    def __init__(self):
        super().__init__()
        self.corrompido = True
        self.leituras = 0

    def get(self, key):
        self.leituras += 1
        if self.corrompido:
            raise CacheCorruption("json inválido")
        return super().get(key)

    def put_value(self, key, value, resolved_at):
        self.corrompido = False
        super().put_value(key, value, resolved_at)


def test_valor_corrompido_vira_miss_e_e_sobrescrito():
    store = _StoreValorCorrompido()
    cache = ResolutionCache(store=store)
    chamadas = []

    def resolver():
        chamadas.append(1)
        return _moscow()

    assert cache.get("Иванов", "Москва, Ленина 5") is None

    valor = cache.get_or_resolve("Иванов", "Москва, Ленина 5", resolver)

    assert valor.city == "Москва"
    assert len(chamadas) == 1
    achado = cache.get("Иванов", "Москва, Ленина 5")
    assert achado is not None
    assert achado[0] == _moscow()
    assert achado[1] == ["Москва, Ленина 5"]


# ============================================================
# 🐢 Store lento não bloqueia outras chaves
# ============================================================
class _StoreLento(InMemoryResolutionStore):
    def __init__(self, endereco_lento):
        super().__init__()
        self.endereco_lento = endereco_lento
        self.liberar = threading.Event()
        self.bloqueado = threading.Event()

    def get(self, key):
        if key[1] == self.endereco_lento:
            self.bloqueado.set()
            self.liberar.wait(timeout=5)
        return super().get(key)


def test_leitura_lenta_de_uma_chave_nao_trava_as_demais():
    lenta = ResolutionCache.key("Иванов", "Казань, Баумана 1")[1]
    store = _StoreLento(lenta)
    cache = ResolutionCache(store=store)

    travada = threading.Thread(
        target=cache.get_or_resolve, args=("Иванов", "Казань, Баумана 1", _moscow)
    )
    travada.start()
    assert store.bloqueado.wait(timeout=2)

    resultados = []
    livre = threading.Thread(
        target=lambda: resultados.append(cache.get_or_resolve("Петров", "Москва, Ленина 5", _moscow))
    )
    livre.start()
    livre.join(timeout=2)

    try:
        assert not livre.is_alive()
        assert resultados == [_moscow()]
        assert travada.is_alive()
    finally:
        store.liberar.set()
        travada.join(timeout=5)

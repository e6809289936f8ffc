# tests/conftest.py

import threading
import time

import pytest

from address_resolution.application.context import build_context
from address_resolution.config.settings import Settings
from address_resolution.infrastructure.geocoder_adapter import GeocodeCandidate, GeocoderAdapter
from sales_potential.infrastructure.sheet_store import SheetFile, SheetPage


# ============================================================
# 🌍 Geocoder fake
# ============================================================
class FakeProvider:
    """
    Provedor fake: responder(query) → lista de candidatos ou exceção.
    Conta chamadas (thread-safe). gate opcional bloqueia até set().
    """

    def __init__(self, responder=None, delay: float = 0.0, gate: threading.Event = None):
        self.responder = responder or (lambda q: [candidate()])
        self.delay = delay
        self.gate = gate
        self.queries = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        with self._lock:
            return len(self.queries)

    def search(self, query):
        with self._lock:
            self.queries.append(query)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.delay:
            time.sleep(self.delay)
        resposta = self.responder(query)
        if isinstance(resposta, Exception):
            raise resposta
        return resposta


def candidate(lat=55.7558, lon=37.6173, display_name="Москва, Россия", **kwargs) -> GeocodeCandidate:
    return GeocodeCandidate(lat=lat, lon=lon, display_name=display_name, **kwargs)


@pytest.fixture
def settings():
    return Settings(
        geocoder_min_interval=0.0,
        geocoder_retry_delay=0.0,
        cache_ttl_seconds=3600,
        max_workers=8,
    )


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def adapter(provider):
    return GeocoderAdapter(provider, retry_delay=0.0, min_interval=0.0)


@pytest.fixture
def make_context(settings):
    criados = []

    def _make(provider=None):
        ctx = build_context(settings, provider=provider or FakeProvider())
        criados.append(ctx)
        return ctx

    yield _make
    for ctx in criados:
        ctx.service.shutdown()


# ============================================================
# 📄 Planilhas fake
# ============================================================
class FakeSheetStore:
    def __init__(self, okb=None, files=None, okb_error=None, short_pages=False):
        self.okb = okb or []
        self.files = files or {}
        self.okb_error = okb_error
        self.short_pages = short_pages
        self.fetches = []

    def get_okb_data(self):
        if self.okb_error is not None:
            raise self.okb_error
        return [dict(r) for r in self.okb]

    def list_files_for_year(self, year):
        return [SheetFile(id=fid, name=fid, year=year) for fid in sorted(self.files.get(year, {}))]

    def fetch_rows(self, file_id, offset, limit):
        self.fetches.append((file_id, offset, limit))
        linhas = next(f[file_id] for f in self.files.values() if file_id in f)
        # páginas curtas: devolve no máximo 1 linha mesmo com has_more
        tamanho = 1 if self.short_pages else limit
        pagina = linhas[offset: offset + tamanho]
        return SheetPage(rows=pagina, has_more=offset + len(pagina) < len(linhas))


OKB_ROWS = [
    {"Наименование": "ООО «Ромашка»", "Юридический адрес": "г. Казань, ул. Баумана 1", "Регион": "Респ. Татарстан", "Город": "Казань", "Статус": "Действующая"},
    {"Наименование": "ООО Лютик", "Юридический адрес": "г. Казань, ул. Пушкина 10", "Регион": "Респ. Татарстан", "Город": "Казань", "Статус": "Действующая"},
    {"Наименование": "ООО Василек", "Юридический адрес": "г. Казань, ул. Чехова 3", "Регион": "Респ. Татарстан", "Город": "Казань", "Статус": "Ликвидирована"},
    {"Наименование": "ООО Степь", "Юридический адрес": "г. Урюпинск, ул. Мира 1", "Регион": "Волгоградская обл.", "Город": "Урюпинск", "Статус": ""},
    {"Наименование": "", "Юридический адрес": "без имени", "Регион": "", "Город": "", "Статус": ""},
]

SALES_2024 = {
    "vendas_q1.csv": [
        ["Отчет по продажам", "", "", "", ""],
        ["РМ", "Наименование клиента", "Адрес доставки", "Торговая марка", "Вес, кг"],
        ["Иванов", "ООО «Ромашка»", "г. Казань, ул. Баумана 1", "Brand A", "100"],
        ["Иванов", "ИП Петров", "г. Казань, ул. Кремлевская 5", "Brand A; Brand B", "1 000,0"],
        ["Иванов", "ИП Сидоров", "", "Brand A", "40"],
        ["Сидоров", "ООО Поле", "г. Урюпинск, ул. Мира 3", "Brand C", "25,5"],
    ],
}


@pytest.fixture
def sheet_store():
    return FakeSheetStore(okb=OKB_ROWS, files={2024: SALES_2024})


def _escrever_csv(path, linhas):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(";".join(str(c) for c in l) for l in linhas) + "\n", encoding="utf-8")


@pytest.fixture
def sales_data_dir(tmp_path):
    """Pasta no layout do LocalSheetStore: okb.csv + 2024/vendas_q1.csv."""
    raiz = tmp_path / "sheets"
    colunas = list(OKB_ROWS[0])
    _escrever_csv(raiz / "okb.csv", [colunas] + [[r[c] for c in colunas] for r in OKB_ROWS])
    _escrever_csv(raiz / "2024" / "vendas_q1.csv", SALES_2024["vendas_q1.csv"])
    return raiz

# tests/sales_potential/api/test_potential_api.py

import pytest
from fastapi.testclient import TestClient
from rq.exceptions import NoSuchJobError

from address_resolution.api.dependencies import get_resolution_context
from address_resolution.domain.errors import PermanentUpstreamError
from sales_potential.api.potential_api import app
from sales_potential.api.routes import get_job_fetcher, get_queue

from tests.conftest import FakeProvider, candidate


class FakeRQJob:
    def __init__(self, job_id, args=()):
        self.id = job_id
        self.args = args
        self.meta = {}
        self.result = None
        self.is_finished = False

    def save_meta(self):
        pass

    def get_status(self):
        return "finished" if self.is_finished else "queued"


class FakeQueue:
    def __init__(self):
        self.jobs = {}

    def enqueue(self, func, *args, job_id=None, **kwargs):
        job = FakeRQJob(job_id, args)
        self.jobs[job_id] = job
        return job

    def fetch(self, job_id):
        if job_id not in self.jobs:
            raise NoSuchJobError(job_id)
        return self.jobs[job_id]


@pytest.fixture
def fila():
    return FakeQueue()


@pytest.fixture
def client(make_context, fila):
    def responder(q):
        if q.q == "erro":
            return PermanentUpstreamError("Forbidden", status_code=403, service="nominatim")
        return [candidate()]

    ctx = make_context(FakeProvider(responder))
    app.dependency_overrides[get_resolution_context] = lambda: ctx
    app.dependency_overrides[get_queue] = lambda: fila
    app.dependency_overrides[get_job_fetcher] = lambda: fila.fetch
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}

    corpo = client.get("/address/health").json()
    assert corpo["status"] == "ok"
    assert "cache_hit" in corpo["stats"]


def test_resolve_e_historico(client):
    r = client.post("/address/resolve", json={"rm": "Иванов", "address": "г. Москва, ул. Ленина 5"})

    assert r.status_code == 200
    resultado = r.json()["result"]
    assert resultado["source"] == "explicit"
    assert resultado["status"] == "resolved"
    assert resultado["city"] == "Москва"

    h = client.get("/address/history", params={"rm": "Иванов", "address": "г. москва ул. ленина 5"})
    assert h.status_code == 200
    assert h.json()["history"] == ["г. Москва, ул. Ленина 5"]


def test_resolve_batch(client):
    r = client.post("/address/resolve/batch", json={"items": [
        {"rm": "Иванов", "address": "Казань"},
        {"address": "qwxz zzkq"},
    ]})

    assert r.status_code == 200
    corpo = r.json()
    assert corpo["total"] == 2
    assert [x["result"]["source"] for x in corpo["results"]] == ["city_lookup", "unknown"]


@pytest.mark.parametrize(
    "metodo, url, kwargs",
    [
        ("get", "/address/history", {"params": {"rm": "Иванов"}}),
        ("get", "/address/history", {"params": {"address": "Москва"}}),
        ("post", "/address/resolve", {"json": {"rm": "Иванов"}}),
        ("post", "/address/resolve", {"json": {"address": "   "}}),
        ("post", "/address/resolve/batch", {"json": {"items": []}}),
        ("get", "/address/geocode", {}),
    ],
)
def test_parametros_ausentes_viram_400(client, metodo, url, kwargs):
    r = getattr(client, metodo)(url, **kwargs)

    assert r.status_code == 400
    assert "error" in r.json()


def test_geocode_repassa_status_do_upstream(client):
    ok = client.get("/address/geocode", params={"q": "Москва"})
    assert ok.status_code == 200
    assert ok.json()["total"] == 1

    r = client.get("/address/geocode", params={"q": "erro"})

    assert r.status_code == 502
    corpo = r.json()
    assert corpo["service"] == "nominatim"
    assert corpo["upstream_status"] == 403


def test_jobs_enfileirar_e_consultar(client, fila):
    r = client.post("/potential/jobs", json={"year": 2024})

    assert r.status_code == 200
    job_id = r.json()["job_id"]
    assert job_id.startswith("potential-2024-")
    assert fila.jobs[job_id].args == (2024, None, None)

    status = client.get(f"/potential/jobs/{job_id}").json()
    assert status["status"] == "queued"
    assert status["progress"] == 0
    assert status["result"] is None

    job = fila.jobs[job_id]
    job.meta.update({"status": "done", "progress": 100})
    job.is_finished = True
    job.result = {"status": "done"}
    assert client.get(f"/potential/jobs/{job_id}").json()["result"] == {"status": "done"}


def test_jobs_ano_invalido_e_inexistente(client):
    assert client.post("/potential/jobs", json={"year": 1999}).status_code == 400
    assert client.post("/potential/jobs", json={}).status_code == 400
    assert client.get("/potential/jobs/nao-existe").status_code == 404

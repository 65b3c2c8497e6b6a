import httpx
import pytest
from fastapi.testclient import TestClient

import app.infra.api.security as security
from app.application.jobs.sync_job import VademecumSyncJob
from app.application.recommend_use_case import RecommendProductsUseCase
from app.application.sync_use_case import SyncFilters, SyncProductsUseCase
from app.container import get_catalog_client, get_recommend_use_case, get_supplement_repo, get_sync_job
from app.domain.errors import CatalogFetchError
from app.infra.api.vademecum_client import RateLimiter, VademecumClient
from app.infra.cache.catalog_cache import CatalogCache
from app.infra.cache.run_lock import InProcessRunGuard
from main import app
from tests.fakes import CountingGuard, FakeCatalogClient, card

API = {"X-Api-Key": "svc-key"}
ADMIN = {**API, "X-Admin-Key": "admin-key"}


def _sync_job(client, repo, guard=None):
    uc = SyncProductsUseCase(
        client, repo,
        filters=SyncFilters(brand_allowlist=[], skip_prescription=False, supplements_only=False),
        batch_delay=0,
    )
    return VademecumSyncJob(uc, guard or InProcessRunGuard())


@pytest.fixture
def vendor_client():
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"product": []})),
        base_url="https://vendor.test",
    )
    return VademecumClient(CatalogCache(), http, limiter=RateLimiter(1000))


@pytest.fixture
def cli(monkeypatch, user_repo, supplement_repo, vendor_client):
    monkeypatch.setattr(security, "REQUIRE_API_KEY", True)
    monkeypatch.setattr(security, "SERVICE_API_KEY", "svc-key")
    monkeypatch.setattr(security, "ADMIN_API_KEY", "admin-key")

    catalog = FakeCatalogClient([{"id": 201, "name": "Omega 3"}], {201: card(201, "Omega 3")})
    app.dependency_overrides[get_recommend_use_case] = lambda: RecommendProductsUseCase(user_repo, supplement_repo)
    app.dependency_overrides[get_supplement_repo] = lambda: supplement_repo
    app.dependency_overrides[get_catalog_client] = lambda: vendor_client
    app.dependency_overrides[get_sync_job] = lambda: _sync_job(catalog, supplement_repo)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_api_key_required(cli):
    assert cli.get("/v1/supplements").status_code == 401
    assert cli.get("/v1/supplements", headers={"X-Api-Key": "wrong"}).status_code == 401


def test_service_key_not_configured(cli, monkeypatch):
    monkeypatch.setattr(security, "SERVICE_API_KEY", "")
    assert cli.get("/v1/supplements", headers=API).status_code == 503


def test_recommendations(cli):
    res = cli.get("/v1/supplements/recommendations", headers={**API, "X-User-Id": "u-goals"})
    assert res.status_code == 200
    body = res.json()
    assert body["is_success"] is True
    assert body["data"]["total_matches"] == 2
    assert body["data"]["user_goals"] == ["bağışıklık", "enerji"]
    assert [r["vademecum_id"] for r in body["data"]["recommendations"]] == [101, 102]


@pytest.mark.parametrize("headers, status", [
    ({}, 401),
    ({"X-User-Id": "nobody"}, 404),
    ({"X-User-Id": "u-noform"}, 400),
])
def test_recommendation_errors(cli, headers, status):
    res = cli.get("/v1/supplements/recommendations", headers={**API, **headers})
    assert res.status_code == status


def test_recommendations_empty_goals(cli):
    res = cli.get("/v1/supplements/recommendations", headers={**API, "X-User-Id": "u-nogoals"})
    assert res.status_code == 200
    assert res.json()["data"] == {"recommendations": [], "total_matches": 0, "user_goals": []}


def test_list_supplements_paginates_active_only(cli):
    res = cli.get("/v1/supplements", params={"page": 1, "limit": 3}, headers=API)
    assert res.status_code == 200
    page = res.json()["data"]
    assert len(page["supplements"]) == 3
    assert page["pagination"] == {"page": 1, "limit": 3, "total": 4, "total_pages": 2, "has_more": True}

    res = cli.get("/v1/supplements", params={"page": 2, "limit": 3}, headers=API)
    assert res.json()["data"]["pagination"]["has_more"] is False
    assert all(s["is_active"] for s in res.json()["data"]["supplements"])


def test_list_supplements_search(cli):
    res = cli.get("/v1/supplements", params={"search": "kalsiyum"}, headers=API)
    names = [s["name"] for s in res.json()["data"]["supplements"]]
    assert names == ["Kalsiyum D3"]


def test_get_supplement(cli, supplement_repo):
    sid = supplement_repo.docs[("102", "vademecum")].id
    res = cli.get(f"/v1/supplements/{sid}", headers=API)
    assert res.status_code == 200
    assert res.json()["data"]["name"] == "Enerji Plus Tablet"
    assert res.json()["data"]["form"] == "tablet"

    assert cli.get("/v1/supplements/does-not-exist", headers=API).status_code == 404


def test_sync_requires_admin(cli, monkeypatch):
    assert cli.post("/v1/supplements/sync", headers=API).status_code == 403
    assert cli.post("/v1/supplements/sync", headers={**API, "X-Admin-Key": "nope"}).status_code == 403
    monkeypatch.setattr(security, "ADMIN_API_KEY", "")
    assert cli.post("/v1/supplements/sync", headers=ADMIN).status_code == 503


def test_sync_runs_and_upserts(cli, supplement_repo):
    res = cli.post("/v1/supplements/sync", headers=ADMIN)
    assert res.status_code == 200
    body = res.json()
    assert body["is_success"] is True
    assert body["data"]["stats"] == {"total": 1, "synced": 1, "failed": 0, "skipped": 0}
    assert ("201", "vademecum") in supplement_repo.docs


def test_sync_already_running_is_409(cli, supplement_repo):
    guard = CountingGuard()
    guard.held = True
    app.dependency_overrides[get_sync_job] = lambda: _sync_job(FakeCatalogClient([], {}), supplement_repo, guard)
    assert cli.post("/v1/supplements/sync", headers=ADMIN).status_code == 409


def test_sync_listing_failure_is_502(cli, supplement_repo):
    failing = FakeCatalogClient([], {}, listing_error=CatalogFetchError("Failed to fetch products: x (status: 500)", 500))
    app.dependency_overrides[get_sync_job] = lambda: _sync_job(failing, supplement_repo)
    res = cli.post("/v1/supplements/sync", headers=ADMIN)
    assert res.status_code == 502
    assert res.json()["detail"] == "Sync failed: Failed to fetch products: x (status: 500)"


def test_cache_stats_and_clear(cli, vendor_client):
    vendor_client.cache.set_product_list([])
    res = cli.get("/v1/supplements/cache/stats", headers=ADMIN)
    assert res.status_code == 200
    assert res.json()["data"] == {"product_cards": 0, "product_list": "cached"}

    res = cli.delete("/v1/supplements/cache", headers=ADMIN)
    assert res.json()["data"]["product_list"] == "empty"

    assert cli.get("/v1/supplements/cache/stats", headers=API).status_code == 403


def test_healthz(cli):
    assert cli.get("/healthz").json() == {"ok": True}

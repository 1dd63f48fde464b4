"""
Tests for the HTTP layer (`api/`).

Covers contract rules:
- Caller identity comes from the X-User-* headers; a bad role is a 400.
- Workflow errors map to HTTP codes: validation 422, capability 403,
  state guards 409, unknown sale 404.
- Drafts, submission, review and dashboard endpoints share one store.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.dependencies import SessionRegistry, get_registry
from api.main import app
from repositories.kv_store import InMemoryKeyValueStore
from services.config import EngineConfig

SELLER = {"X-User-Id": "seller-1", "X-User-Name": "João Vendedor", "X-User-Role": "SELLER"}
MANAGER = {"X-User-Id": "manager-1", "X-User-Name": "Marta Gestora", "X-User-Role": "MANAGER"}


@pytest.fixture
def registry(remote) -> SessionRegistry:
    return SessionRegistry(InMemoryKeyValueStore(), remote, EngineConfig())


@pytest.fixture
def client(registry):
    app.dependency_overrides[get_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def form(valid_customer):
    return valid_customer.as_dict()


def submit(client, form, **extra):
    response = client.post("/api/v1/sales", json={"customer_data": form, **extra}, headers=SELLER)
    assert response.status_code == 201, response.text
    return response.json()


def transition(client, sale_id, target, reason=None, headers=MANAGER):
    return client.post(
        f"/api/v1/sales/{sale_id}/transition",
        json={"target_status": target, "reason": reason},
        headers=headers,
    )


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestIdentity:
    def test_invalid_role_is_rejected(self, client) -> None:
        response = client.get("/api/v1/drafts", headers={**SELLER, "X-User-Role": "INTERN"})

        assert response.status_code == 400
        assert "Invalid role" in response.json()["detail"]

    def test_missing_headers_fail_validation(self, client) -> None:
        assert client.get("/api/v1/drafts").status_code == 422

    def test_role_is_case_insensitive(self, client) -> None:
        response = client.get("/api/v1/drafts", headers={**SELLER, "X-User-Role": "seller"})

        assert response.status_code == 200


class TestDrafts:
    def test_blank_form_is_not_saved(self, client) -> None:
        response = client.post("/api/v1/drafts", json={"customer_data": {"email": "x@example.com"}}, headers=SELLER)

        body = response.json()
        assert response.status_code == 200
        assert body["saved"] is False
        assert body["draft"] is None

    def test_save_update_and_delete(self, client) -> None:
        first = client.post("/api/v1/drafts", json={"customer_data": {"nome": "Maria"}}, headers=SELLER).json()
        draft_id = first["draft"]["id"]
        assert draft_id.startswith("TMP_")
        assert first["draft"]["status"] == "RASCUNHO"

        client.post(
            "/api/v1/drafts",
            json={"customer_data": {"nome": "Maria da Silva"}, "draft_id": draft_id},
            headers=SELLER,
        )
        listed = client.get("/api/v1/drafts", headers=SELLER).json()
        assert listed["total_count"] == 1
        assert listed["items"][0]["customer_data"]["nome"] == "Maria da Silva"

        assert client.delete(f"/api/v1/drafts/{draft_id}", headers=SELLER).json() == {
            "deleted": True,
            "draft_id": draft_id,
        }
        assert client.delete(f"/api/v1/drafts/{draft_id}", headers=SELLER).status_code == 404

    def test_drafts_are_private(self, client) -> None:
        client.post("/api/v1/drafts", json={"customer_data": {"nome": "Maria"}}, headers=SELLER)

        assert client.get("/api/v1/drafts", headers=MANAGER).json()["total_count"] == 0


class TestSales:
    def test_submit_promotes_draft(self, client, form) -> None:
        draft = client.post("/api/v1/drafts", json={"customer_data": form}, headers=SELLER).json()["draft"]

        sale = submit(client, form, sale_id=draft["id"])

        assert sale["status"] == "EM_ANDAMENTO"
        assert len(sale["id"]) == 9
        assert [e["status"] for e in sale["status_history"]] == ["EM_ANDAMENTO"]
        assert client.get("/api/v1/drafts", headers=SELLER).json()["total_count"] == 0

    def test_invalid_form_is_422_with_fields(self, client, form) -> None:
        response = client.post(
            "/api/v1/sales",
            json={"customer_data": {**form, "plano": ""}},
            headers=SELLER,
        )

        body = response.json()
        assert response.status_code == 422
        assert body["error"] == "validation_failed"
        assert body["fields"] == {"plano": "Obrigatório"}
        assert client.get("/api/v1/sales", headers=SELLER).json()["total_count"] == 0

    def test_review_cycle(self, client, form) -> None:
        sale_id = submit(client, form)["id"]

        approved = transition(client, sale_id, "ANALISADA")
        assert approved.status_code == 200
        assert approved.json()["status"] == "ANALISADA"

        short = transition(client, sale_id, "EM_ANDAMENTO", reason="cpf")
        assert short.status_code == 409
        assert short.json()["error"] == "reason_required"

        returned = transition(client, sale_id, "EM_ANDAMENTO", reason="cpf incorreto").json()
        assert returned["return_reason"] == "cpf incorreto"
        assert returned["status_history"][-1]["reason"] == "cpf incorreto"

        queue = client.get("/api/v1/sales", params={"scope": "returned"}, headers=SELLER).json()
        assert [s["id"] for s in queue["items"]] == [sale_id]

        resubmitted = submit(client, form, sale_id=sale_id)
        assert resubmitted["return_reason"] is None

        assert transition(client, sale_id, "FINALIZADA").status_code == 200
        frozen = transition(client, sale_id, "ANALISADA")
        assert frozen.status_code == 409
        assert frozen.json()["error"] == "immutable"

    def test_seller_cannot_transition(self, client, form) -> None:
        sale_id = submit(client, form)["id"]

        response = transition(client, sale_id, "ANALISADA", headers=SELLER)

        assert response.status_code == 403
        assert response.json()["error"] == "capability"

    def test_unknown_sale_is_404(self, client) -> None:
        response = transition(client, "ZZZZZZZZZ", "ANALISADA")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_invalid_scope_is_400(self, client) -> None:
        assert client.get("/api/v1/sales", params={"scope": "everything"}, headers=MANAGER).status_code == 400

    def test_scope_defaults_by_role(self, client, form) -> None:
        submit(client, form)

        assert client.get("/api/v1/sales", headers=SELLER).json()["scope"] == "own"
        manager_view = client.get("/api/v1/sales", headers=MANAGER).json()
        assert manager_view["scope"] == "all"
        assert manager_view["total_count"] == 1


class TestDashboard:
    def test_stats_and_regression_notification(self, client, form) -> None:
        sale_id = submit(client, form)["id"]
        transition(client, sale_id, "ANALISADA")
        transition(client, sale_id, "EM_ANDAMENTO", reason="cpf incorreto")

        stats = client.get("/api/v1/stats", headers=MANAGER).json()
        assert stats["total"] == 1
        assert stats["funnel"] == {"EM_ANDAMENTO": 1}
        assert stats["regressed_ids"] == [sale_id]
        assert stats["top_sellers"][0]["seller_name"] == "João Vendedor"
        assert len(stats["trend"]) == 7

        feed = client.get("/api/v1/notifications", headers=MANAGER).json()
        alerts = [n for n in feed if n["message"].startswith("ALERTA")]
        assert len(alerts) == 1
        assert alerts[0]["type"] == "warning"

    def test_seller_stats_hide_ranking(self, client, form) -> None:
        submit(client, form)

        stats = client.get("/api/v1/stats", headers=SELLER).json()

        assert stats["total"] == 1
        assert stats["top_sellers"] == []


class TestSync:
    def test_sync_pushes_visible_sales(self, client, form, remote) -> None:
        submit(client, form)

        report = client.post("/api/v1/sync", headers=SELLER).json()

        assert report == {"succeeded": 1, "failed": 0, "skipped": 0, "errors": []}
        assert list(remote.tables["clientes"]) == ["maria@example.com"]

    def test_sync_failures_are_reported(self, client, form, remote) -> None:
        sale_id = submit(client, form)["id"]
        remote.fail_on = lambda table, row: table == "vendas"

        report = client.post("/api/v1/sync", headers=SELLER).json()

        assert report["failed"] == 1
        assert report["errors"][0]["sale_id"] == sale_id

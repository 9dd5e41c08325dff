"""
API tests for the procurement approval routes
Runs against the in-memory request store with the current user overridden
"""
import itertools

import pytest
from fastapi.testclient import TestClient

from server import app
from routes import procurement_routes
from routes.auth_routes import get_current_user_summary
from app.procurement.domain.models import UserSummary
from app.procurement.infrastructure.memory_repository import InMemoryRequestRepository

USERS = {
    "finance_manager": UserSummary(id="u-1", name="Fin Manager", role="manager", department="Finance"),
    "finance_head": UserSummary(id="u-2", name="Fin Head", role="head", department="Finance"),
    "it_normal": UserSummary(id="u-3", name="Normal IT", role="normal", department="IT"),
    "operations_head": UserSummary(id="u-4", name="Ops Head", role="head", department="Operations"),
    "management_head": UserSummary(id="u-5", name="Head User", role="head", department="Management"),
}

CHAIN = [
    "finance_manager",
    "finance_manager",
    "finance_head",
    "it_normal",
    "operations_head",
    "management_head",
]

DEMAND = {
    "title": "Laptops",
    "type": "hardware",
    "description": "Replacement laptops",
    "budget": "250000",
    "priority": "high",
    "quantity": 3,
}


class ApiSession:
    def __init__(self) -> None:
        self.store = {}
        self.user = USERS["finance_manager"]
        self.client = TestClient(app)

    def act_as(self, key: str) -> "ApiSession":
        self.user = USERS[key]
        return self


@pytest.fixture
def api(monkeypatch):
    session = ApiSession()
    ids = itertools.count(1)
    monkeypatch.setattr(procurement_routes, "generate_request_id", lambda: f"PR-{next(ids)}")

    app.dependency_overrides[procurement_routes.get_request_repository] = (
        lambda: InMemoryRequestRepository(session.store)
    )
    app.dependency_overrides[get_current_user_summary] = lambda: session.user
    yield session
    app.dependency_overrides.clear()


def raise_demand(api, **overrides):
    payload = dict(DEMAND, **overrides)
    response = api.client.post("/api/procurement/requests", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


class TestRaiseDemand:
    def test_new_request_is_pending_at_level_one(self, api):
        data = raise_demand(api)

        assert data["id"] == "PR-1"
        assert data["status"] == "pending_approval"
        assert data["current_approval_level"] == 1
        assert len(data["approval_hierarchy"]) == 6
        assert data["approval_history"] == []
        assert data["department"] == "Finance"
        assert data["currency"] == "PKR"

    def test_missing_fields_rejected(self, api):
        response = api.client.post("/api/procurement/requests", json={"title": "Laptops"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Please fill in all required fields"


class TestListRequests:
    def test_filters(self, api):
        raise_demand(api, title="Laptops")
        raise_demand(api, title="Antivirus", type="software", description="Endpoint protection")

        all_requests = api.client.get("/api/procurement/requests", params={"type": "all"}).json()
        software = api.client.get("/api/procurement/requests", params={"type": "software"}).json()
        search = api.client.get("/api/procurement/requests", params={"search": "laptop"}).json()
        by_description = api.client.get("/api/procurement/requests", params={"search": "PROTECTION"}).json()

        assert [r["id"] for r in all_requests] == ["PR-2", "PR-1"]
        assert [r["id"] for r in software] == ["PR-2"]
        assert [r["id"] for r in search] == ["PR-1"]
        assert [r["id"] for r in by_description] == ["PR-2"]

    def test_corrupted_store_returns_generic_error(self, api):
        api.store["procurementRequests"] = "[{broken"

        response = api.client.get("/api/procurement/requests")

        assert response.status_code == 500
        assert response.json()["detail"] == "Procurement data could not be loaded or saved"

    def test_export_returns_workbook(self, api):
        raise_demand(api)

        response = api.client.get("/api/procurement/requests/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert response.content[:2] == b"PK"


class TestApprovalChain:
    def test_full_chain_approves_request(self, api):
        request_id = raise_demand(api)["id"]

        data = None
        for level, actor in enumerate(CHAIN, 1):
            response = api.act_as(actor).client.post(
                f"/api/procurement/requests/{request_id}/approve",
                json={"note": f"level {level} ok", "expected_level": level},
            )
            assert response.status_code == 200, response.text
            data = response.json()

        assert data["status"] == "approved"
        assert data["current_approval_level"] == 6
        assert [entry["level"] for entry in data["approval_history"]] == [1, 2, 3, 4, 5, 6]
        assert data["approval_history"][3]["inventory_check"] == {
            "result": "checked",
            "note": "level 4 ok",
        }

    def test_wrong_actor_forbidden(self, api):
        request_id = raise_demand(api)["id"]

        response = api.act_as("it_normal").client.post(
            f"/api/procurement/requests/{request_id}/approve", json={"note": "ok"}
        )

        assert response.status_code == 403

    def test_stale_level_conflict(self, api):
        request_id = raise_demand(api)["id"]
        url = f"/api/procurement/requests/{request_id}/approve"
        api.client.post(url, json={"expected_level": 1})

        response = api.client.post(url, json={"expected_level": 1})

        assert response.status_code == 409

    def test_reject_requires_reason_and_is_terminal(self, api):
        request_id = raise_demand(api)["id"]
        reject_url = f"/api/procurement/requests/{request_id}/reject"

        assert api.client.post(reject_url, json={"reason": ""}).status_code == 400

        response = api.client.post(reject_url, json={"reason": "over budget"})
        assert response.status_code == 200
        assert response.json()["status"] == "rejected"

        again = api.client.post(f"/api/procurement/requests/{request_id}/approve", json={})
        assert again.status_code == 400
        detail = api.client.get(f"/api/procurement/requests/{request_id}").json()
        assert len(detail["approval_history"]) == 1

    def test_detail_exposes_affordances(self, api):
        request_id = raise_demand(api)["id"]

        mine = api.client.get(f"/api/procurement/requests/{request_id}").json()
        theirs = api.act_as("management_head").client.get(f"/api/procurement/requests/{request_id}").json()

        assert mine["approval"]["can_act"] is True
        assert theirs["approval"]["can_act"] is False
        assert mine["approval"]["current_step"]["title"] == "Demand Raise"
        assert mine["approval"]["steps"][0]["state"] == "current"

    def test_unknown_request(self, api):
        response = api.client.get("/api/procurement/requests/PR-404")

        assert response.status_code == 404


def test_health(api):
    response = api.client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

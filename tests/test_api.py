import pytest
from fastapi.testclient import TestClient

from conftest import FakeCatalog, FakeEstimateStore, FakeQuotationStore, FakeRateCards, FakeSettings
from core.calculator import EstimateOrchestrator
from core.config import AppConfig
from core.costing import ProjectCostingService
from core.quotation import QuotationService
from web.api import (
    app,
    get_catalog,
    get_costing_service,
    get_orchestrator,
    get_quotation_service,
    get_settings_provider,
)


@pytest.fixture
def store():
    return FakeEstimateStore()


@pytest.fixture
def quotation_store():
    return FakeQuotationStore(existing=1)


@pytest.fixture
def client(pricing_settings, fixture_items, brand_products, fixture_map, service_rates, store, quotation_store):
    app.dependency_overrides[get_orchestrator] = lambda: EstimateOrchestrator(
        FakeSettings(pricing_settings), FakeCatalog(fixture_items, brand_products), store, fixture_map,
    )
    app.dependency_overrides[get_costing_service] = lambda: ProjectCostingService(
        FakeRateCards(service_rates), FakeCatalog(products=brand_products),
    )
    app.dependency_overrides[get_quotation_service] = lambda: QuotationService(quotation_store)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


class TestEstimateEndpoints:
    def test_calculate(self, client, complete_state, store):
        resp = client.post("/estimate/calculate", json=complete_state.model_dump(mode="json"))
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == pytest.approx(7500 + 18000 + 7200 + 32140 + 28000)
        assert store.saved == []

    def test_calculate_and_save(self, client, complete_state, store):
        resp = client.post("/estimate", json=complete_state.model_dump(mode="json"))
        assert resp.status_code == 200
        assert resp.json()["saved"] is True
        assert len(store.saved) == 1

    def test_missing_name_is_400(self, client, complete_state):
        payload = complete_state.model_dump(mode="json")
        payload["customer_details"]["name"] = ""
        resp = client.post("/estimate", json=payload)
        assert resp.status_code == 400
        assert "customer_details.name" in resp.json()["detail"]

    def test_settings_failure_is_503(self, client, complete_state, fixture_items, fixture_map):
        app.dependency_overrides[get_orchestrator] = lambda: EstimateOrchestrator(
            FakeSettings(error=OSError("settings file gone")), FakeCatalog(fixture_items),
            FakeEstimateStore(), fixture_map,
        )
        resp = client.post("/estimate/calculate", json=complete_state.model_dump(mode="json"))
        assert resp.status_code == 503
        assert resp.json()["detail"]["code"] == "SETTINGS_UNAVAILABLE"

    def test_catalog_failure_is_503(self, client, complete_state, pricing_settings, fixture_map):
        app.dependency_overrides[get_orchestrator] = lambda: EstimateOrchestrator(
            FakeSettings(pricing_settings), FakeCatalog(fixture_error=OSError("catalog gone")),
            FakeEstimateStore(), fixture_map,
        )
        resp = client.post("/estimate/calculate", json=complete_state.model_dump(mode="json"))
        assert resp.status_code == 503
        assert resp.json()["detail"]["code"] == "CATALOG_UNAVAILABLE"

    def test_missing_fixture_map_is_503(self, client, complete_state, pricing_settings, fixture_items,
                                        tmp_path, monkeypatch):
        del app.dependency_overrides[get_orchestrator]
        app.dependency_overrides[get_settings_provider] = lambda: FakeSettings(pricing_settings)
        app.dependency_overrides[get_catalog] = lambda: FakeCatalog(fixture_items)
        monkeypatch.setattr("web.api.get_config", lambda: AppConfig(data_dir=tmp_path, history_dir=tmp_path / "history"))

        resp = client.post("/estimate/calculate", json=complete_state.model_dump(mode="json"))
        assert resp.status_code == 503
        assert resp.json()["detail"]["code"] == "SETTINGS_UNAVAILABLE"

    def test_save_failure_still_returns_estimate(self, client, complete_state, pricing_settings,
                                                 fixture_items, brand_products, fixture_map):
        app.dependency_overrides[get_orchestrator] = lambda: EstimateOrchestrator(
            FakeSettings(pricing_settings), FakeCatalog(fixture_items, brand_products),
            FakeEstimateStore(error=OSError("disk full")), fixture_map,
        )
        resp = client.post("/estimate", json=complete_state.model_dump(mode="json"))
        assert resp.status_code == 200
        body = resp.json()
        assert body["saved"] is False
        assert body["error_code"] == "DATABASE_ERROR"
        assert body["estimate"]["total"] > 0


class TestInternalPricing:
    def test_breakdown(self, client):
        resp = client.post("/pricing/internal", json={"base_price": 10000, "margin_percentage": 20})
        assert resp.status_code == 200
        assert resp.json()["total_price"] == pytest.approx(14160)

    def test_negative_margin_is_400(self, client):
        resp = client.post("/pricing/internal", json={"base_price": 10000, "margin_percentage": -5})
        assert resp.status_code == 400


class TestProjectEndpoints:
    @pytest.fixture
    def payload(self):
        return {
            "washrooms": [{
                "id": "w1", "name": "Master Bath", "length": 8, "width": 6, "selected_brand": "jaquar",
                "services": {"demolition": True, "tiling": True},
            }],
            "original_estimate": 50000,
            "cost_items": [{"id": "c1", "name": "Supervision", "amount": 5000, "category": "execution"}],
        }

    def test_project_costs(self, client, payload):
        resp = client.post("/projects/proj-1/costs", json=payload)
        assert resp.status_code == 200
        body = resp.json()
        assert body["execution_total"] == pytest.approx(12000 + 165 * 48 + 5000)
        assert body["final_quotation_amount"] == pytest.approx(50000 + 12000 + 7920 + 5000)

    def test_quotation(self, client, payload, quotation_store):
        payload["project"] = {"id": "ignored", "project_code": "RP-7", "client_name": "Asha Rao"}
        resp = client.post("/projects/proj-1/quotations", json=payload)
        assert resp.status_code == 200
        body = resp.json()
        assert body["project_id"] == "proj-1"
        assert body["quotation_number"].startswith("QUO-RP-7-")
        assert body["quotation_number"].endswith("-2")
        assert len(quotation_store.saved) == 1

    def test_negative_project_margin_is_400(self, client, payload):
        payload.update(internal_pricing=True, margins={"w1": -1})
        resp = client.post("/projects/proj-1/costs", json=payload)
        assert resp.status_code == 400

    def test_negative_rate_override_is_400(self, client, payload):
        payload["execution_cost_overrides"] = {"demolition": -500}
        resp = client.post("/projects/proj-1/costs", json=payload)
        assert resp.status_code == 400
        assert "demolition" in resp.json()["detail"]

    def test_non_finite_rate_override_falls_back_to_card(self, client, payload):
        payload["execution_cost_overrides"] = {"demolition": "nan"}
        resp = client.post("/projects/proj-1/costs", json=payload)
        assert resp.status_code == 200
        assert resp.json()["final_quotation_amount"] == pytest.approx(50000 + 12000 + 7920 + 5000)

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

pytestmark = pytest.mark.api


def _create(client: TestClient, **fields):
    data = {"name": "Jamie Rivera", "social_handles": "@jamie", "commission_rate": "12.5"}
    data.update(fields)
    response = client.post("/api/v1/influencers/", json=data)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_read_influencer(client: TestClient):
    created = _create(client)
    assert created["referral_code"].startswith("JAMI")
    assert created["is_active"] is True
    assert Decimal(created["commission_rate"]) == Decimal("12.5")

    response = client.get(f"/api/v1/influencers/{created['id']}")
    assert response.status_code == 200
    assert response.json()["referral_code"] == created["referral_code"]


def test_create_influencer_duplicate_code(client: TestClient):
    _create(client, referral_code="SPRING25")
    response = client.post("/api/v1/influencers/", json={"name": "Copycat", "referral_code": "spring25"})
    assert response.status_code == 409
    assert "already in use" in response.json()["detail"]


def test_create_influencer_invalid_rule(client: TestClient):
    response = client.post("/api/v1/influencers/", json={"name": "Fixed", "commission_type": "fixed", "fixed_rate": None})
    assert response.status_code == 422


def test_read_missing_influencer(client: TestClient):
    assert client.get("/api/v1/influencers/9999").status_code == 404


def test_update_influencer(client: TestClient):
    created = _create(client)
    response = client.patch(
        f"/api/v1/influencers/{created['id']}",
        json={"commission_calculation_method": "project_value", "commission_cap": "500"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["commission_calculation_method"] == "project_value"
    assert Decimal(data["commission_cap"]) == Decimal("500")


def test_update_influencer_conflicting_bounds(client: TestClient):
    created = _create(client, commission_minimum="50")
    response = client.patch(f"/api/v1/influencers/{created['id']}", json={"commission_cap": "10"})
    assert response.status_code == 422


def test_soft_delete_influencer(client: TestClient):
    created = _create(client)
    response = client.delete(f"/api/v1/influencers/{created['id']}")
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    # Still readable, hidden from the default listing
    assert client.get(f"/api/v1/influencers/{created['id']}").status_code == 200
    listed = client.get("/api/v1/influencers/").json()
    assert created["id"] not in [i["id"] for i in listed]
    listed = client.get("/api/v1/influencers/", params={"include_inactive": True}).json()
    assert created["id"] in [i["id"] for i in listed]


def test_change_referral_code(client: TestClient):
    created = _create(client)
    response = client.put(f"/api/v1/influencers/{created['id']}/referral-code", json={"referral_code": "fresh001"})
    assert response.status_code == 200
    assert response.json()["referral_code"] == "FRESH001"

    other = _create(client, name="Other Person")
    response = client.put(f"/api/v1/influencers/{other['id']}/referral-code", json={"referral_code": "FRESH001"})
    assert response.status_code == 409


def test_rule_preview_with_overrides(client: TestClient):
    created = _create(client, commission_calculation_method="project_value")
    response = client.get(f"/api/v1/influencers/{created['id']}/rule-preview", params={"project_value": "2000"})
    assert response.status_code == 200
    preview = response.json()
    assert preview["description"] == "12.5% of project value"
    assert preview["rule"]["source"] == "influencer_default"
    assert Decimal(preview["commission"]["final_amount"]) == Decimal("250.00")

    override = client.post("/api/v1/overrides/", json={
        "influencer_id": created["id"],
        "referral_code": created["referral_code"],
        "commission_type": "fixed",
        "fixed_rate": "300",
        "description": "launch week bonus",
    })
    assert override.status_code == 201, override.text
    assert override.json()["scope"] == "code"

    preview = client.get(
        f"/api/v1/influencers/{created['id']}/rule-preview",
        params={"referral_code": created["referral_code"].lower(), "project_value": "2000"},
    ).json()
    assert preview["description"] == "$300 per referral"
    assert preview["rule"]["source"] == "code_override"
    assert preview["rule"]["override_id"] == override.json()["id"]

    overrides = client.get(f"/api/v1/influencers/{created['id']}/overrides").json()
    assert [o["id"] for o in overrides] == [override.json()["id"]]

    assert client.delete(f"/api/v1/overrides/{override.json()['id']}").status_code == 200
    assert client.get(f"/api/v1/overrides/{override.json()['id']}").status_code == 404


def test_override_for_unknown_influencer(client: TestClient):
    response = client.post("/api/v1/overrides/", json={"influencer_id": 9999, "commission_rate": "5"})
    assert response.status_code == 404


def test_rule_preview_unknown_influencer(client: TestClient):
    assert client.get("/api/v1/influencers/9999/rule-preview").status_code == 404


@pytest.mark.parametrize(
    "field", ["name", "commission_type", "commission_calculation_method", "commission_trigger"]
)
def test_update_influencer_rejects_null_required_field(client: TestClient, field):
    created = _create(client)
    response = client.patch(f"/api/v1/influencers/{created['id']}", json={field: None})
    assert response.status_code == 422

    unchanged = client.get(f"/api/v1/influencers/{created['id']}").json()
    assert unchanged[field] == created[field]


def test_customer_override_must_match_referrer(client: TestClient):
    owner = _create(client, name="Owner")
    other = _create(client, name="Other Person")
    customer = client.post("/api/v1/customers/", json={
        "name": "Acme", "email": "acme@example.com", "referral_code": owner["referral_code"],
    }).json()

    response = client.post("/api/v1/overrides/", json={
        "influencer_id": other["id"], "customer_id": customer["id"], "commission_rate": "20",
    })
    assert response.status_code == 422

    response = client.post("/api/v1/overrides/", json={
        "influencer_id": owner["id"], "customer_id": 9999, "commission_rate": "20",
    })
    assert response.status_code == 404

    response = client.post("/api/v1/overrides/", json={
        "influencer_id": owner["id"], "customer_id": customer["id"], "commission_rate": "20",
    })
    assert response.status_code == 201
    assert response.json()["scope"] == "customer"

import pytest
from fastapi.testclient import TestClient

from dealfinder.api import app
from dealfinder.db.snapshot import reset_repository

client = TestClient(app)


def _row(pid: str, dlat: float, price: float, **overrides):
    row = {
        "id": pid,
        "name": f"{pid} Tecumseh Rd",
        "price": price,
        "column1stPrice": 420_000,
        "bedrooms": ["4"],
        "bathrooms": ["3"],
        "propertyType": "Detached",
        "listingStatus": "Active",
        "wards": "Ward 8",
        "address": {"address": f"{pid} Tecumseh Rd", "city": "Windsor", "lat": 42.28 + dlat, "lng": -82.95},
        "daysOnMarket": 60,
        "keywordUsed": "estate sale",
        "realtors": {"linkedItems": [{"name": f"Agent {pid}"}]},
    }
    row.update(overrides)
    return row


@pytest.fixture(autouse=True)
def _snapshot():
    rows = [_row("P1", 0.0, 399_000)]
    rows += [_row(f"C{i}", 0.0004 * i, 380_000 + 10_000 * i) for i in range(1, 6)]
    rows.append(_row("W2", 0.0004, 390_000, wards="Ward 9"))
    reset_repository(rows)
    yield
    reset_repository()


def test_health_reports_snapshot_size():
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "properties": 7}


def test_properties_endpoint():
    resp = client.get("/api/properties", params={"ward": "Ward 8", "limit": 3})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["total"] == len(payload["items"]) == 3
    assert all(item["ward"] == "Ward 8" for item in payload["items"])


def test_property_analysis_endpoint():
    resp = client.get("/api/properties/P1")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["property"]["id"] == "P1"
    assert payload["radius_used"] == "1km"
    assert len(payload["comparables"]) == 5
    assert payload["comparables"][0]["comp_index"] == 1
    assert "global" in payload["score"]
    assert payload["market_stats"]["comp_count"] == 5


def test_same_ward_only_toggle():
    resp = client.get("/api/properties/P1/comparables", params={"same_ward_only": "false"})
    assert resp.status_code == 200
    assert "W2" in [comp["id"] for comp in resp.json()["comparables"]]


def test_fixed_radius_comparables():
    resp = client.get("/api/properties/P1/comparables", params={"radius": "0.1"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["radius_used"] == "0.1mi"
    assert [comp["id"] for comp in payload["comparables"]] == ["C1", "C2", "C3"]


def test_unsupported_radius_is_rejected():
    resp = client.get("/api/properties/P1", params={"radius": "7"})
    assert resp.status_code == 400


def test_unknown_property_is_404():
    assert client.get("/api/properties/missing").status_code == 404
    assert client.get("/api/properties/missing/market-stats").status_code == 404


def test_market_stats_endpoint():
    resp = client.get("/api/properties/P1/market-stats")
    assert resp.status_code == 200
    stats = resp.json()["market_stats"]
    assert stats["avg_price"] == 410_000
    assert stats["price_diff"] == -11_000


def test_scores_endpoint():
    resp = client.get("/api/scores")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["total"] == 7
    assert all(0 <= item["scores"]["global"] <= 100 for item in payload["items"])


def test_realtor_rankings_endpoint():
    resp = client.get("/api/realtors/rankings")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["total"] == len(payload["rankings"])
    for badges in payload["rankings"].values():
        assert 1 <= len(badges) <= 5

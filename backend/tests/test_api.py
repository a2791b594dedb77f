"""HTTP surface tests through FastAPI's TestClient."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from gardenbook.database import get_db, get_session_factory
from gardenbook.dependencies import get_config, get_notifier, get_slots_cache
from gardenbook.main import app

from conftest import DAY, RecordingSender

D = DAY.isoformat()

PALM_TARIFF = {
    "schema_version": 2,
    "kind": "table",
    "unit": "count",
    "range_prices": {"Washingtonia": {"0-5": 60, "5-12": 100, "12-20": 150, "20+": 220}},
    "selected_species": ["Washingtonia"],
    "condition_surcharges": {"normal": 0, "neglected": 20, "very_neglected": 50},
    "waste_removal": {"option": "extra_percentage", "percentage": 10},
}

SCENARIO_C_TASK = {
    "service_type": "palm",
    "quantity": "2",
    "unit": "count",
    "condition": "neglected",
    "waste_removal": True,
    "extra_attributes": {"species": "Washingtonia", "height_range": "5-12"},
}


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def client(session_factory, config, sender):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_slots_cache] = lambda: None
    app.dependency_overrides[get_notifier] = lambda: sender
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def open_hours(client, hours, provider_id="gardener-1", day=D):
    resp = client.put("/availability", json={"provider_id": provider_id, "date": day, "available": hours})
    assert resp.status_code == 200
    return resp.json()


class TestAvailabilityApi:
    def test_put_and_get(self, client):
        assert open_hours(client, [9, 10, 11, 12])["hours"] == [9, 10, 11, 12]
        resp = client.get("/availability", params={"provider_id": "gardener-1", "date": D})
        assert resp.json()["hours"] == [9, 10, 11, 12]

    def test_replace_day(self, client):
        open_hours(client, [8, 9, 10])
        resp = client.put("/availability", json={"provider_id": "gardener-1", "date": D, "replace": [10, 11]})
        assert resp.json()["hours"] == [10, 11]

    def test_range_and_default(self, client):
        resp = client.post("/availability/default", json={"provider_id": "gardener-1", "date_from": D, "days": 2})
        assert len(resp.json()["seeded"]) == 2

        resp = client.get("/availability/range", params={
            "provider_id": "gardener-1", "date_from": D, "date_to": "2030-06-10",
        })
        body = resp.json()
        assert [day["hours"] for day in body["days"]] == [list(range(8, 18))] * 2
        assert body["available_dates"] == [D, "2030-06-04"]

    def test_invalid_hour(self, client):
        resp = client.put("/availability", json={"provider_id": "gardener-1", "date": D, "available": [25]})
        assert resp.status_code == 400
        assert resp.json()["error"] == "InvalidRequest"

    def test_rejected_update_writes_nothing(self, client):
        open_hours(client, [9])
        resp = client.put("/availability", json={
            "provider_id": "gardener-1", "date": D, "available": [10], "unavailable": [30],
        })
        assert resp.status_code == 400
        resp = client.get("/availability", params={"provider_id": "gardener-1", "date": D})
        assert resp.json()["hours"] == [9]

    def test_clear_day_refused_with_active_booking(self, client):
        open_hours(client, [9])
        client.post("/bookings", json={
            "provider_id": "gardener-1", "client_id": "c1", "date": D,
            "start_hour": 9, "duration_hours": 1, "total_price": "40",
        })
        resp = client.delete("/availability", params={"provider_id": "gardener-1", "date": D})
        assert resp.status_code == 400


class TestSlotsApi:
    def test_starts_scenario_a(self, client):
        open_hours(client, [9, 10, 11, 12])
        resp = client.get("/slots/starts", params={"provider_id": "gardener-1", "date": D, "duration": 2})
        assert resp.json()["hours"] == [9, 10, 11]

    def test_bad_duration(self, client):
        resp = client.get("/slots/starts", params={"provider_id": "gardener-1", "date": D, "duration": 0})
        assert resp.status_code == 400

    def test_first(self, client):
        open_hours(client, [15], day="2030-06-05")
        resp = client.get("/slots/first", params={
            "provider_id": "gardener-1", "from_date": D, "duration": 1, "horizon_days": 5,
        })
        assert resp.json()["slot"] == {"provider_id": "gardener-1", "date": "2030-06-05", "hour": 15}

    def test_rank(self, client):
        open_hours(client, [15], provider_id="gardener-2")
        open_hours(client, [9], provider_id="gardener-3")
        resp = client.post("/slots/rank", json={
            "provider_ids": ["gardener-1", "gardener-2", "gardener-3"],
            "from_date": D, "duration": 1, "horizon_days": 3,
        })
        providers = resp.json()["providers"]
        assert [p["provider_id"] for p in providers] == ["gardener-3", "gardener-2", "gardener-1"]
        assert providers[-1]["slot"] is None


class TestBookingsApi:
    def test_create_conflict_cancel(self, client, sender):
        open_hours(client, [9, 10, 11, 12])
        payload = {
            "provider_id": "gardener-1", "client_id": "c1", "date": D,
            "start_hour": 9, "duration_hours": 2, "total_price": "120",
        }
        resp = client.post("/bookings", json=payload)
        assert resp.status_code == 201
        booking = resp.json()
        assert booking["status"] == "pending"

        resp = client.post("/bookings", json={**payload, "client_id": "c2"})
        assert resp.status_code == 409
        assert resp.json()["alternatives"] == [11]

        resp = client.post(f"/bookings/{booking['id']}/cancel", json={"reason": "rain"})
        assert resp.json()["status"] == "cancelled"
        assert resp.json()["cancel_reason"] == "rain"
        assert client.get("/availability", params={"provider_id": "gardener-1", "date": D}).json()["hours"] == [9, 10, 11, 12]
        assert sender.types == ["booking_cancelled"]

    def test_status_actions(self, client):
        open_hours(client, [9])
        booking = client.post("/bookings", json={
            "provider_id": "gardener-1", "client_id": "c1", "date": D,
            "start_hour": 9, "duration_hours": 1, "total_price": "40",
        }).json()

        resp = client.post(f"/bookings/{booking['id']}/complete")
        assert resp.status_code == 409
        assert resp.json()["from_status"] == "pending"

        for action, status in [("confirm", "confirmed"), ("start", "in_progress"), ("complete", "completed")]:
            resp = client.post(f"/bookings/{booking['id']}/{action}")
            assert resp.json()["status"] == status

    def test_booking_priced_from_tasks(self, client):
        client.put("/tariffs/gardener-1/palm", json=PALM_TARIFF)
        open_hours(client, [9, 10, 11])
        resp = client.post("/bookings", json={
            "provider_id": "gardener-1", "client_id": "c1", "date": D,
            "start_hour": 9, "tasks": [SCENARIO_C_TASK],
        })
        assert resp.status_code == 201
        body = resp.json()
        assert Decimal(body["total_price"]) == Decimal("264")
        assert body["duration_hours"] == 2  # 2 palms * 0.75h * 1.3
        assert len(body["line_items"]) == 1

    def test_missing_price(self, client):
        resp = client.post("/bookings", json={
            "provider_id": "gardener-1", "client_id": "c1", "date": D,
            "start_hour": 9, "duration_hours": 1,
        })
        assert resp.status_code == 400

    def test_unknown_booking(self, client):
        assert client.get("/bookings/999").status_code == 404

    def test_delete_not_allowed(self, client):
        assert client.delete("/bookings/1").status_code == 405


class TestOffersApi:
    def test_offer_and_claim(self, client):
        open_hours(client, [9, 10], provider_id="gardener-b")
        offer = client.post("/offers", json={
            "client_id": "c1", "date": D, "start_hour": 9, "duration_hours": 2,
            "total_price": "150", "provider_ids": ["gardener-a", "gardener-b"],
        }).json()
        assert offer["status"] == "open"

        resp = client.post(f"/offers/{offer['id']}/claim", json={"provider_id": "gardener-b"})
        assert resp.status_code == 201
        assert resp.json()["status"] == "confirmed"

        offer = client.get(f"/offers/{offer['id']}").json()
        assert offer["status"] == "claimed"
        assert {c["provider_id"]: c["status"] for c in offer["candidates"]} == {
            "gardener-a": "expired",
            "gardener-b": "claimed",
        }

    def test_decline(self, client):
        offer = client.post("/offers", json={
            "client_id": "c1", "date": D, "start_hour": 9, "duration_hours": 2,
            "total_price": "150", "provider_ids": ["gardener-a"],
        }).json()
        resp = client.post(f"/offers/{offer['id']}/decline", json={"provider_id": "gardener-a"})
        assert resp.json()["status"] == "cancelled"


class TestQuotesAndTariffsApi:
    def test_scenario_c_quote(self, client):
        resp = client.put("/tariffs/gardener-1/palm", json=PALM_TARIFF)
        assert resp.json()["is_complete"] is True

        resp = client.post("/quotes", json={"provider_id": "gardener-1", "tasks": [SCENARIO_C_TASK]})
        body = resp.json()
        assert Decimal(body["total"]) == Decimal("264")
        assert Decimal(body["deposit"]) == Decimal("26.40")
        assert body["is_final"] is True

    def test_preview_flags_and_finalize_blocks(self, client):
        client.put("/tariffs/gardener-1/palm", json=PALM_TARIFF)
        tasks = [SCENARIO_C_TASK, {"service_type": "hedge", "quantity": "10", "unit": "area"}]

        preview = client.post("/quotes", json={"provider_id": "gardener-1", "tasks": tasks})
        assert preview.status_code == 200
        assert preview.json()["unconfigured"] == ["hedge: no tariff"]

        final = client.post("/quotes", json={"provider_id": "gardener-1", "tasks": tasks, "finalize": True})
        assert final.status_code == 422
        assert final.json()["missing"] == ["hedge: no tariff"]

    def test_legacy_tariff_upgraded_on_put(self, client):
        resp = client.put("/tariffs/gardener-1/palm", json={
            "species_prices": {"Livistona": 50},
            "condition_surcharges": {"descuidado": 20, "muy_descuidado": 50},
        })
        body = resp.json()
        assert body["config"]["schema_version"] == 2
        assert body["missing"] == ["Livistona/0-2", "Livistona/2+"]

        assert client.get("/tariffs/gardener-1/palm").json()["config"]["selected_species"] == ["Livistona"]

    def test_unknown_tariff(self, client):
        assert client.get("/tariffs/gardener-1/lawn").status_code == 404


class TestProvidersApi:
    def test_settings_round_trip(self, client):
        resp = client.get("/providers/gardener-1/settings")
        assert resp.json()["min_gap_hours"] == 0
        assert resp.json()["min_gap_override"] is None

        resp = client.put("/providers/gardener-1/settings", json={"min_gap_hours": 1, "weeks_to_maintain": 3})
        assert resp.status_code == 200
        assert resp.json()["min_gap_hours"] == 1
        assert resp.json()["weeks_to_maintain"] == 3

    def test_gap_setting_applies_to_starts(self, client):
        open_hours(client, list(range(8, 16)))
        client.post("/bookings", json={
            "provider_id": "gardener-1", "client_id": "c1", "date": D,
            "start_hour": 10, "duration_hours": 2, "total_price": "80",
        })
        client.put("/providers/gardener-1/settings", json={"min_gap_hours": 1})
        resp = client.get("/slots/starts", params={"provider_id": "gardener-1", "date": D, "duration": 1})
        assert resp.json()["hours"] == [8, 13, 14, 15]

    def test_negative_gap_rejected(self, client):
        resp = client.put("/providers/gardener-1/settings", json={"min_gap_hours": -1})
        assert resp.status_code == 422

    def test_schedule_save_and_generate(self, client):
        resp = client.put("/providers/gardener-1/schedule", json={
            "windows": [{"days": [0, 2], "start_hour": 9, "end_hour": 12}],
            "generate_from": D,
        })
        body = resp.json()
        assert resp.status_code == 200
        assert body["windows"] == [{"days": [0, 2], "start_hour": 9, "end_hour": 12}]
        # two weeks by default: Mon and Wed of each
        assert body["seeded"] == [D, "2030-06-05", "2030-06-10", "2030-06-12"]

        resp = client.get("/availability", params={"provider_id": "gardener-1", "date": "2030-06-05"})
        assert resp.json()["hours"] == [9, 10, 11]

        resp = client.post("/providers/gardener-1/schedule/generate", json={"date_from": D, "weeks": 3})
        assert resp.json()["seeded"] == ["2030-06-17", "2030-06-19"]

    def test_invalid_window(self, client):
        resp = client.put("/providers/gardener-1/schedule", json={
            "windows": [{"days": [0], "start_hour": 14, "end_hour": 10}],
        })
        assert resp.status_code == 400
        assert client.get("/providers/gardener-1/schedule").json()["windows"] == []


def test_health(client):
    assert client.get("/health").json()["db"] is True

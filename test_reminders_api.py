"""
API tests for reminders, prescriptions and push subscriptions.
Each test runs against both the SQLite and the JSON storage backend.
"""
import os
from datetime import timedelta

from fastapi.testclient import TestClient

from medreminder.main import create_app
from medreminder.utils.timezone import isoformat_utc, utc_now

API = "/api"


def _future(hours: float = 1) -> str:
    return isoformat_utc(utc_now() + timedelta(hours=hours))


def test_create_reminder_appears_in_list(client):
    response = client.post(f"{API}/reminders", json={"name": "Paracetamol", "time": _future()})
    assert response.status_code == 201
    created = response.json()
    assert created["name"] == "Paracetamol"
    assert created["type"] == "alarm"
    assert created["tone"] == "tone1"
    assert created["fired"] is False
    assert created["file_url"] is None

    listed = client.get(f"{API}/reminders").json()
    assert [r["id"] for r in listed] == [created["id"]]
    assert created["id"] in client.app.state.scheduler


def test_med_name_alias_and_explicit_fields(client):
    response = client.post(
        f"{API}/reminders",
        json={"medName": "Aspirin", "time": _future(), "type": "push", "tone": "chime"},
    )
    assert response.status_code == 201
    body = response.json()
    assert (body["name"], body["type"], body["tone"]) == ("Aspirin", "push", "chime")


def test_missing_fields_return_400(client):
    response = client.post(f"{API}/reminders", json={"name": "Aspirin"})
    assert response.status_code == 400
    assert response.json() == {"error": True, "message": "name and time required", "status_code": 400}

    assert client.post(f"{API}/reminders", json={"time": _future()}).status_code == 400
    assert client.get(f"{API}/reminders").json() == []


def test_unparseable_time_returns_400(client):
    response = client.post(f"{API}/reminders", json={"name": "Aspirin", "time": "tomorrow-ish"})
    assert response.status_code == 400
    assert "ISO-8601" in response.json()["message"]


def test_list_is_ordered_by_time(client):
    late = client.post(f"{API}/reminders", json={"name": "Late", "time": _future(5)}).json()
    early = client.post(f"{API}/reminders", json={"name": "Early", "time": _future(1)}).json()
    listed = client.get(f"{API}/reminders").json()
    assert [r["id"] for r in listed] == [early["id"], late["id"]]


def test_get_and_delete_reminder(client):
    created = client.post(f"{API}/reminders", json={"name": "Ibuprofen", "time": _future()}).json()
    rid = created["id"]

    assert client.get(f"{API}/reminders/{rid}").json()["name"] == "Ibuprofen"

    response = client.delete(f"{API}/reminders/{rid}")
    assert response.status_code == 200
    assert response.json()["removed"]["id"] == rid
    assert client.get(f"{API}/reminders").json() == []
    assert rid not in client.app.state.scheduler


def test_unknown_id_returns_404(client):
    assert client.get(f"{API}/reminders/nope").status_code == 404
    response = client.delete(f"{API}/reminders/nope")
    assert response.status_code == 404
    assert response.json()["message"] == "Reminder not found"


def test_past_reminder_is_stored_but_not_scheduled(client):
    past = isoformat_utc(utc_now() - timedelta(minutes=5))
    created = client.post(f"{API}/reminders", json={"name": "Old", "time": past}).json()
    assert created["id"] not in client.app.state.scheduler
    assert len(client.get(f"{API}/reminders").json()) == 1


def test_multipart_create_with_tone_file(client):
    response = client.post(
        f"{API}/reminders",
        data={"medName": "Metformin", "time": _future(), "type": "alarm"},
        files={"toneFile": ("ring.mp3", b"ID3fake-audio", "audio/mpeg")},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Metformin"
    assert body["file_url"].startswith("/uploads/") and body["file_url"].endswith(".mp3")
    assert "file_path" not in body
    stored = os.path.join(client.app.state.settings.UPLOADS_LOCAL_DIR, os.path.basename(body["file_url"]))
    assert os.path.exists(stored)

    served = client.get(body["file_url"])
    assert served.status_code == 200
    assert served.content == b"ID3fake-audio"

    client.delete(f"{API}/reminders/{body['id']}")
    assert not os.path.exists(stored)


def test_multipart_without_required_fields(client):
    response = client.post(f"{API}/reminders", data={"medName": "Metformin"})
    assert response.status_code == 400


def test_parse_prescription_endpoint(client):
    text = "Paracetamol 2 tablets every 8 hours\n\nTake 1 tablet of Aspirin at 09:00\nnonsense"
    response = client.post(f"{API}/parse-prescription", json={"text": text})
    assert response.status_code == 200
    assert response.json()["parsed"] == [
        {"name": "Paracetamol", "count": 2, "every_hours": 8, "at_time": None},
        {"name": "Aspirin", "count": 1, "every_hours": None, "at_time": "09:00"},
    ]


def test_parse_prescription_requires_text(client):
    assert client.post(f"{API}/parse-prescription", json={}).status_code == 400
    assert client.post(f"{API}/parse-prescription", json={"text": ""}).status_code == 400


def test_prescription_to_reminders_every_hours(client):
    start = isoformat_utc(utc_now() + timedelta(days=1))
    response = client.post(
        f"{API}/prescription-to-reminders",
        json={"parsed": [{"name": "Paracetamol", "count": 2, "everyHours": 8}], "startDate": start},
    )
    assert response.status_code == 200
    created = response.json()["created"]
    assert len(created) == 7 * 3
    assert {r["name"] for r in created} == {"Paracetamol"}
    assert len(client.get(f"{API}/reminders").json()) == 21
    assert len(client.app.state.scheduler) == 21


def test_prescription_to_reminders_at_time(client):
    response = client.post(
        f"{API}/prescription-to-reminders",
        json={"parsed": [{"name": "Aspirin", "at_time": "09:00"}], "startDate": "2030-01-01"},
    )
    assert response.status_code == 200
    created = response.json()["created"]
    assert [r["time"] for r in created] == [f"2030-01-0{d}T09:00:00Z" for d in range(1, 8)]


def test_prescription_to_reminders_validation(client):
    assert client.post(f"{API}/prescription-to-reminders", json={}).status_code == 400
    assert client.post(f"{API}/prescription-to-reminders", json={"parsed": "x"}).status_code == 400

    response = client.post(
        f"{API}/prescription-to-reminders",
        json={"parsed": [{"name": "A", "every_hours": 8}, {"name": "B", "at_time": "25:00"}]},
    )
    assert response.status_code == 400
    assert client.get(f"{API}/reminders").json() == []


def test_subscribe_and_vapid_key(client):
    assert client.post(f"{API}/subscribe", json={"keys": {}}).status_code == 400

    response = client.post(
        f"{API}/subscribe",
        json={"endpoint": "https://push.example.com/abc", "keys": {"p256dh": "k", "auth": "a"}},
    )
    assert response.status_code == 200
    sub_id = response.json()["id"]
    subs = client.app.state.store.list_subscriptions()
    assert [(s.id, s.endpoint, s.keys) for s in subs] == [
        (sub_id, "https://push.example.com/abc", {"p256dh": "k", "auth": "a"})
    ]

    assert client.get(f"{API}/vapidPublicKey").json() == {"publicKey": ""}


def test_health(client, backend):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["storage"] == backend
    assert body["push_enabled"] is False


def test_api_key_guard(make_settings):
    app = create_app(make_settings(VALID_API_KEYS=["secret"], VAPID_PUBLIC_KEY="pub"))
    with TestClient(app) as c:
        response = c.get(f"{API}/reminders")
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or missing API key"
        assert c.get(f"{API}/reminders", headers={"X-API-Key": "wrong"}).status_code == 401
        assert c.get(f"{API}/reminders", headers={"X-API-Key": "secret"}).status_code == 200
        assert c.get(f"{API}/vapidPublicKey", headers={"X-API-Key": "secret"}).json() == {"publicKey": "pub"}


def test_pending_reminders_rearmed_on_restart(make_settings, backend):
    settings = make_settings(STORAGE_BACKEND=backend)
    with TestClient(create_app(settings)) as c:
        rid = c.post(f"{API}/reminders", json={"name": "Statin", "time": _future(3)}).json()["id"]

    with TestClient(create_app(settings)) as c:
        assert [r["id"] for r in c.get(f"{API}/reminders").json()] == [rid]
        assert rid in c.app.state.scheduler

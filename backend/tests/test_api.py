import json
import logging

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from classroom.logging_config import StructuredJsonFormatter, owner_id_var
from classroom.main import app

from conftest import OWNER, OTHER_OWNER


def _add_students(client, names, owner_id=OWNER):
    ids = []
    for name in names:
        r = client.post("/api/students", json={"name": name},
                        headers={"X-User-ID": owner_id})
        assert r.status_code == 200
        ids.append(r.json()["id"])
    return ids


def test_health_and_request_id(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"
    assert r.headers.get("X-Request-ID")


def test_owner_header_is_required(client):
    anonymous = TestClient(app)
    r = anonymous.post("/api/call/random", json={})
    assert r.status_code == 401


def test_student_roster_flow(client):
    ids = _add_students(client, ["Ada", "Grace", "Linus"])
    _add_students(client, ["Someone Else"], owner_id=OTHER_OWNER)

    r = client.get("/api/students")
    assert r.json()["total"] == 3

    r = client.post(f"/api/students/{ids[0]}/archive")
    assert r.status_code == 200
    assert r.json()["is_archived"] is True
    assert client.get("/api/students").json()["total"] == 2
    assert client.get("/api/students", params={"include_archived": True}).json()["total"] == 3

    r = client.post(f"/api/students/{ids[0]}/restore")
    assert r.json()["is_archived"] is False

    r = client.post(f"/api/students/{ids[0]}/archive", headers={"X-User-ID": OTHER_OWNER})
    assert r.status_code == 404


def test_random_call_flow(client):
    ids = _add_students(client, ["Ada", "Grace"])

    first = client.post("/api/call/random", json={"avoid_hours": 24})
    assert first.status_code == 200
    body = first.json()
    assert body["student"]["id"] in ids
    assert body["avoid_reset_used"] is False
    assert body["total_available"] == 2
    assert body["total_excluded"] == 0

    second = client.post("/api/call/random", json={"avoid_hours": 24}).json()
    assert second["student"]["id"] != body["student"]["id"]
    assert second["total_available"] == 1
    assert second["total_excluded"] == 1

    third = client.post("/api/call/random", json={"avoid_hours": 24}).json()
    assert third["avoid_reset_used"] is True
    assert "message" in third

    history = client.get("/api/call/history").json()
    assert history["pagination"]["total"] == 3
    assert history["data"][0]["student"]["id"] in ids
    assert all(h["mode"] == "RANDOM" for h in history["data"])


def test_random_call_without_body_uses_default_window(client):
    _add_students(client, ["Ada"])
    r = client.post("/api/call/random")
    assert r.status_code == 200
    assert r.json()["avoid_reset_used"] is False


def test_random_call_errors(client):
    r = client.post("/api/call/random", json={"avoid_hours": 24})
    assert r.status_code == 404
    assert r.json()["error"] == "no_students_available"
    assert client.get("/api/call/history").json()["pagination"]["total"] == 0

    _add_students(client, ["Ada"])
    r = client.post("/api/call/random", json={"avoid_hours": -1})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_argument"


def test_manual_call(client):
    ids = _add_students(client, ["Ada"])
    r = client.post("/api/call/manual", json={"student_id": ids[0]})
    assert r.status_code == 200
    assert r.json()["mode"] == "MANUAL"

    r = client.post("/api/call/manual", json={"student_id": "missing"})
    assert r.status_code == 404


def test_random_pk_flow(client):
    r = client.post("/api/pk/sessions", json={"mode": "RANDOM", "reward_points": 3})
    assert r.status_code == 400
    assert r.json()["error"] == "insufficient_candidates"

    ids = _add_students(client, ["Ada", "Grace"])
    r = client.post("/api/pk/sessions",
                    json={"mode": "RANDOM", "reward_points": 3, "topic": "Times tables"})
    assert r.status_code == 200
    session = r.json()["session"]
    assert session["status"] == "ONGOING"
    assert {p["student_id"] for p in session["participants"]} == set(ids)

    winner = session["participants"][0]["student_id"]
    r = client.patch(f"/api/pk/sessions/{session['id']}", json={"winner_id": winner})
    assert r.status_code == 200
    assert r.json()["session"]["status"] == "FINISHED"

    students = {s["id"]: s for s in client.get("/api/students").json()["data"]}
    assert students[winner]["points"] == 3

    r = client.patch(f"/api/pk/sessions/{session['id']}", json={"status": "CANCELLED"})
    assert r.status_code == 409
    assert r.json()["error"] == "invalid_transition"

    r = client.get(f"/api/pk/sessions/{session['id']}", headers={"X-User-ID": OTHER_OWNER})
    assert r.status_code == 403

    listing = client.get("/api/pk/sessions", params={"status": "FINISHED"}).json()
    assert listing["pagination"]["total"] == 1

    r = client.delete(f"/api/pk/sessions/{session['id']}")
    assert r.status_code == 200
    assert client.get(f"/api/pk/sessions/{session['id']}").status_code == 404


def test_individual_pk(client):
    ids = _add_students(client, ["Ada", "Grace", "Linus"])
    r = client.post("/api/pk/sessions",
                    json={"mode": "INDIVIDUAL", "student_ids": [ids[2], ids[0]]})
    assert r.status_code == 200
    session = r.json()["session"]
    assert session["mode"] == "INDIVIDUAL"
    assert {p["student_id"] for p in session["participants"]} == {ids[2], ids[0]}

    r = client.post("/api/pk/sessions", json={"mode": "INDIVIDUAL", "student_ids": [ids[0]]})
    assert r.status_code == 400


def test_pk_rejects_negative_reward(client):
    _add_students(client, ["Ada", "Grace"])
    r = client.post("/api/pk/sessions", json={"mode": "RANDOM", "reward_points": -2})
    assert r.status_code == 400
    assert client.get("/api/pk/sessions").json()["pagination"]["total"] == 0


def _locked(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database is locked"))


def test_store_failures_answer_503(client, monkeypatch):
    ids = _add_students(client, ["Ada", "Grace"])
    session_id = client.post("/api/pk/sessions", json={"mode": "RANDOM"}).json()["session"]["id"]

    monkeypatch.setattr(Session, "scalar", _locked)
    monkeypatch.setattr(Session, "scalars", _locked)
    responses = [
        client.get(f"/api/pk/sessions/{session_id}"),
        client.get("/api/pk/sessions"),
        client.get("/api/students"),
        client.post(f"/api/students/{ids[0]}/archive"),
        client.post("/api/call/manual", json={"student_id": ids[0]}),
        client.post("/api/pk/sessions", json={"mode": "INDIVIDUAL", "student_ids": ids}),
    ]
    for r in responses:
        assert r.status_code == 503
        assert r.json()["error"] == "store_unavailable"

    monkeypatch.undo()
    monkeypatch.setattr(Session, "commit", _locked)
    r = client.post("/api/students", json={"name": "Linus"})
    assert r.status_code == 503
    assert r.json()["error"] == "store_unavailable"

    monkeypatch.undo()
    assert client.get("/api/students").json()["total"] == 2


def test_log_entries_carry_current_owner():
    formatter = StructuredJsonFormatter()
    record = logging.LogRecord("classroom.selection", logging.INFO, __file__, 1,
                               "picked", None, None)

    assert "owner_id" not in json.loads(formatter.format(record))["context"]

    token = owner_id_var.set(OWNER)
    try:
        entry = json.loads(formatter.format(record))
    finally:
        owner_id_var.reset(token)
    assert entry["context"]["owner_id"] == OWNER
    assert entry["channel"] == "selection"

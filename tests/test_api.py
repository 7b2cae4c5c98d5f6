"""
Read API tests over a populated store.
"""

import pytest
from fastapi.testclient import TestClient

from chest import __version__
from chest.database import Database
from chest.ingest import classify
from chest.main import create_app
from chest.schemas import ClassifiedRecord

from factories import make_event, make_settings


def store(db: Database, *events):
    for event in events:
        db.put(ClassifiedRecord.from_event(event, classify(event)))


@pytest.fixture
def client(db):
    store(
        db,
        make_event("m1", kind=0, pubkey="alice", created_at=1, content='{"name":"a"}'),
        make_event("m2", kind=0, pubkey="alice", created_at=2, content='{"name":"alice"}'),
        make_event("e1", kind=1, pubkey="alice", created_at=10),
        make_event("e9", kind=1, pubkey="alice", created_at=20),
        make_event("e2", kind=7, tags=[["e", "e1"]], created_at=11, content="+"),
        make_event("e4", kind=7, tags=[["e", "e1"]], created_at=12, content="-"),
        make_event("rp", kind=1, tags=[["e", "e1"]], pubkey="bob", created_at=13),
        make_event("z1", kind=9735, tags=[["e", "e1"]], created_at=14),
        make_event("l1", kind=30023, created_at=15),
    )
    app = create_app(make_settings(), db=db, start_ingestion=False)
    with TestClient(app) as test_client:
        yield test_client


class TestSingleEvents:
    def test_note_by_id(self, client):
        resp = client.get("/notes/e1")
        assert resp.status_code == 200
        body = resp.json()
        assert body["event_id"] == "e1"
        assert body["folder"] == "notes"
        assert body["ref_event"] is None

    def test_long_form_by_id(self, client):
        assert client.get("/long/l1").json()["kind"] == 30023

    def test_user_by_pubkey_returns_latest(self, client):
        body = client.get("/users/alice").json()
        assert body["event_id"] == "m2"
        assert body["content"] == '{"name":"alice"}'

    def test_wrong_folder_is_not_found(self, client):
        assert client.get("/long/e1").status_code == 404
        assert client.get("/notes/rp").status_code == 404

    def test_missing_event(self, client):
        resp = client.get("/notes/nope")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Event not found"


class TestListings:
    def test_reactions_for_a_note(self, client):
        body = client.get("/reactions/e1").json()
        assert [e["event_id"] for e in body] == ["e2", "e4"]
        assert all(e["folder"] == "reactions" and e["ref_event"] == "e1" for e in body)
        assert body[0]["tags"] == [["e", "e1"]]

    def test_replies_listing(self, client):
        assert [e["event_id"] for e in client.get("/replies/e1").json()] == ["rp"]

    def test_zap_path_is_a_single_zap(self, client):
        resp = client.get("/zaps/z1")
        assert resp.status_code == 200
        assert resp.json()["event_id"] == "z1"
        assert client.get("/zaps/e1").status_code == 404
        assert client.get("/zaps/e1/z1").json()["kind"] == 9735

    def test_empty_listing(self, client):
        assert client.get("/reactions/unknown").json() == []

    def test_invalid_folder(self, client):
        resp = client.get("/bogus/e1")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid folder name"
        assert client.get("/bogus/e1/e2").status_code == 400

    def test_event_inside_listing(self, client):
        assert client.get("/reactions/e1/e4").json()["content"] == "-"
        assert client.get("/reactions/e9/e4").status_code == 404

    def test_notes_by_pubkey(self, client):
        resp = client.get("/notes/pubkey/alice")
        assert resp.status_code == 200
        assert [e["event_id"] for e in resp.json()] == ["e9", "e1"]
        assert client.get("/notes/pubkey/nobody").json() == []


class TestService:
    def test_root(self, client):
        assert client.get("/").json()["version"] == __version__

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["database"] == "ok"
        assert body["stored_events"] == 9
        assert body["ingestion"] is None

    def test_config(self, client):
        body = client.get("/config").json()
        assert body["relay_urls"] == ["wss://relay.one"]
        assert body["event_kinds"] == [0, 1, 30023]
        assert body["dynamic_expansion"] is True
        assert "database_url" not in body

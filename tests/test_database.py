"""
Event store tests: insert-if-absent and folder/reference lookups.
"""

from concurrent.futures import ThreadPoolExecutor

from chest.database import Database
from chest.ingest import classify
from chest.schemas import Category, ClassifiedRecord

from factories import make_event


def record_for(event):
    return ClassifiedRecord.from_event(event, classify(event))


class TestPut:
    def test_first_put_inserts(self, db: Database):
        assert db.put(record_for(make_event("e1"))) is True
        assert db.count_events() == 1

    def test_duplicate_put_returns_false_and_keeps_first(self, db: Database):
        first = record_for(make_event("e1", content="first"))
        second = record_for(make_event("e1", content="second"))
        assert db.put(first) is True
        assert db.put(second) is False
        assert db.put(second) is False
        assert db.count_events() == 1
        assert db.get_by_identity(Category.NOTES, "e1")["content"] == "first"

    def test_concurrent_puts_insert_once(self, db: Database):
        record = record_for(make_event("race"))
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: db.put(record), range(16)))
        assert results.count(True) == 1
        assert results.count(False) == 15
        assert db.count_events() == 1

    def test_persisted_shape(self, db: Database):
        event = make_event("r1", kind=7, tags=[["e", "e1", "wss://r"], ["p", "p9"]], content="+")
        db.put(record_for(event))
        row = db.get_by_identity(Category.REACTIONS, "r1")
        assert row == {
            "event_id": "r1",
            "pubkey": "p1",
            "created_at": 100,
            "kind": 7,
            "content": "+",
            "sig": "s",
            "tags": [["e", "e1", "wss://r"], ["p", "p9"]],
            "folder": "reactions",
            "ref_event": "e1",
        }


class TestLookups:
    def test_users_are_keyed_by_author(self, db: Database):
        db.put(record_for(make_event("m-old", kind=0, pubkey="alice", created_at=10, content="old")))
        db.put(record_for(make_event("m-new", kind=0, pubkey="alice", created_at=20, content="new")))
        row = db.get_by_identity(Category.USERS, "alice")
        assert row["event_id"] == "m-new"
        assert db.get_by_identity(Category.USERS, "m-new") is None

    def test_lookup_respects_folder(self, db: Database):
        db.put(record_for(make_event("e1")))
        assert db.get_by_identity(Category.NOTES, "e1") is not None
        assert db.get_by_identity(Category.LONG, "e1") is None
        assert db.get_by_identity("notes", "missing") is None

    def test_list_by_reference(self, db: Database):
        db.put(record_for(make_event("r2", kind=7, tags=[["e", "e1"]], created_at=5)))
        db.put(record_for(make_event("r1", kind=7, tags=[["e", "e1"]], created_at=3)))
        db.put(record_for(make_event("r3", kind=7, tags=[["e", "other"]])))
        db.put(record_for(make_event("reply", kind=1, tags=[["e", "e1"]])))

        rows = db.list_by_reference(Category.REACTIONS, "e1")
        assert [r["event_id"] for r in rows] == ["r1", "r2"]
        assert [r["event_id"] for r in db.list_by_reference(Category.REPLIES, "e1")] == ["reply"]
        assert db.list_by_reference(Category.ZAPS, "e1") == []

    def test_get_in_folder(self, db: Database):
        db.put(record_for(make_event("z1", kind=9735, tags=[["e", "e1"]])))
        assert db.get_in_folder(Category.ZAPS, "e1", "z1")["event_id"] == "z1"
        assert db.get_in_folder(Category.ZAPS, "e2", "z1") is None

    def test_notes_by_pubkey(self, db: Database):
        db.put(record_for(make_event("n1", pubkey="bob", created_at=1)))
        db.put(record_for(make_event("n2", pubkey="bob", created_at=2)))
        db.put(record_for(make_event("n3", pubkey="carol")))
        db.put(record_for(make_event("reply", pubkey="bob", tags=[["e", "n3"]])))
        assert [r["event_id"] for r in db.list_notes_by_pubkey("bob")] == ["n2", "n1"]

    def test_count_by_category(self, db: Database):
        db.put(record_for(make_event("e1")))
        db.put(record_for(make_event("l1", kind=30023)))
        assert db.count_events(Category.NOTES) == 1
        assert db.count_events(Category.LONG) == 1
        assert db.count_events() == 2


def test_create_tables_is_idempotent(db: Database):
    db.create_tables()
    db.put(record_for(make_event("e1")))
    db.create_tables()
    assert db.count_events() == 1

"""
SQLite database: stores classified relay events.

Tables:
  - events: one row per event id, partitioned by folder (category)

The event_id primary key is the dedup boundary: the first insert wins and
later arrivals of the same id are reported as duplicates, never merged.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    create_engine, Column, String, Integer, Text, DateTime, Index, func, insert,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from .config import get_settings
from .schemas import Category, ClassifiedRecord

logger = logging.getLogger(__name__)

Base = declarative_base()


# ── Models ───────────────────────────────────────────────────────────────────

class EventModel(Base):
    """Classified event, keyed by its content-addressed id."""
    __tablename__ = "events"

    event_id = Column(String(128), primary_key=True)
    pubkey = Column(String(128), nullable=False)
    created_at = Column(Integer, nullable=False)
    kind = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    sig = Column(String(256), nullable=False)
    tags = Column(Text, nullable=False)  # JSON array of arrays
    folder = Column(String(20), nullable=False)
    ref_event = Column(String(128))
    stored_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_events_folder_ref", "folder", "ref_event"),
        Index("ix_events_folder_pubkey", "folder", "pubkey"),
    )


def _category_value(category) -> str:
    return category.value if isinstance(category, Category) else str(category)


def _row_to_dict(r: EventModel) -> Dict[str, Any]:
    return {
        "event_id": r.event_id,
        "pubkey": r.pubkey,
        "created_at": r.created_at,
        "kind": r.kind,
        "content": r.content,
        "sig": r.sig,
        "tags": json.loads(r.tags) if r.tags else [],
        "folder": r.folder,
        "ref_event": r.ref_event,
    }


# ── Database class ────────────────────────────────────────────

class Database:
    """Event store over one SQLAlchemy engine."""

    def __init__(self, database_url: Optional[str] = None):
        settings = get_settings() if database_url is None else None
        url = database_url or settings.database_url
        if "aiosqlite" in url:
            url = url.replace("sqlite+aiosqlite", "sqlite")

        connect_args = {}
        if url.startswith("sqlite"):
            # put() runs on worker threads via asyncio.to_thread
            connect_args["check_same_thread"] = False

        self.url = url
        self.engine = create_engine(url, echo=False, connect_args=connect_args)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def create_tables(self):
        """Create the events table and its indexes (safe to call multiple times)."""
        Base.metadata.create_all(self.engine)

    def dispose(self):
        self.engine.dispose()

    @contextmanager
    def get_session(self) -> Session:
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ── Writes ──────────────────────────────────────────────────

    def put(self, record: ClassifiedRecord) -> bool:
        """Insert a record unless its id is already stored.

        Returns True when the row was newly written, False on an id
        collision. Any other database error propagates.
        """
        stmt = insert(EventModel).values(
            event_id=record.id,
            pubkey=record.pubkey,
            created_at=record.created_at,
            kind=record.kind,
            content=record.content,
            sig=record.sig,
            tags=record.tags_json,
            folder=_category_value(record.category),
            ref_event=record.reference,
            stored_at=datetime.utcnow(),
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except IntegrityError:
            if self._exists(record.id):
                logger.debug(f"[store] Event {record.id} already stored")
                return False
            raise
        return True

    def _exists(self, event_id: str) -> bool:
        with self.get_session() as session:
            return session.get(EventModel, event_id) is not None

    # ── Reads ───────────────────────────────────────────────────

    def get_by_identity(self, category, identifier: str) -> Optional[Dict]:
        """Single event in a folder.

        User metadata is looked up by author key (latest wins); every other
        folder by event id.
        """
        folder = _category_value(category)
        with self.get_session() as session:
            q = session.query(EventModel).filter(EventModel.folder == folder)
            if folder == Category.USERS.value:
                q = q.filter(EventModel.pubkey == identifier).order_by(EventModel.created_at.desc())
            else:
                q = q.filter(EventModel.event_id == identifier)
            row = q.first()
            return _row_to_dict(row) if row else None

    def get_in_folder(self, category, reference_id: str, identifier: str) -> Optional[Dict]:
        """Single event inside a reference listing (e.g. one reply to a note)."""
        with self.get_session() as session:
            row = session.query(EventModel).filter(
                EventModel.folder == _category_value(category),
                EventModel.ref_event == reference_id,
                EventModel.event_id == identifier,
            ).first()
            return _row_to_dict(row) if row else None

    def list_by_reference(self, category, reference_id: str) -> List[Dict]:
        """All events in a folder pointing at `reference_id`, oldest first."""
        with self.get_session() as session:
            rows = session.query(EventModel).filter(
                EventModel.folder == _category_value(category),
                EventModel.ref_event == reference_id,
            ).order_by(EventModel.created_at, EventModel.event_id).all()
            return [_row_to_dict(r) for r in rows]

    def list_notes_by_pubkey(self, pubkey: str, limit: int = 500) -> List[Dict]:
        """Notes written by one author, newest first."""
        with self.get_session() as session:
            rows = session.query(EventModel).filter(
                EventModel.folder == Category.NOTES.value,
                EventModel.pubkey == pubkey,
            ).order_by(EventModel.created_at.desc()).limit(limit).all()
            return [_row_to_dict(r) for r in rows]

    def count_events(self, category=None) -> int:
        with self.get_session() as session:
            q = session.query(func.count(EventModel.event_id))
            if category is not None:
                q = q.filter(EventModel.folder == _category_value(category))
            return q.scalar() or 0

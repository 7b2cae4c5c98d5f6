"""Events router -- single-event lookups and reference listings by folder.

  /users/{pubkey}                     latest metadata event of an author
  /notes/{id}, /zaps/{id}, /long/{id} single event by id
  /notes/pubkey/{pubkey}              all notes of an author
  /{folder}/{ref_event}               replies | reactions pointing at ref_event
                                      (/zaps/{x} is a single zap, see above)
  /{folder}/{ref_event}/{id}          one event inside such a listing
"""

from typing import List

from fastapi import APIRouter, HTTPException

from chest.api.dependencies import DB
from chest.api.schemas import EventResponse
from chest.schemas import Category, LISTABLE_CATEGORIES

router = APIRouter()

_LISTABLE = {c.value for c in LISTABLE_CATEGORIES}


def _listable_folder(folder: str) -> Category:
    if folder not in _LISTABLE:
        raise HTTPException(status_code=400, detail="Invalid folder name")
    return Category(folder)


def _single(db, category: Category, identifier: str) -> EventResponse:
    row = db.get_by_identity(category, identifier)
    if row is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return EventResponse(**row)


@router.get("/users/{pubkey}", response_model=EventResponse)
async def get_user_event(pubkey: str, db: DB):
    return _single(db, Category.USERS, pubkey)


@router.get("/notes/pubkey/{pubkey}", response_model=List[EventResponse])
async def list_notes_by_pubkey(pubkey: str, db: DB):
    return [EventResponse(**row) for row in db.list_notes_by_pubkey(pubkey)]


@router.get("/notes/{event_id}", response_model=EventResponse)
async def get_note_event(event_id: str, db: DB):
    return _single(db, Category.NOTES, event_id)


@router.get("/zaps/{event_id}", response_model=EventResponse)
async def get_zap_event(event_id: str, db: DB):
    return _single(db, Category.ZAPS, event_id)


@router.get("/long/{event_id}", response_model=EventResponse)
async def get_long_event(event_id: str, db: DB):
    return _single(db, Category.LONG, event_id)


@router.get("/{folder}/{ref_event}", response_model=List[EventResponse])
async def list_folder_events(folder: str, ref_event: str, db: DB):
    category = _listable_folder(folder)
    return [EventResponse(**row) for row in db.list_by_reference(category, ref_event)]


@router.get("/{folder}/{ref_event}/{event_id}", response_model=EventResponse)
async def get_event_from_folder(folder: str, ref_event: str, event_id: str, db: DB):
    category = _listable_folder(folder)
    row = db.get_in_folder(category, ref_event, event_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return EventResponse(**row)

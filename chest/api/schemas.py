"""API response schemas for stored events."""

from typing import List, Optional

from pydantic import BaseModel, Field


class EventResponse(BaseModel):
    event_id: str
    pubkey: str
    created_at: int
    kind: int
    content: str
    sig: str
    tags: List[List[str]] = Field(default_factory=list)
    folder: str
    ref_event: Optional[str] = None


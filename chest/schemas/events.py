"""
Event, record and subscription models.

Hierarchy: NostrEvent (wire) → ClassifiedRecord (persisted)
           SubscriptionFilter (outbound REQ)
"""

import json
import uuid
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from .base import Category


class NostrEvent(BaseModel):
    """Signed event as delivered by a relay. The id is trusted as-is."""
    id: str
    pubkey: str
    created_at: int = Field(ge=0)
    kind: int = Field(ge=0)
    tags: List[List[str]] = Field(default_factory=list)
    content: str
    sig: str

    def first_tag_value(self, name: str) -> Optional[str]:
        """Second element of the first tag called `name`, if both exist."""
        for tag in self.tags:
            if tag and tag[0] == name:
                return tag[1] if len(tag) > 1 else None
        return None


class Classification(BaseModel):
    """Classifier output for a kept event."""
    category: Category
    reference: Optional[str] = None

    class Config:
        frozen = True


class ClassifiedRecord(BaseModel):
    """
    An event plus its derived folder and reference.

    Created once at classification time and never mutated; persisted at
    most once per event id.
    """
    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: List[List[str]] = Field(default_factory=list)
    content: str
    sig: str
    category: Category
    reference: Optional[str] = None

    class Config:
        frozen = True

    @classmethod
    def from_event(cls, event: NostrEvent, classification: Classification) -> "ClassifiedRecord":
        return cls(
            **event.model_dump(),
            category=classification.category,
            reference=classification.reference,
        )

    @property
    def tags_json(self) -> str:
        return json.dumps(self.tags, separators=(",", ":"))


class SubscriptionFilter(BaseModel):
    """
    Outbound subscription request, rendered as ["REQ", id, {...}].
    """
    subscription_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kinds: Tuple[int, ...]
    reference: Optional[str] = None

    class Config:
        frozen = True

    @field_validator("kinds", mode="before")
    @classmethod
    def normalize_kinds(cls, v):
        kinds = tuple(sorted({int(k) for k in v}))
        if not kinds:
            raise ValueError("a subscription filter needs at least one kind")
        if any(k < 0 for k in kinds):
            raise ValueError(f"event kinds must be non-negative, got {kinds}")
        return kinds

    @property
    def is_reference_scoped(self) -> bool:
        return self.reference is not None

    def filter_object(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"kinds": list(self.kinds)}
        if self.reference is not None:
            body["#e"] = [self.reference]
        return body

    def to_message(self) -> List[Any]:
        return ["REQ", self.subscription_id, self.filter_object()]

    def to_json(self) -> str:
        return json.dumps(self.to_message())

    def renewed(self) -> "SubscriptionFilter":
        """Same kinds and reference under a fresh subscription id."""
        return SubscriptionFilter(kinds=self.kinds, reference=self.reference)

"""
Schemas package: data models for the relay ingester.

  - base.py: Category enum and event-kind constants
  - events.py: NostrEvent, Classification, ClassifiedRecord, SubscriptionFilter
"""

from chest.schemas.base import (
    Category,
    KIND_METADATA, KIND_TEXT_NOTE, KIND_REACTION,
    KIND_ZAP_REQUEST, KIND_ZAP_RECEIPT, KIND_LONG_FORM, KIND_LONG_FORM_DRAFT,
    ZAP_KINDS, LONG_FORM_KINDS, REFERENCE_KINDS,
    PRIMARY_CATEGORIES, LISTABLE_CATEGORIES, EVENT_TAG,
)
from chest.schemas.events import (
    NostrEvent, Classification, ClassifiedRecord, SubscriptionFilter,
)

__all__ = [
    "Category",
    "KIND_METADATA", "KIND_TEXT_NOTE", "KIND_REACTION",
    "KIND_ZAP_REQUEST", "KIND_ZAP_RECEIPT", "KIND_LONG_FORM", "KIND_LONG_FORM_DRAFT",
    "ZAP_KINDS", "LONG_FORM_KINDS", "REFERENCE_KINDS",
    "PRIMARY_CATEGORIES", "LISTABLE_CATEGORIES", "EVENT_TAG",
    "NostrEvent", "Classification", "ClassifiedRecord", "SubscriptionFilter",
]

"""
Rule-based event classification.

Maps an event to the storage folder it belongs in and, where the kind
carries one, the id of the event it points at:

  kind 0             → users
  kind 1             → replies (first "e" tag has a value) | notes
  kind 7             → reactions; dropped without an "e" reference
  kind 9734 / 9735   → zaps, reference optional
  kind 30023 / 30024 → long
  anything else      → dropped

The configured kind set only shapes the initial subscriptions. This
table is fixed.
"""

import logging
from typing import Optional

from chest.schemas import (
    Category,
    Classification,
    NostrEvent,
    EVENT_TAG,
    KIND_METADATA,
    KIND_TEXT_NOTE,
    KIND_REACTION,
    LONG_FORM_KINDS,
    PRIMARY_CATEGORIES,
    ZAP_KINDS,
)

logger = logging.getLogger(__name__)


def classify(event: NostrEvent) -> Optional[Classification]:
    """Return the event's folder and reference, or None to drop it."""
    kind = event.kind

    if kind == KIND_METADATA:
        return Classification(category=Category.USERS)

    if kind == KIND_TEXT_NOTE:
        parent = event.first_tag_value(EVENT_TAG)
        if parent is not None:
            return Classification(category=Category.REPLIES, reference=parent)
        return Classification(category=Category.NOTES)

    if kind == KIND_REACTION:
        target = event.first_tag_value(EVENT_TAG)
        if target is None:
            logger.warning(f"[classifier] Reaction {event.id} has no 'e' tag value, dropping")
            return None
        return Classification(category=Category.REACTIONS, reference=target)

    if kind in ZAP_KINDS:
        return Classification(category=Category.ZAPS, reference=event.first_tag_value(EVENT_TAG))

    if kind in LONG_FORM_KINDS:
        return Classification(category=Category.LONG)

    logger.debug(f"[classifier] Ignoring event {event.id} of unhandled kind {kind}")
    return None


def is_primary(category: Category) -> bool:
    """Primary entities (notes, long-form) open secondary subscriptions."""
    return category in PRIMARY_CATEGORIES

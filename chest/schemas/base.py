"""
Common enums and protocol constants used across the ingester.

Categories double as the storage folder labels served by the read API,
so their values are part of the persisted record shape.
"""

from enum import Enum
from typing import FrozenSet


class Category(str, Enum):
    """Storage folder an event is classified into."""
    USERS = "users"           # kind 0, user metadata
    NOTES = "notes"           # kind 1 without an "e" reference
    REPLIES = "replies"       # kind 1 referencing a parent event
    REACTIONS = "reactions"   # kind 7
    ZAPS = "zaps"             # kind 9734 / 9735
    LONG = "long"             # kind 30023 / 30024


# ══════════════════════════════════════════════════════════════════════════════
# EVENT KINDS
# ══════════════════════════════════════════════════════════════════════════════

KIND_METADATA = 0
KIND_TEXT_NOTE = 1
KIND_REACTION = 7
KIND_ZAP_REQUEST = 9734
KIND_ZAP_RECEIPT = 9735
KIND_LONG_FORM = 30023
KIND_LONG_FORM_DRAFT = 30024

ZAP_KINDS: FrozenSet[int] = frozenset({KIND_ZAP_REQUEST, KIND_ZAP_RECEIPT})
LONG_FORM_KINDS: FrozenSet[int] = frozenset({KIND_LONG_FORM, KIND_LONG_FORM_DRAFT})

# Secondary (reference-scoped) subscriptions only ever ask for these.
REFERENCE_KINDS: FrozenSet[int] = frozenset({KIND_REACTION, KIND_ZAP_REQUEST, KIND_ZAP_RECEIPT})

# Categories whose events open secondary subscriptions.
PRIMARY_CATEGORIES: FrozenSet[Category] = frozenset({Category.NOTES, Category.LONG})

# Folders that can be listed by reference through the read API.
LISTABLE_CATEGORIES: FrozenSet[Category] = frozenset({
    Category.REPLIES, Category.REACTIONS, Category.ZAPS,
})

EVENT_TAG = "e"

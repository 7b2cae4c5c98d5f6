"""Subscription filter construction for relay REQ messages."""

from typing import Iterable, List, Optional

from chest.schemas import REFERENCE_KINDS, SubscriptionFilter


def build_filter(kinds: Iterable[int], reference_target: Optional[str] = None) -> SubscriptionFilter:
    """Build a filter under a fresh subscription id.

    With a reference target the kinds argument is ignored: secondary
    subscriptions always ask for reactions and zaps tagged with the target.
    """
    if reference_target is not None:
        return SubscriptionFilter(kinds=REFERENCE_KINDS, reference=reference_target)
    return SubscriptionFilter(kinds=kinds)


def build_initial_filters(kinds: Iterable[int], per_kind: bool) -> List[SubscriptionFilter]:
    """One filter covering every kind, or one filter per kind."""
    unique = sorted(set(kinds))
    if not unique:
        raise ValueError("at least one event kind is required")
    if per_kind:
        return [build_filter([kind]) for kind in unique]
    return [build_filter(unique)]

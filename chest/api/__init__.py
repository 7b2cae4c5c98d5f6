"""HTTP read API over the event store."""

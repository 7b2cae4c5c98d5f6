"""chest: relay event ingester with a category-partitioned read API."""

__version__ = "0.1.0"

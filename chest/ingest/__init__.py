"""Ingestion pipeline: classification, filter building and coordination."""

from chest.ingest.classifier import classify, is_primary
from chest.ingest.filters import build_filter, build_initial_filters
from chest.ingest.coordinator import CoordinatorStats, IngestionCoordinator

__all__ = [
    "classify", "is_primary",
    "build_filter", "build_initial_filters",
    "CoordinatorStats", "IngestionCoordinator",
]

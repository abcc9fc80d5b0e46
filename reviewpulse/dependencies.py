"""Application dependency wiring."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from reviewpulse.core.config import settings
from reviewpulse.repositories.memory_store import ReviewStore
from reviewpulse.services.analytics import ReviewAnalyticsService
from reviewpulse.services.artifact_cache import ArtifactCacheRegistry, dataset_version
from reviewpulse.services.classification import ContentClassifier
from reviewpulse.services.summaries import Summarizer
from reviewpulse.services.validation import ValidationThresholds
from reviewpulse.telemetry import EventSink, sink_from_settings


@lru_cache
def get_store() -> ReviewStore:
    return ReviewStore()


@lru_cache
def get_event_sink() -> EventSink:
    return sink_from_settings()


@lru_cache
def get_classifier() -> ContentClassifier:
    return ContentClassifier(min_length=settings.classifier_min_length)


@lru_cache
def get_caches() -> ArtifactCacheRegistry:
    store = get_store()
    return ArtifactCacheRegistry(
        lambda: dataset_version(store.snapshot()),
        ttl=timedelta(seconds=settings.artifact_cache_ttl_seconds),
    )


@lru_cache
def get_summarizer() -> Summarizer | None:
    # No model client ships with the service; deployments inject one through an override.
    return None


@lru_cache
def get_analytics_service() -> ReviewAnalyticsService:
    return ReviewAnalyticsService(
        get_store(),
        classifier=get_classifier(),
        caches=get_caches(),
        sink=get_event_sink(),
        summarizer=get_summarizer(),
        thresholds=ValidationThresholds.from_settings(settings),
    )

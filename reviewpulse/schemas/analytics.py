"""API schemas for repository-wide analytics and cache administration."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from reviewpulse.models.analytics import CacheStatus, CommonLearning, RepositoryOverview, SummaryStatus


class OverviewResponse(BaseModel):
    """Response for GET /v1/analytics."""

    overview: RepositoryOverview
    request_id: str


class SummariesStatusResponse(BaseModel):
    summaries: list[SummaryStatus]
    request_id: str


class CommonLearningResponse(BaseModel):
    learning: CommonLearning
    request_id: str


class CacheStatusResponse(BaseModel):
    name: str
    status: CacheStatus
    request_id: str


class CacheClearedResponse(BaseModel):
    name: str
    cleared: bool
    request_id: str


class CommonLearningTrendsResponse(BaseModel):
    """Response for GET /v1/common-learning/trends, served from the cached report only."""

    trends: dict[str, list[str]]
    recommendations: dict[str, list[str]]
    generated_at: datetime
    confidence_score: float
    request_id: str

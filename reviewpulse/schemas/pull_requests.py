"""API schemas for pull request and timeline endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from reviewpulse.models.analytics import AnalysisStrategy, PRSummary, SummaryStatus
from reviewpulse.models.domain import Comment, PullRequest, Review
from reviewpulse.models.timeline import EnhancedTimelineResult, TimelineResult


class PullRequestListResponse(BaseModel):
    """Response for GET /v1/prs."""

    pull_requests: list[PullRequest]
    request_id: str


class ReviewListResponse(BaseModel):
    pr_number: int
    reviews: list[Review]
    request_id: str


class CommentListResponse(BaseModel):
    pr_number: int
    comments: list[Comment]
    request_id: str


class TimelineResponse(BaseModel):
    """Response for GET /v1/prs/{pr_number}/timeline.

    ``timeline`` carries validation, review cycles and the raw event list
    when the enhanced view was requested.
    """

    timeline: EnhancedTimelineResult | TimelineResult
    request_id: str


class StrategyResponse(BaseModel):
    pr_number: int
    strategy: AnalysisStrategy
    request_id: str


class SummaryResponse(BaseModel):
    summary: PRSummary
    request_id: str


class SummaryStatusResponse(BaseModel):
    status: SummaryStatus
    request_id: str


class PullRequestSnapshotRequest(BaseModel):
    """Body for POST /v1/prs/snapshot: a complete fetched working set."""

    pull_requests: list[PullRequest]
    reviews: list[Review] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)


class PullRequestSnapshotResponse(BaseModel):
    generation: int
    pr_numbers: list[int]
    request_id: str

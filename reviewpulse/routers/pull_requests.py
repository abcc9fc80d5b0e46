"""API routes for per-pull-request data, timelines, and summaries."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from reviewpulse.core.config import settings
from reviewpulse.core.errors import PullRequestNotFound, SummarizerUnavailable
from reviewpulse.dependencies import get_analytics_service
from reviewpulse.schemas.pull_requests import (
    CommentListResponse,
    PullRequestListResponse,
    PullRequestSnapshotRequest,
    PullRequestSnapshotResponse,
    ReviewListResponse,
    StrategyResponse,
    SummaryResponse,
    SummaryStatusResponse,
    TimelineResponse,
)
from reviewpulse.services.analytics import ReviewAnalyticsService


router = APIRouter(prefix=f"{settings.api_v1_prefix}/prs", tags=["pull-requests"])


@router.get("", response_model=PullRequestListResponse)
def list_pull_requests(
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> PullRequestListResponse:
    return PullRequestListResponse(
        pull_requests=analytics_service.pull_requests(), request_id=f"rq_{uuid.uuid4().hex}"
    )


@router.post("/snapshot", response_model=PullRequestSnapshotResponse, status_code=status.HTTP_202_ACCEPTED)
def install_snapshot(
    payload: PullRequestSnapshotRequest,
    background_tasks: BackgroundTasks,
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> PullRequestSnapshotResponse:
    snapshot = analytics_service.apply_fetch(payload.pull_requests, payload.reviews, payload.comments)
    background_tasks.add_task(analytics_service.generate_background_summaries)
    return PullRequestSnapshotResponse(
        generation=snapshot.generation,
        pr_numbers=[pr.number for pr in snapshot.pull_requests],
        request_id=f"rq_{uuid.uuid4().hex}",
    )


@router.get("/{pr_number}/reviews", response_model=ReviewListResponse)
def list_reviews(
    pr_number: int,
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> ReviewListResponse:
    try:
        reviews = analytics_service.reviews(pr_number)
    except PullRequestNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return ReviewListResponse(pr_number=pr_number, reviews=reviews, request_id=f"rq_{uuid.uuid4().hex}")


@router.get("/{pr_number}/comments", response_model=CommentListResponse)
def list_comments(
    pr_number: int,
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> CommentListResponse:
    try:
        comments = analytics_service.comments(pr_number)
    except PullRequestNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CommentListResponse(pr_number=pr_number, comments=comments, request_id=f"rq_{uuid.uuid4().hex}")


@router.get("/{pr_number}/timeline", response_model=TimelineResponse)
def get_timeline(
    pr_number: int,
    enhanced: bool = Query(False, description="Include validation, review cycles and raw events."),
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> TimelineResponse:
    try:
        timeline = analytics_service.timeline(pr_number, enhanced=enhanced)
    except PullRequestNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return TimelineResponse(timeline=timeline, request_id=f"rq_{uuid.uuid4().hex}")


@router.get("/{pr_number}/strategy", response_model=StrategyResponse)
def get_strategy(
    pr_number: int,
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> StrategyResponse:
    try:
        strategy = analytics_service.strategy(pr_number)
    except PullRequestNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return StrategyResponse(pr_number=pr_number, strategy=strategy, request_id=f"rq_{uuid.uuid4().hex}")


@router.get("/{pr_number}/summary", response_model=SummaryResponse)
def get_summary(
    pr_number: int,
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> SummaryResponse:
    try:
        summary = analytics_service.summary(pr_number)
    except PullRequestNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except SummarizerUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return SummaryResponse(summary=summary, request_id=f"rq_{uuid.uuid4().hex}")


@router.post("/{pr_number}/summary/regenerate", response_model=SummaryResponse)
def regenerate_summary(
    pr_number: int,
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> SummaryResponse:
    try:
        summary = analytics_service.regenerate_summary(pr_number)
    except PullRequestNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except SummarizerUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return SummaryResponse(summary=summary, request_id=f"rq_{uuid.uuid4().hex}")


@router.get("/{pr_number}/summary/status", response_model=SummaryStatusResponse)
def get_summary_status(
    pr_number: int,
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> SummaryStatusResponse:
    try:
        summary_status = analytics_service.summary_status(pr_number)
    except PullRequestNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return SummaryStatusResponse(status=summary_status, request_id=f"rq_{uuid.uuid4().hex}")

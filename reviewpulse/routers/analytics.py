"""API routes for repository-wide analytics."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status

from reviewpulse.core.config import settings
from reviewpulse.core.errors import ArtifactNotCached, NoDataAvailable, SummarizerUnavailable
from reviewpulse.dependencies import get_analytics_service
from reviewpulse.schemas.analytics import (
    CommonLearningResponse,
    CommonLearningTrendsResponse,
    OverviewResponse,
    SummariesStatusResponse,
)
from reviewpulse.services.analytics import ReviewAnalyticsService


router = APIRouter(prefix=settings.api_v1_prefix, tags=["analytics"])


@router.get("/analytics", response_model=OverviewResponse)
def get_overview(
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> OverviewResponse:
    return OverviewResponse(overview=analytics_service.overview(), request_id=f"rq_{uuid.uuid4().hex}")


@router.get("/summaries/status", response_model=SummariesStatusResponse)
def get_summaries_status(
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> SummariesStatusResponse:
    return SummariesStatusResponse(
        summaries=analytics_service.summaries_status(), request_id=f"rq_{uuid.uuid4().hex}"
    )


@router.get("/common-learning", response_model=CommonLearningResponse)
def get_common_learning(
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> CommonLearningResponse:
    try:
        learning = analytics_service.common_learning()
    except NoDataAvailable as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SummarizerUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return CommonLearningResponse(learning=learning, request_id=f"rq_{uuid.uuid4().hex}")


@router.post("/common-learning/regenerate", response_model=CommonLearningResponse)
def regenerate_common_learning(
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> CommonLearningResponse:
    try:
        learning = analytics_service.regenerate_common_learning()
    except NoDataAvailable as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SummarizerUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return CommonLearningResponse(learning=learning, request_id=f"rq_{uuid.uuid4().hex}")


@router.get("/common-learning/trends", response_model=CommonLearningTrendsResponse)
def get_common_learning_trends(
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> CommonLearningTrendsResponse:
    try:
        learning = analytics_service.common_learning_trends()
    except ArtifactNotCached as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CommonLearningTrendsResponse(
        trends=learning.trends,
        recommendations=learning.recommendations,
        generated_at=learning.generated_at,
        confidence_score=learning.confidence_score,
        request_id=f"rq_{uuid.uuid4().hex}",
    )

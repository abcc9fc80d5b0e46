"""API routes for inspecting and invalidating cached artifacts."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status

from reviewpulse.core.config import settings
from reviewpulse.core.errors import UnknownArtifact
from reviewpulse.dependencies import get_analytics_service
from reviewpulse.schemas.analytics import CacheClearedResponse, CacheStatusResponse
from reviewpulse.services.analytics import ReviewAnalyticsService


router = APIRouter(prefix=f"{settings.api_v1_prefix}/cache", tags=["cache"])


@router.get("/{name}/status", response_model=CacheStatusResponse)
def get_cache_status(
    name: str,
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> CacheStatusResponse:
    try:
        cache_status = analytics_service.cache_status(name)
    except UnknownArtifact as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CacheStatusResponse(name=name, status=cache_status, request_id=f"rq_{uuid.uuid4().hex}")


@router.delete("/{name}", response_model=CacheClearedResponse)
def clear_cache(
    name: str,
    analytics_service: ReviewAnalyticsService = Depends(get_analytics_service),
) -> CacheClearedResponse:
    try:
        analytics_service.clear_cache(name)
    except UnknownArtifact as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CacheClearedResponse(name=name, cleared=True, request_id=f"rq_{uuid.uuid4().hex}")

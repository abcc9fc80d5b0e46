"""Timeline models produced by reconstruction and validation."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    """Point-in-time facts derived from pull request and review data."""

    PR_CREATED = "pr_created"
    FIRST_REVIEW = "first_review"
    CHANGES_REQUESTED = "changes_requested"
    CHANGES_ADDRESSED = "changes_addressed"
    APPROVED = "approved"
    MERGED = "merged"


class StageName(str, Enum):
    """Milestones of the idealised pull request lifecycle, in canonical order."""

    PR_RAISED = "pr_raised"
    FIRST_REVIEW = "first_review"
    COMMENTS_FIXED = "comments_fixed"
    APPROVED = "approved"
    MERGED = "merged"


STAGE_ORDER: tuple[StageName, ...] = tuple(StageName)


class DataQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TimelineEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: EventType
    timestamp: datetime
    actor: str
    details: Optional[str] = None


class TimelineStage(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: StageName
    timestamp: datetime
    duration_from_previous: Optional[float] = Field(
        None, description="Days since the anchor stage, rounded to one decimal place."
    )


class ReviewCycle(BaseModel):
    """One changes-requested then changes-addressed round."""

    model_config = ConfigDict(frozen=True)

    cycle_number: int
    changes_requested_at: datetime
    changes_addressed_at: Optional[datetime] = None
    duration_days: Optional[float] = None
    reviewer: str
    resolved_by_fallback: bool = Field(
        False, description="True when the resolution time was taken from the PR's last update."
    )


class StageDurations(BaseModel):
    model_config = ConfigDict(frozen=True)

    pr_raised_to_first_review: Optional[float] = None
    first_review_to_comments_fixed: Optional[float] = None
    comments_fixed_to_approved: Optional[float] = None
    approved_to_merged: Optional[float] = None
    ongoing_time: Optional[float] = None
    total_review_time: Optional[float] = None


class Milestone(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: Optional[datetime] = None
    achieved: bool = False


class Milestones(BaseModel):
    model_config = ConfigDict(frozen=True)

    pr_created: Milestone
    first_review: Milestone
    approved: Milestone
    merged: Milestone


class TimelineValidation(BaseModel):
    model_config = ConfigDict(frozen=True)

    confidence_score: float
    data_quality: DataQuality
    is_valid: bool
    issues: list[str] = Field(default_factory=list)


class TimelineResult(BaseModel):
    """Public timeline shape consumed by analytics routes."""

    model_config = ConfigDict(frozen=True)

    pr_number: int
    pr_title: str
    pr_author: str
    total_duration: float
    stages: list[TimelineStage] = Field(default_factory=list)
    is_completed: bool
    stage_durations: StageDurations
    milestones: Milestones


class EnhancedTimelineResult(TimelineResult):
    validation: TimelineValidation
    review_cycles: list[ReviewCycle] = Field(default_factory=list)
    actual_events: list[TimelineEvent] = Field(default_factory=list)

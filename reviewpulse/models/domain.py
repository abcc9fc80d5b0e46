"""Domain data models for pull-request review monitoring."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class PullRequestStatus(str, Enum):
    """Lifecycle status reported by the source-control host."""

    OPEN = "open"
    MERGED = "merged"
    CLOSED = "closed"


class ReviewState(str, Enum):
    """Normalised verdict of a single review submission."""

    COMMENTED = "commented"
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"


class CommentType(str, Enum):
    """Where a comment was left on the pull request."""

    REVIEW = "review"
    ISSUE = "issue"
    GENERAL = "general"


class PullRequest(BaseModel):
    """Snapshot of a pull request as of the last fetch."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(..., description="Repository-scoped pull request number.")
    title: str
    author: str
    created_at: AwareDatetime
    updated_at: AwareDatetime
    merged_at: Optional[AwareDatetime] = None
    merged_by: Optional[str] = None
    status: PullRequestStatus = PullRequestStatus.OPEN
    approvals_count: int = 0
    labels: list[str] = Field(default_factory=list)
    requested_reviewers: list[str] = Field(default_factory=list)
    pending_reviewers: list[str] = Field(default_factory=list)
    url: Optional[str] = None


class Review(BaseModel):
    """A reviewer's verdict on a pull request at a point in time."""

    model_config = ConfigDict(frozen=True)

    review_id: int
    pr_number: int
    reviewer: str
    state: ReviewState
    submitted_at: AwareDatetime
    body: str = ""
    is_latest: bool = Field(
        True,
        description="Only the reviewer's most recent review counts toward approval and pending calculations.",
    )


class Comment(BaseModel):
    """Discussion left on a pull request, inline or in the conversation tab."""

    model_config = ConfigDict(frozen=True)

    source_id: int = Field(..., description="Comment identifier assigned by the host; unique in the store.")
    pr_number: int
    author: str
    body: str = ""
    created_at: AwareDatetime
    comment_type: CommentType = CommentType.GENERAL
    is_resolved: bool = False
    file_path: Optional[str] = None
    line_number: Optional[int] = None
    original_line: Optional[int] = None
    diff_hunk: Optional[str] = None
    side: Optional[str] = Field(None, description="LEFT or RIGHT side of the diff for inline comments.")

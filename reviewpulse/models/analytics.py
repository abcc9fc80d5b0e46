"""Analytics-facing models for review reporting."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class AuthorKind(str, Enum):
    HUMAN = "human"
    BOT = "bot"


class StrategyType(str, Enum):
    """How much weight discussion content can carry for a pull request."""

    CODE_ONLY = "code_only"
    HYBRID = "hybrid"
    HUMAN_DISCUSSION = "human_discussion"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AnalysisStrategy(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: StrategyType
    human_comments: int
    bot_comments: int
    human_reviews: int
    bot_reviews: int
    confidence_level: ConfidenceLevel


class RepositoryOverview(BaseModel):
    """Headline numbers across every tracked pull request."""

    total_prs: int
    open_prs: int
    average_approvals: float
    prs_needing_review: int = Field(description="Pull requests without a single current approval.")
    prs_with_feedback: int = Field(description="Pull requests where any reviewer requested changes.")


class TechnicalFeedback(BaseModel):
    category: str
    description: str
    severity: ConfidenceLevel = ConfidenceLevel.MEDIUM
    reviewer: Optional[str] = None
    file_path: Optional[str] = None
    line_number: Optional[int] = None


class ActionItem(BaseModel):
    description: str
    priority: ConfidenceLevel
    estimated_effort: str
    blocking: bool = False
    assigned_to: Optional[str] = None


class SummaryBody(BaseModel):
    executive: str
    technical_feedback: list[TechnicalFeedback] = Field(default_factory=list)
    improvement_opportunities: list[str] = Field(default_factory=list)
    risk_assessment: str = ""
    action_items: list[ActionItem] = Field(default_factory=list)
    overall_tone: str = "neutral"


class SummaryMetadata(BaseModel):
    generated_at: datetime
    model_used: str
    confidence_score: float
    prompt_tokens: int = 0
    completion_tokens: int = 0
    analysis_strategy: Optional[AnalysisStrategy] = None
    background_generated: bool = False


class PRSummary(BaseModel):
    """Prose insights for one pull request, produced by the summarizer or the code-only fallback."""

    pr_number: int
    summary: SummaryBody
    metadata: SummaryMetadata


class CommonLearning(BaseModel):
    """Cross-PR insights derived from all human discussion in the repository."""

    trends: dict[str, list[str]] = Field(default_factory=dict)
    recommendations: dict[str, list[str]] = Field(default_factory=dict)
    analyzed_prs: int
    total_comments: int
    total_reviews: int
    confidence_score: float
    generated_at: datetime


class SummaryStatus(BaseModel):
    pr_number: int
    title: Optional[str] = None
    exists: bool
    generated_at: Optional[datetime] = None
    confidence_score: Optional[float] = None
    background_generated: bool = False


class CacheEntry(BaseModel, Generic[T]):
    """A derived artifact stamped with its lifetime and the dataset version it was built from."""

    model_config = ConfigDict(frozen=True)

    data: T
    generated_at: datetime
    expires_at: datetime
    version: str


class CacheStatus(BaseModel):
    cached: bool
    valid: bool
    generated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    version: Optional[str] = None
    age_minutes: Optional[int] = None
    expires_in_minutes: Optional[int] = None

"""Summarizer boundary and the code-only fallback summary."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from reviewpulse.models.analytics import (
    ActionItem,
    AnalysisStrategy,
    CommonLearning,
    ConfidenceLevel,
    PRSummary,
    SummaryBody,
    SummaryMetadata,
)
from reviewpulse.models.domain import Comment, PullRequest, Review

CODE_ONLY_MODEL = "code-analysis"
CODE_ONLY_CONFIDENCE = 0.3


class Summarizer(Protocol):
    """Turns human discussion into prose insights, typically via an LLM."""

    model_name: str

    def summarize_pull_request(
        self, pr: PullRequest, comments: Sequence[Comment], reviews: Sequence[Review]
    ) -> PRSummary:  # pragma: no cover - interface
        ...

    def summarize_repository(
        self,
        pull_requests: Sequence[PullRequest],
        comments: Sequence[Comment],
        reviews: Sequence[Review],
    ) -> CommonLearning:  # pragma: no cover - interface
        ...


def code_only_summary(
    pr: PullRequest,
    strategy: AnalysisStrategy,
    generated_at: datetime,
    background: bool = False,
) -> PRSummary:
    """Placeholder used when a pull request has no human discussion to analyse."""

    return PRSummary(
        pr_number=pr.number,
        summary=SummaryBody(
            executive=(
                "This PR contains code changes without human discussion. "
                "Analysis based on code structure and commit messages."
            ),
            improvement_opportunities=[
                "Consider adding more detailed PR description",
                "Request code review from team members",
            ],
            risk_assessment="Medium risk due to lack of peer review discussion.",
            action_items=[
                ActionItem(
                    description="Request human code review",
                    priority=ConfidenceLevel.HIGH,
                    estimated_effort="1-2 hours",
                )
            ],
        ),
        metadata=SummaryMetadata(
            generated_at=generated_at,
            model_used=CODE_ONLY_MODEL,
            confidence_score=CODE_ONLY_CONFIDENCE,
            analysis_strategy=strategy,
            background_generated=background,
        ),
    )

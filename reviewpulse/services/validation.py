"""Confidence scoring for reconstructed timelines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from reviewpulse.core.config import Settings
from reviewpulse.models.timeline import (
    STAGE_ORDER,
    DataQuality,
    ReviewCycle,
    TimelineEvent,
    TimelineStage,
    TimelineValidation,
)


@dataclass(frozen=True)
class Penalty:
    name: str
    amount: float
    description: str


STAGE_OUT_OF_ORDER = Penalty("stage_out_of_order", 0.3, "A later stage precedes an earlier one")
NEGATIVE_DURATION = Penalty("negative_duration", 0.2, "A stage duration is negative")
LONG_STAGE = Penalty("long_stage", 0.1, "A stage took unusually long")
LONG_CYCLE = Penalty("long_cycle", 0.05, "A review cycle took unusually long to resolve")
FALLBACK_RESOLUTION = Penalty(
    "fallback_resolution", 0.0, "A cycle resolution was inferred from the PR's last update"
)

PENALTIES: dict[str, Penalty] = {
    penalty.name: penalty
    for penalty in (STAGE_OUT_OF_ORDER, NEGATIVE_DURATION, LONG_STAGE, LONG_CYCLE, FALLBACK_RESOLUTION)
}


@dataclass(frozen=True)
class ValidationThresholds:
    long_stage_days: float = 30.0
    long_cycle_days: float = 14.0
    fallback_resolution_penalty: float = FALLBACK_RESOLUTION.amount
    min_confidence_high: float = 0.8
    min_confidence_medium: float = 0.6
    max_issues_medium: int = 2
    min_confidence_valid: float = 0.5
    max_issues_valid: int = 5

    @classmethod
    def from_settings(cls, settings: Settings) -> "ValidationThresholds":
        return cls(
            long_stage_days=settings.long_stage_days,
            long_cycle_days=settings.long_cycle_days,
            fallback_resolution_penalty=settings.fallback_resolution_penalty,
        )


def validate(
    stages: Sequence[TimelineStage],
    events: Sequence[TimelineEvent],
    review_cycles: Sequence[ReviewCycle],
    prior_issues: Sequence[str] = (),
    prior_confidence: float = 1.0,
    thresholds: ValidationThresholds | None = None,
) -> TimelineValidation:
    """Score how trustworthy a reconstructed timeline is.

    Pure: the same inputs always produce the same validation. ``events`` is
    part of the contract but no penalty currently depends on it.
    """

    thresholds = thresholds or ValidationThresholds()
    issues = list(prior_issues)
    confidence = prior_confidence

    rank = {name: position for position, name in enumerate(STAGE_ORDER)}
    ordered = sorted(stages, key=lambda stage: rank[stage.stage])
    for earlier, later in zip(ordered, ordered[1:]):
        if later.timestamp < earlier.timestamp:
            issues.append(
                f"Stage {later.stage.value} ({later.timestamp.isoformat()}) occurs before "
                f"{earlier.stage.value} ({earlier.timestamp.isoformat()})"
            )
            confidence -= STAGE_OUT_OF_ORDER.amount

    for stage in ordered:
        duration = stage.duration_from_previous
        if duration is None:
            continue
        if duration < 0:
            issues.append(f"Negative duration for stage {stage.stage.value}: {duration} days")
            confidence -= NEGATIVE_DURATION.amount
        elif duration > thresholds.long_stage_days:
            issues.append(f"Unusually long duration for stage {stage.stage.value}: {duration} days")
            confidence -= LONG_STAGE.amount

    for cycle in review_cycles:
        if cycle.duration_days is not None and cycle.duration_days > thresholds.long_cycle_days:
            issues.append(
                f"Review cycle {cycle.cycle_number} took {cycle.duration_days} days to resolve"
            )
            confidence -= LONG_CYCLE.amount
        if cycle.resolved_by_fallback and thresholds.fallback_resolution_penalty > 0:
            issues.append(
                f"Review cycle {cycle.cycle_number} resolution inferred from last PR update"
            )
            confidence -= thresholds.fallback_resolution_penalty

    confidence = round(min(max(confidence, 0.0), 1.0), 4)
    return TimelineValidation(
        confidence_score=confidence,
        data_quality=_data_quality(confidence, len(issues), thresholds),
        is_valid=confidence >= thresholds.min_confidence_valid and len(issues) < thresholds.max_issues_valid,
        issues=issues,
    )


def _data_quality(confidence: float, issue_count: int, thresholds: ValidationThresholds) -> DataQuality:
    if confidence >= thresholds.min_confidence_high and issue_count == 0:
        return DataQuality.HIGH
    if confidence >= thresholds.min_confidence_medium and issue_count <= thresholds.max_issues_medium:
        return DataQuality.MEDIUM
    return DataQuality.LOW

"""Event-driven reconstruction of a pull request's review lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from reviewpulse.models.domain import Comment, PullRequest, PullRequestStatus, Review, ReviewState
from reviewpulse.models.timeline import (
    STAGE_ORDER,
    EnhancedTimelineResult,
    EventType,
    Milestone,
    Milestones,
    ReviewCycle,
    StageDurations,
    StageName,
    TimelineEvent,
    TimelineResult,
    TimelineStage,
    TimelineValidation,
)

SECONDS_PER_DAY = 86_400

UNRESOLVED_CYCLE_ISSUE = "Changes requested but no clear resolution detected"
UNRESOLVED_CYCLE_CONFIDENCE = 0.8

# Stages a target stage measures its duration from, highest priority first.
STAGE_ANCHORS: dict[StageName, tuple[StageName, ...]] = {
    StageName.FIRST_REVIEW: (StageName.PR_RAISED,),
    StageName.COMMENTS_FIXED: (StageName.FIRST_REVIEW, StageName.PR_RAISED),
    StageName.APPROVED: (StageName.COMMENTS_FIXED, StageName.FIRST_REVIEW, StageName.PR_RAISED),
    StageName.MERGED: (
        StageName.APPROVED,
        StageName.COMMENTS_FIXED,
        StageName.FIRST_REVIEW,
        StageName.PR_RAISED,
    ),
}

_RESOLVING_STATES = {ReviewState.APPROVED, ReviewState.COMMENTED}
_TERMINAL_STATUSES = {PullRequestStatus.MERGED, PullRequestStatus.CLOSED}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def duration_days(start: datetime, end: datetime) -> float:
    return round((end - start).total_seconds() / SECONDS_PER_DAY, 1)


@dataclass(frozen=True)
class Reconstruction:
    """Everything one reconstruction pass derived for a pull request."""

    pull_request: PullRequest
    events: tuple[TimelineEvent, ...]
    stages: tuple[TimelineStage, ...]
    stage_durations: StageDurations
    review_cycles: tuple[ReviewCycle, ...]
    milestones: Milestones
    total_duration: float
    is_completed: bool
    issues: tuple[str, ...] = ()
    confidence_score: float = 1.0

    def stage(self, name: StageName) -> Optional[TimelineStage]:
        return next((stage for stage in self.stages if stage.stage == name), None)


class _StageBook:
    """Collects stages by name and resolves duration anchors."""

    def __init__(self) -> None:
        self._stages: dict[StageName, TimelineStage] = {}

    def __contains__(self, name: StageName) -> bool:
        return name in self._stages

    def get(self, name: StageName) -> Optional[TimelineStage]:
        return self._stages.get(name)

    def anchor_for(self, target: StageName) -> Optional[TimelineStage]:
        for candidate in STAGE_ANCHORS.get(target, ()):
            if candidate in self._stages:
                return self._stages[candidate]
        return None

    def record(self, name: StageName, timestamp: datetime) -> TimelineStage:
        anchor = self.anchor_for(name)
        duration = duration_days(anchor.timestamp, timestamp) if anchor is not None else None
        stage = TimelineStage(stage=name, timestamp=timestamp, duration_from_previous=duration)
        self._stages[name] = stage
        return stage

    def ordered(self) -> tuple[TimelineStage, ...]:
        return tuple(self._stages[name] for name in STAGE_ORDER if name in self._stages)


class TimelineReconstructor:
    """Builds an ordered lifecycle from a PR and its complete review history.

    All reviews participate, bot reviews included: an automated approval is
    still a real state change on the pull request. Comments are accepted for
    interface symmetry but never drive stage transitions.
    """

    def __init__(self, clock: Callable[[], datetime] = _now) -> None:
        self._clock = clock

    def reconstruct(
        self,
        pr: PullRequest,
        reviews: Sequence[Review],
        comments: Sequence[Comment] = (),
        now: datetime | None = None,
    ) -> Reconstruction:
        now = now or self._clock()
        book = _StageBook()
        events: list[TimelineEvent] = [
            TimelineEvent(type=EventType.PR_CREATED, timestamp=pr.created_at, actor=pr.author)
        ]
        issues: list[str] = []
        confidence = 1.0

        book.record(StageName.PR_RAISED, pr.created_at)

        ordered = sorted(
            (review for review in reviews if review.pr_number == pr.number),
            key=lambda review: (review.submitted_at, review.review_id),
        )
        cycles: list[ReviewCycle] = []
        last_approval: Optional[Review] = None

        for review in ordered:
            if StageName.FIRST_REVIEW not in book:
                book.record(StageName.FIRST_REVIEW, review.submitted_at)
                events.append(
                    TimelineEvent(
                        type=EventType.FIRST_REVIEW,
                        timestamp=review.submitted_at,
                        actor=review.reviewer,
                        details=review.state.value,
                    )
                )

            if review.state == ReviewState.CHANGES_REQUESTED:
                following = [
                    other
                    for other in ordered
                    if other.review_id != review.review_id and other.submitted_at >= review.submitted_at
                ]
                cycle, addressed_event = self._open_cycle(pr, review, following, len(cycles) + 1)
                cycles.append(cycle)
                events.append(
                    TimelineEvent(
                        type=EventType.CHANGES_REQUESTED,
                        timestamp=review.submitted_at,
                        actor=review.reviewer,
                        details=f"cycle {cycle.cycle_number}",
                    )
                )
                if addressed_event is not None:
                    events.append(addressed_event)
            elif review.state == ReviewState.APPROVED:
                last_approval = review
                events.append(
                    TimelineEvent(type=EventType.APPROVED, timestamp=review.submitted_at, actor=review.reviewer)
                )

        if cycles:
            last_cycle = cycles[-1]
            if last_cycle.changes_addressed_at is not None:
                book.record(StageName.COMMENTS_FIXED, last_cycle.changes_addressed_at)
            else:
                issues.append(UNRESOLVED_CYCLE_ISSUE)
                confidence = UNRESOLVED_CYCLE_CONFIDENCE

        if last_approval is not None:
            book.record(StageName.APPROVED, last_approval.submitted_at)

        if pr.merged_at is not None:
            book.record(StageName.MERGED, pr.merged_at)
            events.append(
                TimelineEvent(type=EventType.MERGED, timestamp=pr.merged_at, actor=pr.merged_by or pr.author)
            )

        stages = book.ordered()
        end = pr.merged_at or now
        total_duration = duration_days(pr.created_at, end)
        ongoing = None
        if pr.status == PullRequestStatus.OPEN:
            ongoing = duration_days(stages[-1].timestamp, now)

        return Reconstruction(
            pull_request=pr,
            events=tuple(sorted(events, key=lambda event: event.timestamp)),
            stages=stages,
            stage_durations=self._stage_durations(book, ongoing),
            review_cycles=tuple(cycles),
            milestones=self._milestones(pr, book),
            total_duration=total_duration,
            is_completed=pr.status in _TERMINAL_STATUSES,
            issues=tuple(issues),
            confidence_score=confidence,
        )

    @staticmethod
    def _open_cycle(
        pr: PullRequest,
        request: Review,
        following: Sequence[Review],
        cycle_number: int,
    ) -> tuple[ReviewCycle, Optional[TimelineEvent]]:
        resolution = next((review for review in following if review.state in _RESOLVING_STATES), None)
        addressed_at: Optional[datetime] = None
        fallback = False
        event: Optional[TimelineEvent] = None
        if resolution is not None:
            addressed_at = resolution.submitted_at
            event = TimelineEvent(
                type=EventType.CHANGES_ADDRESSED,
                timestamp=addressed_at,
                actor=pr.author,
                details=f"cycle {cycle_number}, follow-up {resolution.state.value} by {resolution.reviewer}",
            )
        elif pr.updated_at > request.submitted_at:
            # Last PR activity may be unrelated to the fix; flagged via resolved_by_fallback.
            addressed_at = pr.updated_at
            fallback = True
            event = TimelineEvent(
                type=EventType.CHANGES_ADDRESSED,
                timestamp=addressed_at,
                actor=pr.author,
                details=f"cycle {cycle_number}, inferred from last PR update",
            )

        cycle = ReviewCycle(
            cycle_number=cycle_number,
            changes_requested_at=request.submitted_at,
            changes_addressed_at=addressed_at,
            duration_days=duration_days(request.submitted_at, addressed_at) if addressed_at is not None else None,
            reviewer=request.reviewer,
            resolved_by_fallback=fallback,
        )
        return cycle, event

    @staticmethod
    def _stage_durations(book: _StageBook, ongoing: Optional[float]) -> StageDurations:
        def incoming(name: StageName) -> Optional[float]:
            stage = book.get(name)
            return stage.duration_from_previous if stage is not None else None

        raised = book.get(StageName.PR_RAISED)
        approved = book.get(StageName.APPROVED)
        total_review_time = None
        if raised is not None and approved is not None:
            total_review_time = duration_days(raised.timestamp, approved.timestamp)

        return StageDurations(
            pr_raised_to_first_review=incoming(StageName.FIRST_REVIEW),
            first_review_to_comments_fixed=incoming(StageName.COMMENTS_FIXED),
            comments_fixed_to_approved=incoming(StageName.APPROVED),
            approved_to_merged=incoming(StageName.MERGED),
            ongoing_time=ongoing,
            total_review_time=total_review_time,
        )

    @staticmethod
    def _milestones(pr: PullRequest, book: _StageBook) -> Milestones:
        def milestone(name: StageName) -> Milestone:
            stage = book.get(name)
            if stage is None:
                return Milestone()
            return Milestone(timestamp=stage.timestamp, achieved=True)

        return Milestones(
            pr_created=Milestone(timestamp=pr.created_at, achieved=True),
            first_review=milestone(StageName.FIRST_REVIEW),
            approved=milestone(StageName.APPROVED),
            merged=Milestone(timestamp=pr.merged_at, achieved=pr.status == PullRequestStatus.MERGED),
        )


def build_timeline(reconstruction: Reconstruction) -> TimelineResult:
    pr = reconstruction.pull_request
    return TimelineResult(
        pr_number=pr.number,
        pr_title=pr.title,
        pr_author=pr.author,
        total_duration=reconstruction.total_duration,
        stages=list(reconstruction.stages),
        is_completed=reconstruction.is_completed,
        stage_durations=reconstruction.stage_durations,
        milestones=reconstruction.milestones,
    )


def build_enhanced_timeline(reconstruction: Reconstruction, validation: TimelineValidation) -> EnhancedTimelineResult:
    pr = reconstruction.pull_request
    return EnhancedTimelineResult(
        pr_number=pr.number,
        pr_title=pr.title,
        pr_author=pr.author,
        total_duration=reconstruction.total_duration,
        stages=list(reconstruction.stages),
        is_completed=reconstruction.is_completed,
        stage_durations=reconstruction.stage_durations,
        milestones=reconstruction.milestones,
        validation=validation,
        review_cycles=list(reconstruction.review_cycles),
        actual_events=list(reconstruction.events),
    )

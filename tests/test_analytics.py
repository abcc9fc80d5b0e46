from datetime import datetime, timedelta, timezone

import pytest

from reviewpulse.core.errors import (
    ArtifactNotCached,
    NoDataAvailable,
    PullRequestNotFound,
    SummarizerUnavailable,
    UnknownArtifact,
)
from reviewpulse.models.analytics import (
    CommonLearning,
    PRSummary,
    StrategyType,
    SummaryBody,
    SummaryMetadata,
)
from reviewpulse.models.domain import Comment, PullRequest, PullRequestStatus, Review, ReviewState
from reviewpulse.models.timeline import DataQuality, EnhancedTimelineResult, StageName
from reviewpulse.repositories.memory_store import ReviewStore
from reviewpulse.services.analytics import COMMON_LEARNING, ReviewAnalyticsService, summary_slot
from reviewpulse.services.summaries import CODE_ONLY_MODEL

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


class _RecordingSink:
    def __init__(self) -> None:
        self.events: list[dict] = []

    def publish(self, event: dict) -> None:
        self.events.append(event)

    def close(self) -> None:
        return None

    def types(self) -> list[str]:
        return [event["event_type"] for event in self.events]


class _FakeSummarizer:
    model_name = "fake-model"

    def __init__(self) -> None:
        self.pr_calls: list[tuple[int, int, int]] = []
        self.repo_calls = 0

    def summarize_pull_request(self, pr, comments, reviews):
        self.pr_calls.append((pr.number, len(comments), len(reviews)))
        return PRSummary(
            pr_number=pr.number,
            summary=SummaryBody(executive=f"Discussion on #{pr.number}"),
            metadata=SummaryMetadata(generated_at=START, model_used=self.model_name, confidence_score=0.9),
        )

    def summarize_repository(self, pull_requests, comments, reviews):
        self.repo_calls += 1
        return CommonLearning(
            trends={"testing": ["Reviewers ask for regression tests"]},
            analyzed_prs=len(pull_requests),
            total_comments=len(comments),
            total_reviews=len(reviews),
            confidence_score=0.7,
            generated_at=START,
        )


def _at(day: int) -> datetime:
    return START + timedelta(days=day - 1)


def _pr(number: int, **overrides) -> PullRequest:
    fields = {
        "number": number,
        "title": f"Change {number}",
        "author": "alice",
        "created_at": _at(1),
        "updated_at": _at(1),
    }
    fields.update(overrides)
    return PullRequest(**fields)


def _review(review_id: int, pr_number: int, state: ReviewState, day: int, reviewer: str = "bob", body: str = "") -> Review:
    return Review(
        review_id=review_id,
        pr_number=pr_number,
        reviewer=reviewer,
        state=state,
        submitted_at=_at(day),
        body=body,
    )


def _comment(source_id: int, pr_number: int, author: str, body: str) -> Comment:
    return Comment(source_id=source_id, pr_number=pr_number, author=author, body=body, created_at=_at(2))


def _service(summarizer=None, clock=None):
    sink = _RecordingSink()
    clock = clock or _Clock(_at(20))
    service = ReviewAnalyticsService(ReviewStore(), sink=sink, summarizer=summarizer, clock=clock)
    service.apply_fetch(
        [
            _pr(1, merged_at=_at(7), merged_by="carol", status=PullRequestStatus.MERGED, updated_at=_at(7)),
            _pr(2, requested_reviewers=["bob"]),
            _pr(3, updated_at=_at(2)),
        ],
        [
            _review(10, 1, ReviewState.CHANGES_REQUESTED, 2, body="Please handle the timeout case"),
            _review(11, 1, ReviewState.COMMENTED, 5, body="Thanks, this reads better now"),
            _review(12, 1, ReviewState.APPROVED, 6),
            _review(30, 3, ReviewState.CHANGES_REQUESTED, 2, reviewer="carol", body="Needs tests before merge"),
        ],
        [
            _comment(100, 1, "alice", "Updated the retry logic as suggested"),
            _comment(101, 1, "codecov[bot]", "[bot] Coverage report: 92%"),
            _comment(200, 2, "github-actions[bot]", "Workflow finished successfully"),
        ],
    )
    return service, sink


def test_apply_fetch_marks_reviews_and_refreshes_counts():
    service, sink = _service()

    pr1 = next(pr for pr in service.pull_requests() if pr.number == 1)
    assert pr1.approvals_count == 1
    assert [review.is_latest for review in service.reviews(1)] == [False, False, True]
    pr2 = next(pr for pr in service.pull_requests() if pr.number == 2)
    assert pr2.pending_reviewers == ["bob"]
    assert sink.types() == ["prs_updated"]
    assert sink.events[0]["pr_numbers"] == [1, 2, 3]


def test_unknown_pull_request_raises():
    service, _ = _service()

    with pytest.raises(PullRequestNotFound):
        service.timeline(99)
    with pytest.raises(PullRequestNotFound):
        service.comments(99)


def test_timeline_for_merged_pull_request():
    service, _ = _service()

    timeline = service.timeline(1)

    assert [stage.stage for stage in timeline.stages][-1] == StageName.MERGED
    assert timeline.stage_durations.approved_to_merged == 1.0
    assert not isinstance(timeline, EnhancedTimelineResult)


def test_enhanced_timeline_for_unresolved_cycle_publishes_nothing_when_still_valid():
    service, sink = _service()

    timeline = service.timeline(3, enhanced=True)

    assert isinstance(timeline, EnhancedTimelineResult)
    assert timeline.validation.data_quality == DataQuality.MEDIUM
    assert "Changes requested but no clear resolution detected" in timeline.validation.issues
    assert "timeline_low_confidence" not in sink.types()


def test_low_confidence_timeline_is_published():
    sink = _RecordingSink()
    service = ReviewAnalyticsService(ReviewStore(), sink=sink, clock=_Clock(_at(50)))
    service.apply_fetch(
        [_pr(5, updated_at=_at(40))],
        [
            _review(50, 5, ReviewState.APPROVED, 2, reviewer="bob"),
            _review(51, 5, ReviewState.CHANGES_REQUESTED, 3, reviewer="carol"),
            _review(52, 5, ReviewState.COMMENTED, 40, reviewer="carol"),
        ],
        [],
    )
    # The late fix lands after the only approval, so approval is out of order and negative.
    timeline = service.timeline(5, enhanced=True)

    assert len(timeline.validation.issues) == 4
    assert timeline.validation.confidence_score == pytest.approx(0.35)
    assert timeline.validation.is_valid is False
    assert timeline.validation.data_quality == DataQuality.LOW
    assert sink.types()[-1] == "timeline_low_confidence"


def test_overview_counts():
    service, _ = _service()

    overview = service.overview()

    assert overview.total_prs == 3
    assert overview.open_prs == 2
    assert overview.average_approvals == pytest.approx(1 / 3)
    assert overview.prs_needing_review == 2
    assert overview.prs_with_feedback == 1


def test_overview_of_empty_store():
    overview = ReviewAnalyticsService(ReviewStore()).overview()

    assert overview.total_prs == 0
    assert overview.average_approvals == 0.0


def test_strategy_per_pull_request():
    service, _ = _service()

    assert service.strategy(1).type == StrategyType.HUMAN_DISCUSSION
    assert service.strategy(2).type == StrategyType.CODE_ONLY
    assert service.strategy(3).type == StrategyType.HYBRID


def test_code_only_summary_needs_no_summarizer():
    service, sink = _service()

    summary = service.summary(2)

    assert summary.metadata.model_used == CODE_ONLY_MODEL
    assert summary.metadata.analysis_strategy.type == StrategyType.CODE_ONLY
    assert sink.types()[-1] == "summary_generated"


def test_discussion_summary_without_summarizer_raises():
    service, _ = _service()

    with pytest.raises(SummarizerUnavailable):
        service.summary(1)


def test_summary_is_cached_until_its_pull_request_changes():
    summarizer = _FakeSummarizer()
    service, _ = _service(summarizer=summarizer)

    first = service.summary(1)
    assert service.summary(1) is first
    assert summarizer.pr_calls == [(1, 1, 2)]
    assert first.metadata.analysis_strategy.type == StrategyType.HUMAN_DISCUSSION
    assert first.metadata.background_generated is False

    service.regenerate_summary(1)
    assert len(summarizer.pr_calls) == 2


def test_summary_status_reflects_cache():
    service, _ = _service()

    assert service.summary_status(2).exists is False
    service.summary(2)
    status = service.summary_status(2)
    assert status.exists is True
    assert status.confidence_score == 0.3
    assert [entry.exists for entry in service.summaries_status()] == [False, True, False]


def test_background_summaries_skip_when_summarizer_missing():
    service, _ = _service()

    generated = service.generate_background_summaries()

    assert generated == [2]
    assert service.summary_status(2).background_generated is True


def test_background_summaries_respect_batch_size_and_existing_entries():
    summarizer = _FakeSummarizer()
    service, _ = _service(summarizer=summarizer)
    service.summary(1)

    assert service.generate_background_summaries(batch_size=1) == [2]
    assert service.generate_background_summaries(batch_size=5) == [3]
    assert service.generate_background_summaries() == []


def test_common_learning_requires_data_and_summarizer():
    with pytest.raises(NoDataAvailable):
        ReviewAnalyticsService(ReviewStore(), summarizer=_FakeSummarizer()).common_learning()

    service, _ = _service()
    with pytest.raises(SummarizerUnavailable):
        service.common_learning()


def test_common_learning_uses_human_content_and_is_cached():
    summarizer = _FakeSummarizer()
    service, sink = _service(summarizer=summarizer)

    learning = service.common_learning()

    assert learning.analyzed_prs == 3
    assert learning.total_comments == 1
    assert learning.total_reviews == 3
    assert service.common_learning() is learning
    assert summarizer.repo_calls == 1
    assert sink.types()[-1] == "common_learning_generated"

    service.regenerate_common_learning()
    assert summarizer.repo_calls == 2


def test_common_learning_is_recomputed_after_new_fetch():
    summarizer = _FakeSummarizer()
    service, _ = _service(summarizer=summarizer)
    service.common_learning()

    service.apply_fetch([_pr(4)], [], [])
    learning = service.common_learning()

    assert learning.analyzed_prs == 1
    assert summarizer.repo_calls == 2


def test_common_learning_trends_are_read_from_cache_only():
    summarizer = _FakeSummarizer()
    service, _ = _service(summarizer=summarizer)

    with pytest.raises(ArtifactNotCached):
        service.common_learning_trends()
    assert summarizer.repo_calls == 0

    generated = service.common_learning()
    assert service.common_learning_trends() is generated
    assert service.common_learning_trends().trends == {"testing": ["Reviewers ask for regression tests"]}
    assert summarizer.repo_calls == 1

    service.apply_fetch([_pr(4)], [], [])
    with pytest.raises(ArtifactNotCached):
        service.common_learning_trends()


def test_cache_status_and_clear():
    clock = _Clock(_at(20))
    service, _ = _service(summarizer=_FakeSummarizer(), clock=clock)

    assert service.cache_status(COMMON_LEARNING).cached is False
    service.common_learning()
    clock.now += timedelta(minutes=30)
    status = service.cache_status(COMMON_LEARNING)
    assert status.valid is True
    assert status.age_minutes == 30

    service.summary(2)
    assert service.cache_status(summary_slot(2)).cached is True
    service.clear_cache(summary_slot(2))
    assert service.cache_status(summary_slot(2)).cached is False

    with pytest.raises(UnknownArtifact):
        service.cache_status("weekly_digest")

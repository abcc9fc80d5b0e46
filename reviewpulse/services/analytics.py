"""Review-process analytics over the current store snapshot."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from reviewpulse.core.errors import ArtifactNotCached, NoDataAvailable, PullRequestNotFound, SummarizerUnavailable
from reviewpulse.models.analytics import (
    AnalysisStrategy,
    CacheStatus,
    CommonLearning,
    PRSummary,
    RepositoryOverview,
    StrategyType,
    SummaryStatus,
)
from reviewpulse.models.domain import Comment, PullRequest, PullRequestStatus, Review, ReviewState
from reviewpulse.models.timeline import EnhancedTimelineResult, TimelineResult
from reviewpulse.repositories.memory_store import ReviewStore, StoreSnapshot
from reviewpulse.services.artifact_cache import ArtifactCacheRegistry, dataset_version
from reviewpulse.services.classification import ContentClassifier, select_strategy
from reviewpulse.services.ingest import mark_latest_reviews, refresh_pull_request
from reviewpulse.services.summaries import Summarizer, code_only_summary
from reviewpulse.services.timeline import TimelineReconstructor, build_enhanced_timeline, build_timeline
from reviewpulse.services.validation import ValidationThresholds, validate
from reviewpulse.telemetry import EventSink, NullEventSink, record_timeline_reconstruction

_logger = logging.getLogger(__name__)

COMMON_LEARNING = "common_learning"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def summary_slot(pr_number: int) -> str:
    return f"summary:{pr_number}"


class ReviewAnalyticsService:
    """Produces timelines, strategies, and cached insights for tracked pull requests."""

    def __init__(
        self,
        store: ReviewStore,
        *,
        classifier: ContentClassifier | None = None,
        reconstructor: TimelineReconstructor | None = None,
        caches: ArtifactCacheRegistry | None = None,
        sink: EventSink | None = None,
        summarizer: Summarizer | None = None,
        thresholds: ValidationThresholds | None = None,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self._store = store
        self._classifier = classifier or ContentClassifier()
        self._clock = clock
        self._reconstructor = reconstructor or TimelineReconstructor(clock=clock)
        self._caches = caches or ArtifactCacheRegistry(lambda: dataset_version(store.snapshot()), clock=clock)
        self._sink = sink or NullEventSink()
        self._summarizer = summarizer
        self._thresholds = thresholds or ValidationThresholds()

    def apply_fetch(
        self,
        pull_requests: Iterable[PullRequest],
        reviews: Iterable[Review],
        comments: Iterable[Comment],
    ) -> StoreSnapshot:
        """Install a freshly fetched working set, superseding the previous one."""

        reviews_by_pr: dict[int, list[Review]] = {}
        for review in reviews:
            reviews_by_pr.setdefault(review.pr_number, []).append(review)
        refreshed: list[PullRequest] = []
        marked: list[Review] = []
        for pr in pull_requests:
            pr_reviews = mark_latest_reviews(reviews_by_pr.get(pr.number, []))
            marked.extend(pr_reviews)
            refreshed.append(refresh_pull_request(pr, pr_reviews))
        snapshot = self._store.install(refreshed, marked, comments)
        _logger.info("Installed %d pull requests (generation %d)", len(refreshed), snapshot.generation)
        self._sink.publish(
            {
                "event_type": "prs_updated",
                "generation": snapshot.generation,
                "pr_numbers": [pr.number for pr in snapshot.pull_requests],
            }
        )
        return snapshot

    def pull_requests(self) -> list[PullRequest]:
        return list(self._store.snapshot().pull_requests)

    def reviews(self, pr_number: int) -> list[Review]:
        snapshot = self._store.snapshot()
        self._require(snapshot, pr_number)
        return snapshot.reviews_for(pr_number)

    def comments(self, pr_number: int) -> list[Comment]:
        snapshot = self._store.snapshot()
        self._require(snapshot, pr_number)
        return snapshot.comments_for(pr_number)

    def timeline(
        self,
        pr_number: int,
        enhanced: bool = False,
        now: datetime | None = None,
    ) -> TimelineResult | EnhancedTimelineResult:
        snapshot = self._store.snapshot()
        pr = self._require(snapshot, pr_number)
        reconstruction = self._reconstructor.reconstruct(
            pr, snapshot.reviews_for(pr_number), snapshot.comments_for(pr_number), now=now
        )
        validation = validate(
            reconstruction.stages,
            reconstruction.events,
            reconstruction.review_cycles,
            prior_issues=reconstruction.issues,
            prior_confidence=reconstruction.confidence_score,
            thresholds=self._thresholds,
        )
        record_timeline_reconstruction(validation.confidence_score)
        if not validation.is_valid:
            _logger.warning(
                "Low-confidence timeline for PR #%d (confidence %.2f, %d issues)",
                pr_number,
                validation.confidence_score,
                len(validation.issues),
            )
            self._sink.publish(
                {
                    "event_type": "timeline_low_confidence",
                    "pr_number": pr_number,
                    "confidence_score": validation.confidence_score,
                    "issues": validation.issues,
                }
            )
        if enhanced:
            return build_enhanced_timeline(reconstruction, validation)
        return build_timeline(reconstruction)

    def strategy(self, pr_number: int) -> AnalysisStrategy:
        snapshot = self._store.snapshot()
        self._require(snapshot, pr_number)
        return select_strategy(
            snapshot.comments_for(pr_number), snapshot.reviews_for(pr_number), self._classifier
        )

    def overview(self) -> RepositoryOverview:
        snapshot = self._store.snapshot()
        prs = snapshot.pull_requests
        total = len(prs)
        with_feedback = sum(
            1
            for pr in prs
            if any(
                review.state == ReviewState.CHANGES_REQUESTED
                for review in snapshot.latest_reviews_for(pr.number)
            )
        )
        return RepositoryOverview(
            total_prs=total,
            open_prs=sum(1 for pr in prs if pr.status == PullRequestStatus.OPEN),
            average_approvals=(sum(pr.approvals_count for pr in prs) / total) if total else 0.0,
            prs_needing_review=sum(1 for pr in prs if pr.approvals_count == 0),
            prs_with_feedback=with_feedback,
        )

    def summary(self, pr_number: int) -> PRSummary:
        snapshot = self._store.snapshot()
        pr = self._require(snapshot, pr_number)
        cache = self._summary_cache(pr_number)
        cached = cache.get()
        if cached is not None:
            return cached
        summary = self._generate_summary(snapshot, pr, background=False)
        cache.put(summary)
        self._sink.publish({"event_type": "summary_generated", "pr_number": pr_number})
        return summary

    def regenerate_summary(self, pr_number: int) -> PRSummary:
        self._require(self._store.snapshot(), pr_number)
        self._summary_cache(pr_number).clear()
        return self.summary(pr_number)

    def summary_status(self, pr_number: int) -> SummaryStatus:
        pr = self._require(self._store.snapshot(), pr_number)
        return self._summary_status(pr)

    def summaries_status(self) -> list[SummaryStatus]:
        return [self._summary_status(pr) for pr in self._store.snapshot().pull_requests]

    def generate_background_summaries(self, batch_size: int = 3) -> list[int]:
        """Fill summaries for pull requests whose cached summary is missing or stale."""

        snapshot = self._store.snapshot()
        generated: list[int] = []
        for pr in snapshot.pull_requests:
            if len(generated) >= batch_size:
                break
            cache = self._summary_cache(pr.number)
            if cache.is_valid(cache.entry()):
                continue
            try:
                summary = self._generate_summary(snapshot, pr, background=True)
            except SummarizerUnavailable:
                _logger.info("Skipping PR #%d: discussion present but no summarizer configured", pr.number)
                continue
            except Exception:
                _logger.exception("Background summary generation failed for PR #%d", pr.number)
                continue
            cache.put(summary)
            generated.append(pr.number)
            self._sink.publish({"event_type": "summary_generated", "pr_number": pr.number, "background": True})
        return generated

    def common_learning(self) -> CommonLearning:
        snapshot = self._store.snapshot()
        if snapshot.is_empty:
            raise NoDataAvailable("No PR data available for analysis")
        cache = self._caches.slot(COMMON_LEARNING)
        cached = cache.get()
        if cached is not None:
            return cached
        learning = self._generate_common_learning(snapshot)
        cache.put(learning)
        self._sink.publish({"event_type": "common_learning_generated", "analyzed_prs": learning.analyzed_prs})
        return learning

    def regenerate_common_learning(self) -> CommonLearning:
        self._caches.slot(COMMON_LEARNING).clear()
        return self.common_learning()

    def common_learning_trends(self) -> CommonLearning:
        """Return the cached report without generating one."""

        cached = self._caches.slot(COMMON_LEARNING).get()
        if cached is None:
            raise ArtifactNotCached(COMMON_LEARNING)
        return cached

    def cache_status(self, name: str) -> CacheStatus:
        return self._named_cache(name).status()

    def clear_cache(self, name: str) -> None:
        self._named_cache(name).clear()

    def _named_cache(self, name: str):
        if name == COMMON_LEARNING:
            return self._caches.slot(COMMON_LEARNING)
        prefix, _, number = name.partition(":")
        if prefix == "summary" and number.isdigit():
            return self._summary_cache(int(number))
        return self._caches.existing(name)

    def _summary_cache(self, pr_number: int):
        return self._caches.slot(
            summary_slot(pr_number),
            version_source=lambda: dataset_version(self._store.snapshot().scoped(pr_number)),
        )

    def _summary_status(self, pr: PullRequest) -> SummaryStatus:
        entry = self._summary_cache(pr.number).entry()
        if entry is None:
            return SummaryStatus(pr_number=pr.number, title=pr.title, exists=False)
        return SummaryStatus(
            pr_number=pr.number,
            title=pr.title,
            exists=True,
            generated_at=entry.generated_at,
            confidence_score=entry.data.metadata.confidence_score,
            background_generated=entry.data.metadata.background_generated,
        )

    def _generate_summary(self, snapshot: StoreSnapshot, pr: PullRequest, background: bool) -> PRSummary:
        comments = snapshot.comments_for(pr.number)
        reviews = snapshot.reviews_for(pr.number)
        strategy = select_strategy(comments, reviews, self._classifier)
        _logger.info(
            "PR #%d analysis strategy %s (human: %d comments, %d reviews; bot: %d comments, %d reviews)",
            pr.number,
            strategy.type.value,
            strategy.human_comments,
            strategy.human_reviews,
            strategy.bot_comments,
            strategy.bot_reviews,
        )
        if strategy.type == StrategyType.CODE_ONLY:
            return code_only_summary(pr, strategy, self._clock(), background=background)
        if self._summarizer is None:
            raise SummarizerUnavailable("Discussion analysis requires a configured summarizer")
        human_comments = [comment for comment in comments if self._classifier.is_human_comment(comment)]
        human_reviews = [review for review in reviews if self._classifier.is_human_review(review)]
        summary = self._summarizer.summarize_pull_request(pr, human_comments, human_reviews)
        metadata = summary.metadata.model_copy(
            update={"analysis_strategy": strategy, "background_generated": background}
        )
        return summary.model_copy(update={"metadata": metadata})

    def _generate_common_learning(self, snapshot: StoreSnapshot) -> CommonLearning:
        if self._summarizer is None:
            raise SummarizerUnavailable("Common learning requires a configured summarizer")
        human_comments = [comment for comment in snapshot.comments if self._classifier.is_human_comment(comment)]
        human_reviews = [review for review in snapshot.reviews if self._classifier.is_human_review(review)]
        return self._summarizer.summarize_repository(snapshot.pull_requests, human_comments, human_reviews)

    @staticmethod
    def _require(snapshot: StoreSnapshot, pr_number: int) -> PullRequest:
        pr: Optional[PullRequest] = snapshot.get_pull_request(pr_number)
        if pr is None:
            raise PullRequestNotFound(pr_number)
        return pr

from __future__ import annotations

from datetime import datetime, timezone

from fastapi.testclient import TestClient

from reviewpulse.dependencies import (
    get_analytics_service,
    get_caches,
    get_classifier,
    get_event_sink,
    get_store,
    get_summarizer,
)
from reviewpulse.main import create_app
from reviewpulse.models.analytics import CommonLearning
from reviewpulse.models.domain import Comment, PullRequest, PullRequestStatus, Review, ReviewState
from reviewpulse.repositories.memory_store import ReviewStore
from reviewpulse.services.analytics import ReviewAnalyticsService
from reviewpulse.telemetry import NullEventSink


def _at(day: int) -> datetime:
    return datetime(2024, 1, day, tzinfo=timezone.utc)


class _RepositorySummarizer:
    model_name = "stub-model"

    def summarize_pull_request(self, pr, comments, reviews):
        raise AssertionError("per-PR summaries are not exercised here")

    def summarize_repository(self, pull_requests, comments, reviews):
        return CommonLearning(
            trends={"error_handling": ["Refund paths need explicit failure cases"]},
            recommendations={"authors": ["Cover refund edge cases in tests"]},
            analyzed_prs=len(pull_requests),
            total_comments=len(comments),
            total_reviews=len(reviews),
            confidence_score=0.6,
            generated_at=_at(20),
        )


def _build_test_client(populate: bool = True, summarizer=None) -> TestClient:
    # Reset cached dependencies to avoid cross-test contamination.
    get_store.cache_clear()
    get_event_sink.cache_clear()
    get_classifier.cache_clear()
    get_caches.cache_clear()
    get_summarizer.cache_clear()
    get_analytics_service.cache_clear()

    app = create_app()
    store = ReviewStore()
    sink = NullEventSink()
    analytics = ReviewAnalyticsService(store, sink=sink, summarizer=summarizer, clock=lambda: _at(20))
    if populate:
        analytics.apply_fetch(
            [
                PullRequest(
                    number=1,
                    title="Add payouts connector",
                    author="alice",
                    created_at=_at(1),
                    updated_at=_at(7),
                    merged_at=_at(7),
                    merged_by="carol",
                    status=PullRequestStatus.MERGED,
                ),
                PullRequest(number=2, title="Bump deps", author="dependabot[bot]", created_at=_at(3), updated_at=_at(3)),
            ],
            [
                Review(review_id=10, pr_number=1, reviewer="bob", state=ReviewState.CHANGES_REQUESTED, submitted_at=_at(2), body="Handle the refund edge case"),
                Review(review_id=11, pr_number=1, reviewer="bob", state=ReviewState.COMMENTED, submitted_at=_at(5), body="Looks better after the fix"),
                Review(review_id=12, pr_number=1, reviewer="bob", state=ReviewState.APPROVED, submitted_at=_at(6)),
            ],
            [
                Comment(source_id=100, pr_number=1, author="alice", body="Added the refund handling", created_at=_at(4)),
                Comment(source_id=200, pr_number=2, author="github-actions[bot]", body="Workflow finished", created_at=_at(3)),
            ],
        )

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_event_sink] = lambda: sink
    app.dependency_overrides[get_analytics_service] = lambda: analytics

    return TestClient(app)


def test_healthcheck():
    client = _build_test_client()

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_list_pull_requests_reviews_and_comments():
    client = _build_test_client()

    prs = client.get("/v1/prs").json()
    assert [pr["number"] for pr in prs["pull_requests"]] == [1, 2]
    assert prs["request_id"].startswith("rq_")

    reviews = client.get("/v1/prs/1/reviews").json()["reviews"]
    assert [review["is_latest"] for review in reviews] == [False, False, True]

    comments = client.get("/v1/prs/2/comments").json()["comments"]
    assert comments[0]["author"] == "github-actions[bot]"


def test_unknown_pull_request_returns_404():
    client = _build_test_client()

    for path in ("/v1/prs/99/reviews", "/v1/prs/99/timeline", "/v1/prs/99/strategy", "/v1/prs/99/summary"):
        assert client.get(path).status_code == 404


def test_timeline_endpoint_plain_and_enhanced():
    client = _build_test_client()

    plain = client.get("/v1/prs/1/timeline").json()["timeline"]
    assert [stage["stage"] for stage in plain["stages"]] == [
        "pr_raised",
        "first_review",
        "comments_fixed",
        "approved",
        "merged",
    ]
    assert plain["stage_durations"]["approved_to_merged"] == 1.0
    assert plain["is_completed"] is True
    assert "validation" not in plain

    enhanced = client.get("/v1/prs/1/timeline", params={"enhanced": "true"}).json()["timeline"]
    assert enhanced["validation"]["data_quality"] == "high"
    assert enhanced["review_cycles"][0]["duration_days"] == 3.0
    assert enhanced["actual_events"][0]["type"] == "pr_created"


def test_strategy_endpoint():
    client = _build_test_client()

    body = client.get("/v1/prs/2/strategy").json()

    assert body["strategy"]["type"] == "code_only"
    assert body["strategy"]["bot_comments"] == 1


def test_summary_endpoints():
    client = _build_test_client()

    assert client.get("/v1/prs/2/summary/status").json()["status"]["exists"] is False
    summary = client.get("/v1/prs/2/summary").json()["summary"]
    assert summary["metadata"]["model_used"] == "code-analysis"
    assert client.get("/v1/prs/2/summary/status").json()["status"]["exists"] is True

    regenerated = client.post("/v1/prs/2/summary/regenerate")
    assert regenerated.status_code == 200

    statuses = client.get("/v1/summaries/status").json()["summaries"]
    assert [entry["exists"] for entry in statuses] == [False, True]


def test_discussion_summary_without_summarizer_returns_503():
    client = _build_test_client()

    response = client.get("/v1/prs/1/summary")

    assert response.status_code == 503


def test_overview_endpoint():
    client = _build_test_client()

    overview = client.get("/v1/analytics").json()["overview"]

    assert overview["total_prs"] == 2
    assert overview["open_prs"] == 1
    assert overview["prs_needing_review"] == 1


def test_common_learning_errors():
    assert _build_test_client(populate=False).get("/v1/common-learning").status_code == 400
    assert _build_test_client().get("/v1/common-learning").status_code == 503
    assert _build_test_client().post("/v1/common-learning/regenerate").status_code == 503


def test_cache_endpoints():
    client = _build_test_client()

    status = client.get("/v1/cache/common_learning/status").json()
    assert status["status"]["cached"] is False

    client.get("/v1/prs/2/summary")
    summary_status = client.get("/v1/cache/summary:2/status").json()["status"]
    assert summary_status["cached"] is True
    assert summary_status["valid"] is True

    cleared = client.delete("/v1/cache/summary:2")
    assert cleared.status_code == 200
    assert cleared.json()["cleared"] is True
    assert client.get("/v1/cache/summary:2/status").json()["status"]["cached"] is False

    assert client.get("/v1/cache/weekly_digest/status").status_code == 404
    assert client.delete("/v1/cache/weekly_digest").status_code == 404


def test_snapshot_ingest_installs_data_and_fills_summaries():
    client = _build_test_client(populate=False)
    payload = {
        "pull_requests": [
            {"number": 5, "title": "Tidy config loading", "author": "alice", "created_at": "2024-01-02T09:00:00Z", "updated_at": "2024-01-03T09:00:00Z"},
            {"number": 6, "title": "Rework retries", "author": "alice", "created_at": "2024-01-02T09:00:00Z", "updated_at": "2024-01-04T09:00:00Z"},
        ],
        "reviews": [
            {"review_id": 60, "pr_number": 6, "reviewer": "bob", "state": "changes_requested", "submitted_at": "2024-01-03T10:00:00Z", "body": "Cap the backoff"},
        ],
        "comments": [
            {"source_id": 600, "pr_number": 6, "author": "alice", "body": "Capped backoff at thirty seconds", "created_at": "2024-01-04T09:00:00Z"},
        ],
    }

    response = client.post("/v1/prs/snapshot", json=payload)

    assert response.status_code == 202
    body = response.json()
    assert body["generation"] == 1
    assert body["pr_numbers"] == [5, 6]
    assert [pr["number"] for pr in client.get("/v1/prs").json()["pull_requests"]] == [5, 6]
    assert client.get("/v1/prs/6/reviews").json()["reviews"][0]["is_latest"] is True

    # The code-only PR is summarized by the background task; the discussed one waits for a summarizer.
    assert client.get("/v1/prs/5/summary/status").json()["status"]["exists"] is True
    assert client.get("/v1/prs/6/summary/status").json()["status"]["exists"] is False


def test_snapshot_ingest_rejects_timestamps_without_offset():
    client = _build_test_client(populate=False)
    payload = {
        "pull_requests": [
            {"number": 5, "title": "Tidy config loading", "author": "alice", "created_at": "2024-01-02T09:00:00", "updated_at": "2024-01-03T09:00:00Z"},
        ],
    }

    response = client.post("/v1/prs/snapshot", json=payload)

    assert response.status_code == 422
    assert client.get("/v1/prs").json()["pull_requests"] == []


def test_common_learning_trends_served_from_cache():
    client = _build_test_client(summarizer=_RepositorySummarizer())

    assert client.get("/v1/common-learning/trends").status_code == 404

    assert client.get("/v1/common-learning").status_code == 200
    trends = client.get("/v1/common-learning/trends")
    assert trends.status_code == 200
    body = trends.json()
    assert body["trends"] == {"error_handling": ["Refund paths need explicit failure cases"]}
    assert body["recommendations"] == {"authors": ["Cover refund edge cases in tests"]}
    assert body["generated_at"].startswith("2024-01-20")
    assert body["confidence_score"] == 0.6

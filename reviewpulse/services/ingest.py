"""Helpers that turn fetched review data into store-ready records."""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Iterable, Sequence

from reviewpulse.models.domain import PullRequest, Review, ReviewState

_logger = logging.getLogger(__name__)

_STATE_MAP = {
    "APPROVED": ReviewState.APPROVED,
    "CHANGES_REQUESTED": ReviewState.CHANGES_REQUESTED,
    "COMMENTED": ReviewState.COMMENTED,
    # A dismissed review no longer blocks or approves.
    "DISMISSED": ReviewState.COMMENTED,
}

LANGUAGE_BY_EXTENSION = {
    "rs": "rust",
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "go": "go",
    "c": "c",
    "h": "c",
    "cpp": "cpp",
    "hpp": "cpp",
    "cs": "csharp",
    "php": "php",
    "rb": "ruby",
    "swift": "swift",
    "kt": "kotlin",
    "scala": "scala",
    "sql": "sql",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "toml": "toml",
    "md": "markdown",
    "sh": "bash",
    "dockerfile": "dockerfile",
}


def normalize_review_state(raw_state: str) -> ReviewState:
    state = _STATE_MAP.get((raw_state or "").upper())
    if state is None:
        _logger.warning("Unknown review state %r, treating as commented", raw_state)
        return ReviewState.COMMENTED
    return state


def mark_latest_reviews(reviews: Iterable[Review]) -> list[Review]:
    """Flag each reviewer's most recent review; earlier ones are kept for audit."""

    ordered = sorted(reviews, key=lambda review: (review.submitted_at, review.review_id))
    latest_ids = {review.reviewer: review.review_id for review in ordered}
    return [
        review.model_copy(update={"is_latest": latest_ids[review.reviewer] == review.review_id})
        for review in ordered
    ]


def count_approvals(reviews: Iterable[Review]) -> int:
    return sum(1 for review in reviews if review.is_latest and review.state == ReviewState.APPROVED)


def pending_reviewers(reviews: Iterable[Review], requested_reviewers: Sequence[str], author: str) -> list[str]:
    """Reviewers still expected to act, excluding the pull request author.

    Requested reviewers and commenters count until they approve; anyone whose
    latest review requested changes must re-review.
    """

    latest = [review for review in reviews if review.is_latest and review.reviewer != author]
    approved = {review.reviewer for review in latest if review.state == ReviewState.APPROVED}
    pending: list[str] = []

    def _add(login: str) -> None:
        if login not in pending:
            pending.append(login)

    for login in requested_reviewers:
        if login != author and login not in approved:
            _add(login)
    for review in latest:
        if review.state == ReviewState.CHANGES_REQUESTED:
            _add(review.reviewer)
    for review in latest:
        if review.state == ReviewState.COMMENTED and review.reviewer not in approved:
            _add(review.reviewer)
    return pending


def refresh_pull_request(pr: PullRequest, reviews: Iterable[Review]) -> PullRequest:
    """Return a new snapshot of ``pr`` with review-derived fields recomputed."""

    pr_reviews = [review for review in reviews if review.pr_number == pr.number]
    return pr.model_copy(
        update={
            "approvals_count": count_approvals(pr_reviews),
            "pending_reviewers": pending_reviewers(pr_reviews, pr.requested_reviewers, pr.author),
        }
    )


def language_for_path(file_path: str) -> str:
    name = PurePosixPath(file_path).name.lower()
    extension = name.rsplit(".", 1)[-1] if "." in name else name
    return LANGUAGE_BY_EXTENSION.get(extension, "text")

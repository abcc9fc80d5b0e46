"""In-memory store for fetched pull requests, reviews, and comments."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

from reviewpulse.models.domain import Comment, CommentType, PullRequest, Review


@dataclass(frozen=True)
class StoreSnapshot:
    """One immutable generation of the working set.

    Every write to :class:`ReviewStore` produces a new snapshot; readers that
    hold a reference keep seeing the generation they started with.
    """

    generation: int = 0
    pull_requests: tuple[PullRequest, ...] = ()
    reviews: tuple[Review, ...] = ()
    comments: tuple[Comment, ...] = ()

    def get_pull_request(self, pr_number: int) -> Optional[PullRequest]:
        return next((pr for pr in self.pull_requests if pr.number == pr_number), None)

    def reviews_for(self, pr_number: int) -> list[Review]:
        return [review for review in self.reviews if review.pr_number == pr_number]

    def latest_reviews_for(self, pr_number: int) -> list[Review]:
        return [review for review in self.reviews if review.pr_number == pr_number and review.is_latest]

    def comments_for(self, pr_number: int) -> list[Comment]:
        return [comment for comment in self.comments if comment.pr_number == pr_number]

    def latest_update(self) -> Optional[datetime]:
        timestamps = [pr.updated_at for pr in self.pull_requests]
        timestamps.extend(review.submitted_at for review in self.reviews)
        timestamps.extend(comment.created_at for comment in self.comments)
        return max(timestamps) if timestamps else None

    def scoped(self, pr_number: int) -> "StoreSnapshot":
        """The same generation restricted to a single pull request."""

        pr = self.get_pull_request(pr_number)
        return StoreSnapshot(
            generation=self.generation,
            pull_requests=(pr,) if pr is not None else (),
            reviews=tuple(self.reviews_for(pr_number)),
            comments=tuple(self.comments_for(pr_number)),
        )

    @property
    def is_empty(self) -> bool:
        return not self.pull_requests


class ReviewStore:
    """Holds the current snapshot and swaps in a new one on every refresh."""

    def __init__(self) -> None:
        self._snapshot = StoreSnapshot()
        self._write_lock = threading.Lock()

    def snapshot(self) -> StoreSnapshot:
        return self._snapshot

    @property
    def generation(self) -> int:
        return self._snapshot.generation

    def install(
        self,
        pull_requests: Iterable[PullRequest],
        reviews: Iterable[Review],
        comments: Iterable[Comment],
    ) -> StoreSnapshot:
        """Swap in a whole fetch result as one generation.

        Pull requests and reviews are replaced wholesale. Comments of fetched
        pull requests are merged by ``source_id``; records of pull requests
        missing from the fetch are dropped.
        """

        prs = tuple(sorted(pull_requests, key=lambda pr: pr.number))
        fetched = {pr.number for pr in prs}
        incoming_reviews = [review for review in reviews if review.pr_number in fetched]
        incoming_comments = [comment for comment in comments if comment.pr_number in fetched]
        with self._write_lock:
            kept_comments = tuple(comment for comment in self._snapshot.comments if comment.pr_number in fetched)
            return self._commit(
                pull_requests=prs,
                reviews=tuple(incoming_reviews),
                comments=self._merge_comments(kept_comments, None, incoming_comments),
            )

    def replace_pull_requests(self, pull_requests: Iterable[PullRequest]) -> StoreSnapshot:
        prs = tuple(sorted(pull_requests, key=lambda pr: pr.number))
        with self._write_lock:
            return self._commit(pull_requests=prs)

    def replace_reviews(self, pr_number: int, reviews: Iterable[Review]) -> StoreSnapshot:
        incoming = [review for review in reviews if review.pr_number == pr_number]
        with self._write_lock:
            kept = [review for review in self._snapshot.reviews if review.pr_number != pr_number]
            return self._commit(reviews=tuple(kept + incoming))

    def upsert_comments(self, pr_number: int, comments: Iterable[Comment]) -> StoreSnapshot:
        """Add comments whose ``source_id`` is not already stored; existing ids are left untouched."""

        with self._write_lock:
            return self._commit(comments=self._merge_comments(self._snapshot.comments, pr_number, comments))

    def replace_issue_comments(self, pr_number: int, comments: Iterable[Comment]) -> StoreSnapshot:
        """Replace conversation comments for a PR while keeping its inline review comments."""

        with self._write_lock:
            kept = tuple(
                comment
                for comment in self._snapshot.comments
                if comment.pr_number != pr_number or comment.comment_type == CommentType.REVIEW
            )
            return self._commit(comments=self._merge_comments(kept, pr_number, comments))

    def clear(self) -> StoreSnapshot:
        with self._write_lock:
            return self._commit(pull_requests=(), reviews=(), comments=())

    def _commit(self, **changes) -> StoreSnapshot:
        snapshot = replace(self._snapshot, generation=self._snapshot.generation + 1, **changes)
        self._snapshot = snapshot
        return snapshot

    @staticmethod
    def _merge_comments(
        existing: tuple[Comment, ...], pr_number: Optional[int], incoming: Iterable[Comment]
    ) -> tuple[Comment, ...]:
        seen = {comment.source_id for comment in existing}
        merged = list(existing)
        for comment in incoming:
            if (pr_number is not None and comment.pr_number != pr_number) or comment.source_id in seen:
                continue
            seen.add(comment.source_id)
            merged.append(comment)
        return tuple(merged)

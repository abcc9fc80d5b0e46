"""Service-level exceptions raised to the HTTP layer."""

from __future__ import annotations


class ReviewPulseError(Exception):
    """Base class for errors the routers translate into HTTP responses."""


class PullRequestNotFound(ReviewPulseError):
    def __init__(self, pr_number: int) -> None:
        super().__init__(f"Pull request #{pr_number} not found")
        self.pr_number = pr_number


class NoDataAvailable(ReviewPulseError):
    """Raised when an operation needs fetched data and the store is still empty."""


class SummarizerUnavailable(ReviewPulseError):
    """Raised when discussion analysis is requested without a configured summarizer."""


class UnknownArtifact(ReviewPulseError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown cached artifact: {name}")
        self.name = name


class ArtifactNotCached(ReviewPulseError):
    """Raised when a read-only view asks for an artifact that has no valid cache entry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No cached {name} available; generate it first")
        self.name = name

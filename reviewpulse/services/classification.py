"""Human versus automated content classification for PR discussion."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence

from reviewpulse.models.analytics import AnalysisStrategy, AuthorKind, ConfidenceLevel, StrategyType
from reviewpulse.models.domain import Comment, CommentType, Review

_logger = logging.getLogger(__name__)

STATUS_GLYPH_PATTERN = re.compile("^(\u2705|\u274c|\U0001f504|\u26a0\ufe0f?|\U0001f680|\U0001f4e6|\U0001f527)\\s")


class SignatureKind(str, Enum):
    AUTHOR_EXACT = "author_exact"
    AUTHOR_PATTERN = "author_pattern"
    CONTENT_PATTERN = "content_pattern"


_KIND_PRIORITY = {
    SignatureKind.AUTHOR_EXACT: 0,
    SignatureKind.AUTHOR_PATTERN: 1,
    SignatureKind.CONTENT_PATTERN: 2,
}


@dataclass(frozen=True)
class BotSignature:
    """A single rule identifying automated output.

    ``author_exact`` values are compared case-insensitively against the login.
    ``author_pattern`` values are regular expressions searched in the login.
    ``content_pattern`` values are regular expressions anchored at the start of
    the trimmed body.
    """

    kind: SignatureKind
    value: str
    description: str = ""


def _exact(login: str, description: str = "Known automation account") -> BotSignature:
    return BotSignature(SignatureKind.AUTHOR_EXACT, login, description)


def _content(prefix: str, description: str) -> BotSignature:
    return BotSignature(SignatureKind.CONTENT_PATTERN, prefix, description)


DEFAULT_SIGNATURES: tuple[BotSignature, ...] = (
    BotSignature(SignatureKind.AUTHOR_PATTERN, r"\[bot\]$", "GitHub App account"),
    BotSignature(SignatureKind.AUTHOR_PATTERN, r"bot$", "Login ends with bot"),
    BotSignature(SignatureKind.AUTHOR_PATTERN, r"-bot$", "Login ends with -bot"),
    _exact("semanticdiff-com[bot]"),
    _exact("coderabbitai[bot]"),
    _exact("dependabot[bot]"),
    _exact("github-actions[bot]"),
    _exact("renovate[bot]"),
    _exact("codecov[bot]"),
    _exact("sonarcloud[bot]"),
    _exact("snyk-bot"),
    _exact("whitesource-bolt[bot]"),
    _exact("deepsource-autofix[bot]"),
    _exact("gitguardian[bot]"),
    _exact("circleci-bot", "CI/CD bot"),
    _exact("travis-ci", "CI/CD bot"),
    _exact("jenkins-bot", "CI/CD bot"),
    _exact("azure-pipelines[bot]", "CI/CD bot"),
    _exact("lgtm-com[bot]", "Quality bot"),
    _exact("codeclimate[bot]", "Quality bot"),
    _exact("houndci-bot", "Quality bot"),
    _exact("vercel[bot]", "Deployment bot"),
    _exact("netlify[bot]", "Deployment bot"),
    _exact("heroku[bot]", "Deployment bot"),
    _content(r"\[bot\]", "Body tagged as bot output"),
    _content(r"Review changes with\s+SemanticDiff", "SemanticDiff banner"),
    _content(r"Changed Files", "Changed-files listing"),
    _content(r"Coverage report", "Coverage report"),
    _content(r"Build Status:", "Build status line"),
    _content(r"Deploy Preview", "Deploy preview notice"),
    _content(r"This pull request", "Pull request boilerplate"),
    _content(r"Automated merge", "Merge bot notice"),
    _content(r"\*\*Summary\*\* by CodeRabbit", "CodeRabbit summary"),
    _content(r"## Summary by CodeRabbit", "CodeRabbit summary"),
    _content("\U0001f916 This is an automated", "Automated notice"),
    _content(r"Dependency update", "Dependency bot boilerplate"),
    _content(r"Security update", "Security bot boilerplate"),
    _content(r"Auto-generated", "Auto-generated summary"),
    _content(r"Automatically generated", "Auto-generated summary"),
)


def signature_matches(signature: BotSignature, author: str, body: str) -> bool:
    """Evaluate one policy row against an author login and a trimmed body."""

    if signature.kind == SignatureKind.AUTHOR_EXACT:
        return author.lower() == signature.value.lower()
    if signature.kind == SignatureKind.AUTHOR_PATTERN:
        return re.search(signature.value, author, re.IGNORECASE) is not None
    return re.match(signature.value, body, re.IGNORECASE) is not None


class ContentClassifier:
    """Labels comments and reviews as human discussion or automated noise."""

    def __init__(self, signatures: Sequence[BotSignature] = DEFAULT_SIGNATURES, min_length: int = 10) -> None:
        self._signatures = sorted(signatures, key=lambda signature: _KIND_PRIORITY[signature.kind])
        self._min_length = min_length

    @property
    def signatures(self) -> tuple[BotSignature, ...]:
        return tuple(self._signatures)

    def explain(self, author: str, body: str) -> Optional[str]:
        """Return why the content counts as automated, or ``None`` for human content."""

        trimmed = (body or "").strip()
        for signature in self._signatures:
            if signature_matches(signature, author or "", trimmed):
                return f"{signature.kind.value}: {signature.description or signature.value}"
        if len(trimmed) < self._min_length:
            return f"short body ({len(trimmed)} chars)"
        if STATUS_GLYPH_PATTERN.match(trimmed):
            return "leading status emoji"
        return None

    def classify(self, comment: Comment) -> AuthorKind:
        reason = self.explain(comment.author, comment.body)
        if reason is None:
            return AuthorKind.HUMAN
        _logger.debug("Filtered bot content from %s (%s)", comment.author, reason)
        return AuthorKind.BOT

    def classify_review(self, review: Review) -> AuthorKind:
        return self.classify(review_as_comment(review))

    def is_human_comment(self, comment: Comment) -> bool:
        return self.classify(comment) == AuthorKind.HUMAN

    def is_human_review(self, review: Review) -> bool:
        return self.classify_review(review) == AuthorKind.HUMAN


def review_as_comment(review: Review) -> Comment:
    return Comment(
        source_id=review.review_id,
        pr_number=review.pr_number,
        author=review.reviewer,
        body=review.body or "",
        created_at=review.submitted_at,
        comment_type=CommentType.REVIEW,
    )


def select_strategy(
    comments: Iterable[Comment],
    reviews: Iterable[Review],
    classifier: ContentClassifier | None = None,
) -> AnalysisStrategy:
    """Decide how much discussion-based analysis a pull request can support."""

    classifier = classifier or ContentClassifier()
    human_comments = bot_comments = 0
    for comment in comments:
        if classifier.is_human_comment(comment):
            human_comments += 1
        else:
            bot_comments += 1
    human_reviews = bot_reviews = 0
    for review in reviews:
        if classifier.is_human_review(review):
            human_reviews += 1
        else:
            bot_reviews += 1

    human_total = human_comments + human_reviews
    if human_total == 0:
        strategy_type, confidence = StrategyType.CODE_ONLY, ConfidenceLevel.MEDIUM
    elif human_total >= 5 or human_reviews >= 2:
        strategy_type, confidence = StrategyType.HUMAN_DISCUSSION, ConfidenceLevel.HIGH
    else:
        strategy_type, confidence = StrategyType.HYBRID, ConfidenceLevel.MEDIUM

    return AnalysisStrategy(
        type=strategy_type,
        human_comments=human_comments,
        bot_comments=bot_comments,
        human_reviews=human_reviews,
        bot_reviews=bot_reviews,
        confidence_level=confidence,
    )

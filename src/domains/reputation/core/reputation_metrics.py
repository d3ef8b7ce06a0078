"""Reputation aggregates over a business's reviews."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from src.models.review import ReputationMetrics, Sentiment

if TYPE_CHECKING:
    from datetime import datetime

    from src.models.review import Review

SENTIMENT_VALUES: dict[Sentiment, float] = {
    Sentiment.VERY_POSITIVE: 100.0,
    Sentiment.POSITIVE: 75.0,
    Sentiment.NEUTRAL: 50.0,
    Sentiment.NEGATIVE: 25.0,
    Sentiment.VERY_NEGATIVE: 0.0,
}

TREND_MIN_REVIEWS = 10
TREND_THRESHOLD = 0.2


def calculate_sentiment_score(reviews: list[Review]) -> float:
    """Mean of per-review sentiment values on a 0-100 scale; 50 with no reviews."""
    if not reviews:
        return 50.0
    return sum(SENTIMENT_VALUES[review.sentiment] for review in reviews) / len(reviews)


def _responded_at(review: Review) -> datetime | None:
    if review.ai_response is not None and review.ai_response.sent_at is not None:
        return review.ai_response.sent_at
    if review.human_response is not None:
        return review.human_response.responded_at
    return None


def calculate_response_time_hours(reviews: list[Review]) -> float:
    """Average hours between publication and the reply going out."""
    durations = []
    for review in reviews:
        responded_at = _responded_at(review)
        if responded_at is not None:
            durations.append((responded_at - review.published_at).total_seconds() / 3600)
    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def calculate_trend(reviews: list[Review]) -> str:
    """Compare the newer half of reviews to the older half by average rating."""
    if len(reviews) < TREND_MIN_REVIEWS:
        return "stable"

    ordered = sorted(reviews, key=lambda review: review.published_at, reverse=True)
    half = len(ordered) // 2
    recent, older = ordered[:half], ordered[half:]
    recent_avg = sum(review.rating for review in recent) / len(recent)
    older_avg = sum(review.rating for review in older) / len(older)

    difference = recent_avg - older_avg
    if difference > TREND_THRESHOLD:
        return "up"
    if difference < -TREND_THRESHOLD:
        return "down"
    return "stable"


def calculate_reputation_metrics(reviews: list[Review]) -> ReputationMetrics:
    """Aggregate rating, response and sentiment figures. Zeroed when there are no reviews."""
    if not reviews:
        return ReputationMetrics()

    responded = sum(1 for review in reviews if review.has_response)
    distribution = Counter(str(review.sentiment) for review in reviews)
    return ReputationMetrics(
        average_rating=sum(review.rating for review in reviews) / len(reviews),
        total_reviews=len(reviews),
        response_rate=responded / len(reviews) * 100,
        sentiment_score=calculate_sentiment_score(reviews),
        response_time_hours=calculate_response_time_hours(reviews),
        trend=calculate_trend(reviews),
        sentiment_distribution=dict(distribution),
    )

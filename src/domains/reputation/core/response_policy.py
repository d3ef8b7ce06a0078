"""Which reviews get an automatic draft reply, and in what tone."""

from __future__ import annotations

import hashlib

from src.models.review import ResponseTone, Sentiment

ALWAYS_RESPOND = frozenset({Sentiment.VERY_NEGATIVE, Sentiment.NEGATIVE, Sentiment.NEUTRAL})
NEVER_RESPOND = frozenset({Sentiment.VERY_POSITIVE})

TONE_BY_SENTIMENT: dict[Sentiment, ResponseTone] = {
    Sentiment.VERY_NEGATIVE: ResponseTone.APOLOGETIC,
    Sentiment.NEGATIVE: ResponseTone.APOLOGETIC,
    Sentiment.NEUTRAL: ResponseTone.PROFESSIONAL,
    Sentiment.POSITIVE: ResponseTone.GRATEFUL,
    Sentiment.VERY_POSITIVE: ResponseTone.GRATEFUL,
}


def response_bucket(review_id: str) -> int:
    """Stable 0-99 bucket for a review id."""
    digest = hashlib.sha256(review_id.encode("utf-8")).hexdigest()
    return int(digest[:8], 16) % 100


def is_eligible_for_ai_response(
    review_id: str,
    sentiment: Sentiment,
    positive_response_percent: int = 70,
) -> bool:
    """Decide whether a review gets an automatic draft.

    Very positive reviews never do; negative and neutral reviews always do;
    positive reviews do when their id falls in the configured share of buckets.
    """
    if sentiment in NEVER_RESPOND:
        return False
    if sentiment in ALWAYS_RESPOND:
        return True
    return response_bucket(review_id) < positive_response_percent


def select_tone(sentiment: Sentiment) -> ResponseTone:
    return TONE_BY_SENTIMENT[sentiment]

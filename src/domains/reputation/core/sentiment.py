"""Keyword-based review sentiment and the sentiment/rating mapping."""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.models.review import Sentiment

SENTIMENT_TO_RATING: dict[Sentiment, int] = {
    Sentiment.VERY_NEGATIVE: 1,
    Sentiment.NEGATIVE: 2,
    Sentiment.NEUTRAL: 3,
    Sentiment.POSITIVE: 4,
    Sentiment.VERY_POSITIVE: 5,
}

RATING_TO_SENTIMENT: dict[int, Sentiment] = {
    rating: sentiment for sentiment, rating in SENTIMENT_TO_RATING.items()
}

# --- Keyword Dictionaries ---

STRONG_POSITIVE: list[str] = [
    "amazing",
    "excellent",
    "outstanding",
    "fantastic",
    "incredible",
    "perfect",
    "best",
    "love",
    "loved",
    "wonderful",
    "exceptional",
    "highly recommend",
]

MILD_POSITIVE: list[str] = [
    "good",
    "great",
    "nice",
    "friendly",
    "tasty",
    "fresh",
    "clean",
    "helpful",
    "recommend",
    "enjoyed",
    "pleasant",
    "fast",
]

STRONG_NEGATIVE: list[str] = [
    "terrible",
    "horrible",
    "awful",
    "worst",
    "disgusting",
    "never again",
    "avoid",
    "inedible",
    "rude",
    "scam",
]

MILD_NEGATIVE: list[str] = [
    "bad",
    "slow",
    "cold",
    "dirty",
    "disappointing",
    "disappointed",
    "overpriced",
    "mediocre",
    "bland",
    "poor",
    "wrong",
    "late",
]

NEGATION_WORDS: list[str] = [
    "no",
    "not",
    "never",
    "without",
    "hardly",
    "isn't",
    "wasn't",
    "don't",
    "didn't",
]

# Number of words before a keyword that are searched for a negation
NEGATION_WINDOW = 3


@dataclass
class SentimentMatch:
    """A sentiment keyword found in review text."""

    keyword: str
    weight: int
    position: int
    is_negated: bool = False

    @property
    def score(self) -> int:
        # A negated word counts as a mild opposite ("not great" is mildly negative)
        if self.is_negated:
            return -1 if self.weight > 0 else 1
        return self.weight


def find_sentiment_matches(text: str) -> list[SentimentMatch]:
    """Find weighted sentiment keywords in text, longest phrases first.

    Returns matches in text order with negation already detected.
    """
    text_lower = text.lower()
    weighted_terms = (
        [(term, 2) for term in STRONG_POSITIVE]
        + [(term, 1) for term in MILD_POSITIVE]
        + [(term, -2) for term in STRONG_NEGATIVE]
        + [(term, -1) for term in MILD_NEGATIVE]
    )
    weighted_terms.sort(key=lambda item: len(item[0]), reverse=True)

    matches: list[SentimentMatch] = []
    claimed: list[tuple[int, int]] = []
    for term, weight in weighted_terms:
        pattern = re.compile(r"\b" + re.escape(term) + r"\b")
        for found in pattern.finditer(text_lower):
            span = (found.start(), found.end())
            if any(start < span[1] and span[0] < end for start, end in claimed):
                continue
            claimed.append(span)
            matches.append(SentimentMatch(keyword=term, weight=weight, position=found.start()))

    matches.sort(key=lambda match: match.position)
    return detect_negation(matches, text_lower)


def detect_negation(matches: list[SentimentMatch], text: str) -> list[SentimentMatch]:
    """Flag matches preceded by a negation word within a few words ("not good")."""
    for match in matches:
        preceding = re.findall(r"[a-z']+", text[: match.position])[-NEGATION_WINDOW:]
        match.is_negated = any(word in NEGATION_WORDS for word in preceding)
    return matches


def score_to_sentiment(score: int) -> Sentiment:
    """Band a net keyword score onto the five-point scale."""
    if score <= -2:
        return Sentiment.VERY_NEGATIVE
    elif score == -1:
        return Sentiment.NEGATIVE
    elif score == 0:
        return Sentiment.NEUTRAL
    elif score == 1:
        return Sentiment.POSITIVE
    return Sentiment.VERY_POSITIVE


def classify_text(text: str) -> Sentiment | None:
    """Classify review text. Returns None when the text carries no sentiment keywords."""
    matches = find_sentiment_matches(text)
    if not matches:
        return None
    return score_to_sentiment(sum(match.score for match in matches))


def sentiment_from_rating(rating: int) -> Sentiment:
    return RATING_TO_SENTIMENT[max(1, min(5, rating))]


def rating_from_sentiment(sentiment: Sentiment) -> int:
    return SENTIMENT_TO_RATING[sentiment]


def resolve_sentiment(
    content: str,
    rating: int | None,
    sentiment: Sentiment | None = None,
) -> tuple[Sentiment, int]:
    """Settle the sentiment and rating of an incoming review.

    A supplied sentiment wins and, when the rating is missing, determines
    it. Otherwise the text is classified, and only text without any signal
    falls back to the star rating. Returns (sentiment, rating).
    """
    if sentiment is not None:
        return sentiment, rating if rating is not None else rating_from_sentiment(sentiment)

    from_text = classify_text(content) if content else None
    if from_text is not None:
        return from_text, rating if rating is not None else rating_from_sentiment(from_text)

    if rating is not None:
        return sentiment_from_rating(rating), rating
    return Sentiment.NEUTRAL, rating_from_sentiment(Sentiment.NEUTRAL)

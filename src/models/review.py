"""Review, review profile and AI response models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.utils.clock import as_utc

MIN_AI_CONFIDENCE = 70
MAX_AI_CONFIDENCE = 100


class Sentiment(StrEnum):
    """Five-point sentiment scale, ordered from most negative to most positive."""

    VERY_NEGATIVE = "very_negative"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"
    VERY_POSITIVE = "very_positive"


class ReviewStatus(StrEnum):
    """Response workflow status of a review."""

    NEW = "new"
    AI_RESPONDED = "ai_responded"
    RESPONDED = "responded"


class ResponseTone(StrEnum):
    """Tone requested from the response generator."""

    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    APOLOGETIC = "apologetic"
    GRATEFUL = "grateful"
    EXPLANATORY = "explanatory"


class ReviewPlatform(StrEnum):
    """Platforms reviews are synced from."""

    GOOGLE = "google"
    YELP = "yelp"
    FACEBOOK = "facebook"
    TRIPADVISOR = "tripadvisor"


def _validate_rating(value: int | None) -> int | None:
    if value is not None and (value < 1 or value > 5):
        msg = "rating must be between 1 and 5"
        raise ValueError(msg)
    return value


class ReviewProfile(BaseModel):
    """A business listing on a review platform that is periodically synced."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str
    business_id: str
    platform: ReviewPlatform
    is_active: bool = True
    last_synced_at: datetime | None = None
    created_at: datetime


class ReviewPayload(BaseModel):
    """Raw review as delivered by a review source, before intake."""

    external_id: str
    author: str = "Anonymous"
    rating: int | None = None
    content: str = ""
    sentiment: Sentiment | None = None
    published_at: datetime

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, value: int | None) -> int | None:
        """Rating must be between 1 and 5 when present."""
        return _validate_rating(value)

    @field_validator("published_at")
    @classmethod
    def validate_published_at(cls, value: datetime) -> datetime:
        """Timestamps without an offset are taken as UTC."""
        return as_utc(value)


class GeneratedResponse(BaseModel):
    """Output of the response generation capability."""

    content: str
    confidence: int
    reasoning: str = ""

    @field_validator("content")
    @classmethod
    def validate_content(cls, value: str) -> str:
        """Generated content must be non-empty."""
        if not value.strip():
            msg = "content must not be empty"
            raise ValueError(msg)
        return value.strip()

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, value: int) -> int:
        """Clamp confidence into the 70-100 range."""
        return max(MIN_AI_CONFIDENCE, min(MAX_AI_CONFIDENCE, value))


class ResponseFeedback(BaseModel):
    """Operator feedback recorded when an AI response is rejected."""

    reason: str
    suggested_content: str | None = None


class AIResponse(BaseModel):
    """An AI-drafted reply awaiting human approval."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str
    review_id: str
    tone: ResponseTone
    content: str
    confidence: int
    reasoning: str = ""
    generated_at: datetime
    approved_by: str | None = None
    approved_at: datetime | None = None
    sent_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    feedback: ResponseFeedback | None = None

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, value: int) -> int:
        """Confidence must be between 70 and 100."""
        if value < MIN_AI_CONFIDENCE or value > MAX_AI_CONFIDENCE:
            msg = f"confidence must be between {MIN_AI_CONFIDENCE} and {MAX_AI_CONFIDENCE}"
            raise ValueError(msg)
        return value

    @property
    def is_sent(self) -> bool:
        return self.sent_at is not None

    @property
    def is_rejected(self) -> bool:
        return self.rejected_at is not None


class HumanResponse(BaseModel):
    """A reply written directly by an operator."""

    content: str
    responded_by: str
    responded_at: datetime


class Review(BaseModel):
    """Represents a customer review of the organization's own business."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str
    profile_id: str
    business_id: str
    platform: ReviewPlatform
    external_id: str
    author: str = "Anonymous"
    rating: int
    content: str = ""
    sentiment: Sentiment
    status: ReviewStatus = ReviewStatus.NEW
    ai_response: AIResponse | None = None
    human_response: HumanResponse | None = None
    business_response: str | None = None
    published_at: datetime
    detected_at: datetime

    @field_validator("published_at", "detected_at")
    @classmethod
    def validate_timestamps(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, value: int) -> int:
        """Rating must be between 1 and 5."""
        if value < 1 or value > 5:
            msg = "rating must be between 1 and 5"
            raise ValueError(msg)
        return value

    @property
    def has_response(self) -> bool:
        return self.ai_response is not None or self.human_response is not None

    @property
    def is_negative(self) -> bool:
        return self.sentiment in (Sentiment.NEGATIVE, Sentiment.VERY_NEGATIVE)


class ReputationMetrics(BaseModel):
    """Aggregate reputation figures for one business."""

    average_rating: float = 0.0
    total_reviews: int = 0
    response_rate: float = 0.0
    sentiment_score: float = 0.0
    response_time_hours: float = 0.0
    trend: str = "stable"
    sentiment_distribution: dict[str, int] = Field(default_factory=dict)

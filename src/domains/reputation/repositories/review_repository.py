"""In-memory store for review profiles, reviews and AI responses."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from src.core.errors import NotFoundError

if TYPE_CHECKING:
    from src.models.review import AIResponse, Review, ReviewProfile


class ReviewRepository:
    """Reviews are keyed by id and deduplicated by (platform, external_id).

    AI responses are kept here even after rejection detaches them from their review.
    """

    def __init__(self) -> None:
        self._profiles: dict[str, ReviewProfile] = {}
        self._reviews: dict[str, Review] = {}
        self._external_index: dict[tuple[str, str], str] = {}
        self._responses: dict[str, AIResponse] = {}
        self._lock = threading.Lock()

    # --- Profiles ---

    def add_profile(self, profile: ReviewProfile) -> ReviewProfile:
        with self._lock:
            self._profiles[profile.id] = profile
        return profile

    def get_profile(self, profile_id: str) -> ReviewProfile:
        with self._lock:
            profile = self._profiles.get(profile_id)
        if profile is None:
            raise NotFoundError("review profile", profile_id)
        return profile

    def list_active_profiles(self) -> list[ReviewProfile]:
        with self._lock:
            return [profile for profile in self._profiles.values() if profile.is_active]

    # --- Reviews ---

    def add_review(self, review: Review) -> bool:
        """Store a review unless its (platform, external_id) is already known.

        Returns True when the review was new.
        """
        key = (str(review.platform), review.external_id)
        with self._lock:
            if key in self._external_index:
                return False
            self._external_index[key] = review.id
            self._reviews[review.id] = review
        return True

    def has_external(self, platform: str, external_id: str) -> bool:
        with self._lock:
            return (platform, external_id) in self._external_index

    def get_review(self, review_id: str) -> Review:
        with self._lock:
            review = self._reviews.get(review_id)
        if review is None:
            raise NotFoundError("review", review_id)
        return review

    def list_reviews(self) -> list[Review]:
        """All reviews, most recently published first."""
        with self._lock:
            reviews = list(self._reviews.values())
        return sorted(reviews, key=lambda review: review.published_at, reverse=True)

    def list_for_business(self, business_id: str) -> list[Review]:
        return [review for review in self.list_reviews() if review.business_id == business_id]

    # --- AI responses ---

    def add_response(self, response: AIResponse) -> AIResponse:
        with self._lock:
            self._responses[response.id] = response
        return response

    def get_response(self, response_id: str) -> AIResponse:
        with self._lock:
            response = self._responses.get(response_id)
        if response is None:
            raise NotFoundError("ai response", response_id)
        return response

    def list_responses(self) -> list[AIResponse]:
        with self._lock:
            return list(self._responses.values())

"""Review intake and the AI response approval workflow."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from src.core.errors import InvalidStateError, ResponseGenerationError
from src.domains.reputation.core.reputation_metrics import calculate_reputation_metrics
from src.domains.reputation.core.response_policy import (
    is_eligible_for_ai_response,
    select_tone,
)
from src.domains.reputation.core.sentiment import resolve_sentiment
from src.models.review import (
    AIResponse,
    HumanResponse,
    ResponseFeedback,
    ResponseTone,
    Review,
    ReviewPlatform,
    ReviewProfile,
    ReviewStatus,
)
from src.utils.ids import new_id
from src.utils.progress import CycleTracker

if TYPE_CHECKING:
    from src.domains.alerts.services.alert_dispatcher import AlertDispatcher
    from src.domains.reputation.repositories.review_repository import ReviewRepository
    from src.models.review import ReputationMetrics, ReviewPayload, Sentiment
    from src.services.protocols import ResponseGenerator, ReviewSource
    from src.utils.clock import Clock

logger = structlog.get_logger(__name__)


class ReputationService:
    """Syncs reviews, drafts AI replies, and applies operator approvals."""

    def __init__(
        self,
        review_repo: ReviewRepository,
        review_source: ReviewSource,
        generator: ResponseGenerator,
        alert_dispatcher: AlertDispatcher,
        clock: Clock,
        positive_response_percent: int = 70,
    ) -> None:
        self.review_repo = review_repo
        self.review_source = review_source
        self.generator = generator
        self.alert_dispatcher = alert_dispatcher
        self.clock = clock
        self.positive_response_percent = positive_response_percent

    # --- Intake ---

    def add_profile(
        self,
        business_id: str,
        platform: ReviewPlatform | str,
        profile_id: str | None = None,
    ) -> ReviewProfile:
        profile = ReviewProfile(
            id=profile_id or new_id("prf"),
            business_id=business_id,
            platform=ReviewPlatform(platform),
            created_at=self.clock.now(),
        )
        self.review_repo.add_profile(profile)
        logger.info("review_profile_added", profile_id=profile.id, platform=str(profile.platform))
        return profile

    def ingest_review(self, profile: ReviewProfile, payload: ReviewPayload) -> Review | None:
        """Store one review. Returns None when it was already known."""
        if self.review_repo.has_external(str(profile.platform), payload.external_id):
            return None

        sentiment, rating = resolve_sentiment(payload.content, payload.rating, payload.sentiment)
        review = Review(
            id=new_id("rev"),
            profile_id=profile.id,
            business_id=profile.business_id,
            platform=profile.platform,
            external_id=payload.external_id,
            author=payload.author,
            rating=rating,
            content=payload.content,
            sentiment=sentiment,
            published_at=payload.published_at,
            detected_at=self.clock.now(),
        )
        if not self.review_repo.add_review(review):
            return None

        logger.info(
            "review_synced",
            review_id=review.id,
            platform=str(review.platform),
            rating=review.rating,
            sentiment=str(review.sentiment),
        )
        self.alert_dispatcher.dispatch_for_review(review)
        return review

    def sync_reviews(self) -> dict[str, Any]:
        """Pull new reviews from every active profile.

        A failing profile is logged and retried on the next cycle.
        Returns summary stats dict.
        """
        profiles = self.review_repo.list_active_profiles()
        tracker = CycleTracker(cycle="review_sync", total=len(profiles))

        for profile in profiles:
            try:
                payloads = self.review_source.fetch_reviews(profile, profile.last_synced_at)
            except Exception as exc:
                logger.warning("review_sync_failed", profile_id=profile.id, error=str(exc))
                tracker.record_failure(f"Profile {profile.id}: {exc}")
                continue

            new_reviews = 0
            for payload in sorted(payloads, key=lambda item: item.published_at):
                if self.ingest_review(profile, payload) is not None:
                    new_reviews += 1
            profile.last_synced_at = self.clock.now()
            tracker.record_success()
            tracker.increment("reviews_ingested", new_reviews)

        tracker.log_summary()
        return tracker.summary()

    def process_pending_responses(self) -> dict[str, Any]:
        """Draft AI replies for every eligible review that still needs one."""
        pending = self.get_reviews_needing_response()
        tracker = CycleTracker(cycle="response_pipeline", total=len(pending))

        for review in pending:
            if not is_eligible_for_ai_response(
                review.id, review.sentiment, self.positive_response_percent
            ):
                tracker.record_skip()
                continue
            try:
                self.generate_ai_response(review.id)
            except ResponseGenerationError as exc:
                tracker.record_failure(f"Review {review.id}: {exc}")
            else:
                tracker.record_success()

        tracker.log_summary()
        return tracker.summary()

    def run_cycle(self) -> dict[str, Any]:
        """Review loop body: sync, then draft replies."""
        sync_stats = self.sync_reviews()
        response_stats = self.process_pending_responses()
        return {"sync": sync_stats, "responses": response_stats}

    # --- Response workflow ---

    def generate_ai_response(self, review_id: str, tone: ResponseTone | None = None) -> AIResponse:
        """Draft a reply for a review in status ``new``.

        On generator failure the review is left untouched and
        ResponseGenerationError is raised.
        """
        review = self.review_repo.get_review(review_id)
        if review.status != ReviewStatus.NEW or review.has_response:
            raise InvalidStateError("review", review_id, review.status, "generate a response for")

        selected_tone = ResponseTone(tone) if tone else select_tone(review.sentiment)
        try:
            generated = self.generator.generate(review.content, review.rating, selected_tone)
        except ResponseGenerationError as exc:
            logger.warning("response_generation_failed", review_id=review_id, error=str(exc))
            raise
        except Exception as exc:
            logger.warning("response_generation_failed", review_id=review_id, error=str(exc))
            raise ResponseGenerationError(str(exc)) from exc

        response = AIResponse(
            id=new_id("air"),
            review_id=review.id,
            tone=selected_tone,
            content=generated.content,
            confidence=generated.confidence,
            reasoning=generated.reasoning,
            generated_at=self.clock.now(),
        )
        self.review_repo.add_response(response)
        review.ai_response = response
        review.status = ReviewStatus.AI_RESPONDED
        logger.info(
            "ai_response_generated",
            review_id=review.id,
            response_id=response.id,
            tone=str(selected_tone),
            confidence=response.confidence,
        )
        return response

    def approve_ai_response(self, response_id: str, approved_by: str) -> Review:
        """Approve and send a draft; the review becomes ``responded``."""
        response = self.review_repo.get_response(response_id)
        if response.is_sent or response.is_rejected:
            state = "sent" if response.is_sent else "rejected"
            raise InvalidStateError("ai response", response_id, state, "approve")

        review = self.review_repo.get_review(response.review_id)
        now = self.clock.now()
        response.approved_by = approved_by
        response.approved_at = now
        response.sent_at = now
        review.ai_response = response
        review.business_response = response.content
        review.status = ReviewStatus.RESPONDED
        logger.info("ai_response_approved", response_id=response_id, approved_by=approved_by)
        return review

    def reject_ai_response(
        self,
        response_id: str,
        feedback: ResponseFeedback | str,
        rejected_by: str,
    ) -> Review:
        """Reject a draft. It is detached and the review goes back to ``new``."""
        response = self.review_repo.get_response(response_id)
        if response.is_sent or response.is_rejected:
            state = "sent" if response.is_sent else "rejected"
            raise InvalidStateError("ai response", response_id, state, "reject")

        if isinstance(feedback, str):
            feedback = ResponseFeedback(reason=feedback)
        review = self.review_repo.get_review(response.review_id)
        response.rejected_by = rejected_by
        response.rejected_at = self.clock.now()
        response.feedback = feedback
        review.ai_response = None
        review.status = ReviewStatus.NEW
        logger.info("ai_response_rejected", response_id=response_id, rejected_by=rejected_by)
        return review

    def record_human_response(self, review_id: str, content: str, responded_by: str) -> Review:
        """Reply directly to a review that has no pending AI draft."""
        review = self.review_repo.get_review(review_id)
        if review.status != ReviewStatus.NEW:
            raise InvalidStateError("review", review_id, review.status, "respond to")
        if not content.strip():
            msg = "response content must not be empty"
            raise ValueError(msg)

        review.human_response = HumanResponse(
            content=content.strip(),
            responded_by=responded_by,
            responded_at=self.clock.now(),
        )
        review.business_response = review.human_response.content
        review.status = ReviewStatus.RESPONDED
        logger.info("human_response_recorded", review_id=review_id, responded_by=responded_by)
        return review

    # --- Reads ---

    def get_reviews(self) -> list[Review]:
        return self.review_repo.list_reviews()

    def get_reviews_by_sentiment(self, sentiment: Sentiment) -> list[Review]:
        return [review for review in self.get_reviews() if review.sentiment == sentiment]

    def get_reviews_needing_response(self) -> list[Review]:
        return [
            review
            for review in self.get_reviews()
            if review.status == ReviewStatus.NEW and not review.has_response
        ]

    def get_reputation_metrics(self, business_id: str) -> ReputationMetrics:
        return calculate_reputation_metrics(self.review_repo.list_for_business(business_id))

    def get_response_quality(self) -> float | None:
        """Mean confidence of AI responses that were approved and sent; None when none were."""
        sent = [
            response.confidence
            for response in self.review_repo.list_responses()
            if response.is_sent
        ]
        if not sent:
            return None
        return sum(sent) / len(sent)

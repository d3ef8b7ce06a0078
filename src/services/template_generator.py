"""Deterministic canned-reply generator used when no LLM is configured."""

from __future__ import annotations

import hashlib

from src.models.review import GeneratedResponse, ResponseTone

CANNED_RESPONSES: dict[ResponseTone, tuple[str, ...]] = {
    ResponseTone.APOLOGETIC: (
        "Thank you for bringing this to our attention. We sincerely apologize for not"
        " meeting your expectations and would like to make this right.",
        "We're sorry to hear about your experience. Please contact us directly so we can"
        " address your concerns personally.",
        "Thank you for your honest feedback. We apologize for falling short and are"
        " committed to improving our service.",
    ),
    ResponseTone.GRATEFUL: (
        "Thank you so much for your wonderful feedback! We're thrilled to hear about your"
        " positive experience.",
        "We really appreciate you taking the time to share your experience. It means the"
        " world to us!",
        "Thank you for your kind words! We're delighted that we exceeded your expectations.",
    ),
    ResponseTone.PROFESSIONAL: (
        "Thank you for your feedback. We appreciate you taking the time to share your"
        " experience with us.",
        "Thank you for your review. We value all customer feedback and use it to"
        " continuously improve our services.",
        "We appreciate your feedback and thank you for choosing our services.",
    ),
    ResponseTone.FRIENDLY: (
        "Thanks so much for stopping by and sharing this! We hope to see you again soon.",
        "Great to hear from you! Thanks for letting us know how your visit went.",
    ),
    ResponseTone.EXPLANATORY: (
        "Thank you for your review. We'd like to explain how we handle situations like"
        " this and what we are changing as a result.",
        "Thanks for the feedback. Here is some context on what happened and how we are"
        " addressing it.",
    ),
}


def _digest(text: str) -> int:
    return int(hashlib.sha256(text.encode("utf-8")).hexdigest()[:8], 16)


class TemplateResponseGenerator:
    """Picks a canned reply for the tone; the same review text always gets the same reply."""

    def generate(self, review_text: str, rating: int, tone: ResponseTone) -> GeneratedResponse:
        options = CANNED_RESPONSES[ResponseTone(tone)]
        digest = _digest(f"{review_text}|{rating}")
        return GeneratedResponse(
            content=options[digest % len(options)],
            confidence=70 + digest % 31,
            reasoning=f"Generated {tone} response based on review sentiment and tone guidelines",
        )

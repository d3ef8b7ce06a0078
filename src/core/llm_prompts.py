"""LLM prompt templates for drafting replies to customer reviews."""

from __future__ import annotations

REVIEW_RESPONSE_SYSTEM_PROMPT = (
    "You draft public replies to customer reviews on behalf of a local business.\n"
    "Replies are reviewed by a person before they are posted.\n\n"
    "Respond with a JSON object containing:\n"
    "- content: the reply text, 2-3 sentences\n"
    "- confidence: integer between 70 and 100, how well the reply fits the review\n"
    "- reasoning: brief explanation of the approach taken"
)

REVIEW_RESPONSE_USER_TEMPLATE = (
    "Respond to this {rating}-star review with a {tone} tone:\n\n"
    'Review: "{review_text}"\n\n'
    "Tone guidelines: {tone_instructions}\n\n"
    "Generate a helpful response that addresses the customer's feedback"
    " appropriately.\n"
    "Keep it concise (2-3 sentences) and authentic to the brand voice.\n"
    "Respond with JSON only."
)

TONE_INSTRUCTIONS: dict[str, str] = {
    "professional": "Use professional, business-appropriate language",
    "apologetic": "Express sincere apology and take responsibility",
    "grateful": "Express gratitude and appreciation",
    "friendly": "Use warm, conversational tone",
    "explanatory": "Provide clear explanations and information",
}


def build_review_response_prompt(review_text: str, rating: int, tone: str) -> tuple[str, str]:
    """Build system and user prompts for a review reply.

    Returns (system_prompt, user_prompt).
    """
    user_prompt = REVIEW_RESPONSE_USER_TEMPLATE.format(
        rating=rating,
        tone=tone,
        review_text=review_text[:2000],
        tone_instructions=TONE_INSTRUCTIONS.get(tone, TONE_INSTRUCTIONS["professional"]),
    )
    return REVIEW_RESPONSE_SYSTEM_PROMPT, user_prompt

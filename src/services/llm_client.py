"""Anthropic-backed review response generator."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import anthropic
import structlog
from pydantic import ValidationError

from src.core.errors import ResponseGenerationError
from src.core.llm_prompts import build_review_response_prompt
from src.models.review import GeneratedResponse
from src.utils.retry import is_transient_error, retry_transient

if TYPE_CHECKING:
    from src.models.review import ResponseTone

logger = structlog.get_logger(__name__)


class AnthropicResponseGenerator:
    """Drafts review replies with the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-haiku-4-5-20251001",
        client: anthropic.Anthropic | None = None,
    ) -> None:
        self.client = client or anthropic.Anthropic(api_key=api_key)
        self.model = model

    def generate(self, review_text: str, rating: int, tone: ResponseTone) -> GeneratedResponse:
        """Generate a reply for the review.

        Raises ResponseGenerationError when the API keeps failing or returns
        something that is not a usable reply.
        """
        try:
            result = self._request(review_text, rating, str(tone))
        except (anthropic.APIError, ConnectionError, TimeoutError) as exc:
            logger.warning(
                "llm_response_generation_failed",
                tone=str(tone),
                transient=is_transient_error(exc),
                error=str(exc),
            )
            raise ResponseGenerationError(f"Anthropic API error: {exc}") from exc

        if "error" in result:
            raise ResponseGenerationError(result["error"])

        try:
            return GeneratedResponse(
                content=str(result.get("content", "")),
                confidence=int(result.get("confidence", 70)),
                reasoning=str(result.get("reasoning", "")),
            )
        except (ValidationError, TypeError, ValueError) as exc:
            logger.warning("llm_response_invalid", error=str(exc))
            raise ResponseGenerationError(f"Invalid response payload: {exc}") from exc

    @retry_transient("review_response_generation", max_attempts=2)
    def _request(self, review_text: str, rating: int, tone: str) -> dict[str, Any]:
        system_prompt, user_prompt = build_review_response_prompt(review_text, rating, tone)
        response = self.client.messages.create(
            model=self.model,
            max_tokens=400,
            temperature=0.3,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        text = response.content[0].text
        return self._parse_json_response(text)

    def _parse_json_response(self, text: str) -> dict[str, Any]:
        """Parse a JSON response from the LLM, handling markdown code blocks."""
        cleaned_text = text.strip()
        if cleaned_text.startswith("```"):
            lines = cleaned_text.split("\n")
            # Remove first and last lines (```json and ```)
            cleaned_text = "\n".join(lines[1:-1]) if len(lines) > 2 else cleaned_text

        try:
            parsed = json.loads(cleaned_text)
        except json.JSONDecodeError:
            logger.warning("failed_to_parse_llm_json", text=cleaned_text[:200])
            return {"error": "Failed to parse LLM response"}
        if not isinstance(parsed, dict):
            return {"error": "LLM response is not a JSON object"}
        return parsed

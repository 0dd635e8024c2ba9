"""Client abstraction for the AI stylist that proposes capsule combinations."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import google.generativeai as genai

from capsule_app.config import CapsuleConfig
from capsule_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class SuggestionRequest:
    """Structured request for one round of AI suggestions."""

    system_instruction: str
    user_prompt: str
    response_schema: Dict[str, Any] = field(default_factory=dict)


class SuggestionClient:
    """Interface for text-completion backends.

    ``complete`` returns the raw textual payload, or ``None`` when the backend
    produced no text; the caller owns parsing.
    """

    def complete(self, request: SuggestionRequest) -> Optional[str]:
        raise NotImplementedError


class GeminiSuggestionClient(SuggestionClient):
    """Gemini-backed client using JSON structured output."""

    def __init__(self, config: CapsuleConfig) -> None:
        self.config = config
        genai.configure(api_key=config.api_key)

    def _model(self, request: SuggestionRequest) -> genai.GenerativeModel:
        return genai.GenerativeModel(
            model_name=self.config.model,
            system_instruction=request.system_instruction,
        )

    def complete(self, request: SuggestionRequest) -> Optional[str]:
        generation_config: Dict[str, Any] = {
            "response_mime_type": "application/json",
            "temperature": self.config.temperature,
        }
        if request.response_schema:
            generation_config["response_schema"] = request.response_schema

        log_event(LOGGER, logging.INFO, "stylist_request_sent", model=self.config.model)
        response = self._model(request).generate_content(
            request.user_prompt,
            generation_config=generation_config,
        )
        try:
            text = response.text
        except ValueError:
            # Raised when the candidate was blocked or carries no text parts.
            log_event(LOGGER, logging.WARNING, "stylist_response_empty", model=self.config.model)
            return None
        return text


__all__ = ["SuggestionRequest", "SuggestionClient", "GeminiSuggestionClient"]

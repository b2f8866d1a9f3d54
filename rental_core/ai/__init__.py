"""AI summaries with deterministic Thai fallbacks."""

from .ai_service import AIResponse, AIService, OpenAIClient

__all__ = ["AIResponse", "AIService", "OpenAIClient"]

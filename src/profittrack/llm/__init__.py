"""LLM prompt building and completion modules."""
from .models import Turn
from .prompt_builder import (
    build_system_prompt,
    build_conversation_history,
    summarize_older_messages,
    filter_pii,
    get_suggested_questions,
)
from .gemini_client import GeminiCompletionClient, classify_error, extract_text

__all__ = [
    "Turn",
    "build_system_prompt",
    "build_conversation_history",
    "summarize_older_messages",
    "filter_pii",
    "get_suggested_questions",
    "GeminiCompletionClient",
    "classify_error",
    "extract_text",
]

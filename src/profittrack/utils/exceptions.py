"""Custom exception classes and the completion error taxonomy."""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of completion failure categories."""
    CONFIGURATION_ERROR = "configuration_error"
    CREDENTIAL_INVALID = "credential_invalid"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    INVALID_REQUEST = "invalid_request"
    MODEL_UNAVAILABLE = "model_unavailable"
    NO_CANDIDATE = "no_candidate"
    EMPTY_RESPONSE = "empty_response"
    SAFETY_BLOCKED = "safety_blocked"
    NETWORK_ERROR = "network_error"
    SERVICE_ERROR = "service_error"

    @property
    def retryable(self) -> bool:
        return self not in TERMINAL_KINDS


TERMINAL_KINDS = frozenset({
    ErrorKind.CONFIGURATION_ERROR,
    ErrorKind.CREDENTIAL_INVALID,
    ErrorKind.SAFETY_BLOCKED,
})

USER_MESSAGES = {
    ErrorKind.CONFIGURATION_ERROR: "AI features are not configured. Please add your Gemini API key.",
    ErrorKind.CREDENTIAL_INVALID: "Invalid API key. Please check your Gemini API key is correct.",
    ErrorKind.RATE_LIMITED: "API rate limit reached. Please wait a minute and try again.",
    ErrorKind.QUOTA_EXCEEDED: "AI quota exceeded. Please check your Google Cloud billing or try again tomorrow.",
    ErrorKind.INVALID_REQUEST: "Invalid request. Please try rephrasing your question.",
    ErrorKind.MODEL_UNAVAILABLE: "AI model temporarily unavailable. Please try again in a moment.",
    ErrorKind.NO_CANDIDATE: "Unable to generate a response. Please try again.",
    ErrorKind.EMPTY_RESPONSE: "Received empty response. Please try again.",
    ErrorKind.SAFETY_BLOCKED: "Your request was blocked for safety reasons. Please try a different question.",
    ErrorKind.NETWORK_ERROR: "Connection error. Please check your internet and try again.",
}

GENERIC_MESSAGE = "Something went wrong. Please try again."
FETCH_FAILED_MESSAGE = "Could not load your business data. Please try again."


def user_message(kind: ErrorKind, detail: Optional[str] = None) -> str:
    """User-facing text for an error kind."""
    if kind is ErrorKind.SERVICE_ERROR:
        return f"AI service error: {detail}" if detail else GENERIC_MESSAGE
    return USER_MESSAGES.get(kind, GENERIC_MESSAGE)


class ProfitTrackError(Exception):
    """Base exception for ProfitTrack."""
    pass


class ConfigError(ProfitTrackError):
    """Configuration-related errors."""
    pass


class StoreError(ProfitTrackError):
    """Record store errors."""
    pass


class RecordFetchError(StoreError):
    """Reading records or vehicles from the store failed."""
    pass


class LLMError(ProfitTrackError):
    """LLM processing errors."""
    pass


class CompletionError(LLMError):
    """A completion request failed with a classified kind."""

    def __init__(self, kind: ErrorKind, detail: str = ""):
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)
        self.kind = kind
        self.detail = detail

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    @property
    def user_message(self) -> str:
        return user_message(self.kind, self.detail)


class ValidationError(ProfitTrackError):
    """Data validation errors."""
    pass

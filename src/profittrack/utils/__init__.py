"""Utility modules."""
from .exceptions import (
    ErrorKind,
    ProfitTrackError,
    ConfigError,
    StoreError,
    RecordFetchError,
    LLMError,
    CompletionError,
    ValidationError,
    user_message
)
from .logger import get_logger, set_user_context
from .retry import RetryDecision, retry_policy, call_with_retry

__all__ = [
    "ErrorKind",
    "ProfitTrackError",
    "ConfigError",
    "StoreError",
    "RecordFetchError",
    "LLMError",
    "CompletionError",
    "ValidationError",
    "user_message",
    "get_logger",
    "set_user_context",
    "RetryDecision",
    "retry_policy",
    "call_with_retry"
]

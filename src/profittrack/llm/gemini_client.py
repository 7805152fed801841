"""Gemini completion client using the google-genai SDK."""
from typing import Any, List, Optional, Sequence

import httpx
from google import genai
from google.genai import errors, types

from .models import Turn
from ..config.manager import looks_like_api_key
from ..config.settings import get_settings
from ..utils.exceptions import CompletionError, ErrorKind
from ..utils.logger import get_logger

logger = get_logger()

ACKNOWLEDGEMENT = "I understand. I will analyze your transport business data and provide personalized insights."

RATE_LIMIT_WORDS = ("quota", "rate limit", "resource_exhausted", "resource exhausted")
PERMISSION_WORDS = ("permission", "denied")
API_KEY_WORDS = ("api key", "invalid key", "api_key_invalid")
NOT_FOUND_WORDS = ("not found", "does not exist")
SAFETY_WORDS = ("safety", "blocked")


def _classify_api_error(code: Optional[int], status: str, message: str) -> ErrorKind:
    text = f"{status} {message}".lower()

    if code == 429 or any(w in text for w in RATE_LIMIT_WORDS):
        return ErrorKind.RATE_LIMITED
    if code == 403 or any(w in text for w in PERMISSION_WORDS):
        return ErrorKind.QUOTA_EXCEEDED
    # The service reports a rejected key as a 400, so the key wording wins over the status
    if any(w in text for w in API_KEY_WORDS):
        return ErrorKind.CREDENTIAL_INVALID
    if code == 404 or any(w in text for w in NOT_FOUND_WORDS):
        return ErrorKind.MODEL_UNAVAILABLE
    if code == 400:
        return ErrorKind.INVALID_REQUEST
    if any(w in text for w in SAFETY_WORDS):
        return ErrorKind.SAFETY_BLOCKED
    return ErrorKind.SERVICE_ERROR


def classify_error(error: BaseException) -> ErrorKind:
    """
    Map any failure of a completion request to an ErrorKind.

    Args:
        error: Exception raised while calling the service

    Returns:
        The matching ErrorKind; SERVICE_ERROR when nothing more specific applies
    """
    if isinstance(error, CompletionError):
        return error.kind
    if isinstance(error, errors.APIError):
        return _classify_api_error(
            getattr(error, "code", None),
            str(getattr(error, "status", "") or ""),
            str(getattr(error, "message", "") or error)
        )
    if isinstance(error, (httpx.TransportError, OSError, TimeoutError)):
        return ErrorKind.NETWORK_ERROR
    return ErrorKind.SERVICE_ERROR


def to_completion_error(error: BaseException) -> CompletionError:
    """Wrap an exception in a CompletionError carrying its classified kind."""
    if isinstance(error, CompletionError):
        return error
    detail = str(getattr(error, "message", "") or error)
    return CompletionError(classify_error(error), detail)


def extract_text(response: Any) -> str:
    """
    Pull the reply text out of a generate_content response.

    Raises:
        CompletionError: NO_CANDIDATE, SAFETY_BLOCKED or EMPTY_RESPONSE
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise CompletionError(ErrorKind.SAFETY_BLOCKED, str(feedback.block_reason))
        raise CompletionError(ErrorKind.NO_CANDIDATE, "No candidates in response")

    candidate = candidates[0]
    if candidate.finish_reason == types.FinishReason.SAFETY:
        raise CompletionError(ErrorKind.SAFETY_BLOCKED, "Candidate blocked for safety")

    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None) or []
    text = "".join(part.text for part in parts if getattr(part, "text", None))
    if not text.strip():
        raise CompletionError(ErrorKind.EMPTY_RESPONSE, "Empty text in response")
    return text


class GeminiCompletionClient:
    """Sends one conversation turn to Gemini and returns the reply text."""

    def __init__(
        self,
        api_key: Optional[str],
        model_name: Optional[str] = None,
        client: Optional[Any] = None
    ):
        """
        Initialize the completion client.

        Args:
            api_key: Gemini API key
            model_name: Model to call, defaults to the configured model
            client: Pre-built genai.Client (or compatible object)
        """
        settings = get_settings()
        self.api_key = api_key
        self.model_name = model_name or settings.llm_model_name
        self.generation_config = types.GenerateContentConfig(
            temperature=settings.llm_temperature,
            top_k=settings.llm_top_k,
            top_p=settings.llm_top_p,
            max_output_tokens=settings.llm_max_output_tokens
        )
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @staticmethod
    def build_contents(system_prompt: str, user_message: str, history: Sequence[Turn]) -> List[types.Content]:
        """System prompt, acknowledgement, history, then the new message."""
        turns = [
            Turn("user", system_prompt),
            Turn("model", ACKNOWLEDGEMENT),
            *history,
            Turn("user", user_message),
        ]
        return [
            types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
            for turn in turns
        ]

    async def complete(self, system_prompt: str, user_message: str, history: Sequence[Turn] = ()) -> str:
        """
        Generate a reply.

        Args:
            system_prompt: Context-bearing instructions
            user_message: The new user turn
            history: Prior turns, oldest first

        Returns:
            Reply text

        Raises:
            CompletionError: Classified failure
        """
        if not looks_like_api_key(self.api_key):
            logger.error("Gemini API key is missing or invalid")
            raise CompletionError(ErrorKind.CONFIGURATION_ERROR, "Gemini API key is missing or invalid")

        contents = self.build_contents(system_prompt, user_message, history)
        logger.debug(f"Calling {self.model_name} with {len(contents)} turns")

        try:
            response = await self._get_client().aio.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=self.generation_config
            )
        except Exception as e:
            error = to_completion_error(e)
            logger.error(f"Gemini API call failed ({error.kind.value}): {e}")
            raise error from e

        text = extract_text(response)
        logger.info(f"Gemini response received, length: {len(text)}")
        return text

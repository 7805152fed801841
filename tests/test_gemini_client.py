"""Tests for the Gemini completion client and error classification."""
import unittest
from types import SimpleNamespace

import httpx
from google.genai import errors, types

from profittrack.llm.gemini_client import (
    ACKNOWLEDGEMENT,
    GeminiCompletionClient,
    classify_error,
    extract_text,
)
from profittrack.llm.models import Turn
from profittrack.utils.exceptions import CompletionError, ErrorKind

VALID_KEY = "AIzaSyTEST-0123456789abcdef"


def api_error(cls, code, message, status):
    return cls(code, {"error": {"code": code, "message": message, "status": status}})


def text_response(text, finish_reason=types.FinishReason.STOP):
    return types.GenerateContentResponse(candidates=[
        types.Candidate(
            content=types.Content(role="model", parts=[types.Part(text=text)]),
            finish_reason=finish_reason
        )
    ])


class FakeModels:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeGenaiClient:
    """Stands in for genai.Client; only the async models API is used."""

    def __init__(self, *outcomes):
        self.models = FakeModels(outcomes)
        self.aio = SimpleNamespace(models=self.models)


class TestClassifyError(unittest.TestCase):
    """Test classify_error mapping."""

    def test_status_codes(self):
        """Test HTTP status based classification."""
        cases = [
            (errors.ClientError, 429, "Resource has been exhausted", "RESOURCE_EXHAUSTED", ErrorKind.RATE_LIMITED),
            (errors.ClientError, 403, "The caller does not have permission", "PERMISSION_DENIED", ErrorKind.QUOTA_EXCEEDED),
            (errors.ClientError, 404, "models/gemini-x is not found", "NOT_FOUND", ErrorKind.MODEL_UNAVAILABLE),
            (errors.ClientError, 400, "Invalid JSON payload received", "INVALID_ARGUMENT", ErrorKind.INVALID_REQUEST),
            (errors.ServerError, 500, "Internal error encountered", "INTERNAL", ErrorKind.SERVICE_ERROR),
        ]
        for cls, code, message, status, expected in cases:
            with self.subTest(code=code):
                self.assertEqual(classify_error(api_error(cls, code, message, status)), expected)

    def test_rejected_key(self):
        """Test the service's bad-key response."""
        error = api_error(errors.ClientError, 400, "API key not valid. Please pass a valid API key.", "INVALID_ARGUMENT")
        self.assertEqual(classify_error(error), ErrorKind.CREDENTIAL_INVALID)

    def test_transport_failures(self):
        """Test connection problems are network errors."""
        self.assertEqual(classify_error(httpx.ConnectError("name resolution failed")), ErrorKind.NETWORK_ERROR)
        self.assertEqual(classify_error(ConnectionResetError()), ErrorKind.NETWORK_ERROR)
        self.assertEqual(classify_error(TimeoutError()), ErrorKind.NETWORK_ERROR)

    def test_catch_all(self):
        """Test unknown failures."""
        self.assertEqual(classify_error(ValueError("odd")), ErrorKind.SERVICE_ERROR)

    def test_terminal_kinds(self):
        """Test which kinds are retryable."""
        self.assertFalse(ErrorKind.CONFIGURATION_ERROR.retryable)
        self.assertFalse(ErrorKind.CREDENTIAL_INVALID.retryable)
        self.assertFalse(ErrorKind.SAFETY_BLOCKED.retryable)
        self.assertTrue(ErrorKind.RATE_LIMITED.retryable)
        self.assertTrue(ErrorKind.NETWORK_ERROR.retryable)


class TestExtractText(unittest.TestCase):
    """Test response inspection."""

    def test_text(self):
        """Test a normal reply."""
        self.assertEqual(extract_text(text_response("Fuel is your biggest cost.")), "Fuel is your biggest cost.")

    def test_no_candidate(self):
        """Test an empty candidate list."""
        with self.assertRaises(CompletionError) as ctx:
            extract_text(types.GenerateContentResponse(candidates=[]))
        self.assertEqual(ctx.exception.kind, ErrorKind.NO_CANDIDATE)

    def test_blocked_prompt(self):
        """Test a prompt blocked before any candidate."""
        response = SimpleNamespace(candidates=None, prompt_feedback=SimpleNamespace(block_reason="SAFETY"))
        with self.assertRaises(CompletionError) as ctx:
            extract_text(response)
        self.assertEqual(ctx.exception.kind, ErrorKind.SAFETY_BLOCKED)

    def test_safety_finish_reason(self):
        """Test a candidate stopped for safety."""
        with self.assertRaises(CompletionError) as ctx:
            extract_text(text_response("", finish_reason=types.FinishReason.SAFETY))
        self.assertEqual(ctx.exception.kind, ErrorKind.SAFETY_BLOCKED)

    def test_empty_text(self):
        """Test a candidate without text."""
        with self.assertRaises(CompletionError) as ctx:
            extract_text(text_response(""))
        self.assertEqual(ctx.exception.kind, ErrorKind.EMPTY_RESPONSE)


class TestGeminiCompletionClient(unittest.IsolatedAsyncioTestCase):
    """Test GeminiCompletionClient.complete."""

    async def test_turn_sequence(self):
        """Test system prompt, acknowledgement, history and new message order."""
        fake = FakeGenaiClient(text_response("Your profit grew."))
        client = GeminiCompletionClient(VALID_KEY, model_name="gemini-test", client=fake)
        history = [Turn("user", "Hi"), Turn("model", "Hello!")]

        reply = await client.complete("SYSTEM", "How is my profit?", history)

        self.assertEqual(reply, "Your profit grew.")
        call = fake.models.calls[0]
        self.assertEqual(call["model"], "gemini-test")
        roles = [c.role for c in call["contents"]]
        texts = [c.parts[0].text for c in call["contents"]]
        self.assertEqual(roles, ["user", "model", "user", "model", "user"])
        self.assertEqual(texts, ["SYSTEM", ACKNOWLEDGEMENT, "Hi", "Hello!", "How is my profit?"])
        self.assertEqual(call["config"].temperature, 0.7)
        self.assertEqual(call["config"].max_output_tokens, 1024)

    async def test_placeholder_key_fails_without_request(self):
        """Test configuration errors are raised before any network use."""
        for key in [None, "", "your-gemini-api-key", "short-key"]:
            fake = FakeGenaiClient()
            client = GeminiCompletionClient(key, client=fake)

            with self.assertRaises(CompletionError) as ctx:
                await client.complete("SYSTEM", "hi")

            self.assertEqual(ctx.exception.kind, ErrorKind.CONFIGURATION_ERROR)
            self.assertEqual(fake.models.calls, [])

    async def test_service_error_is_classified(self):
        """Test API errors become CompletionError."""
        fake = FakeGenaiClient(api_error(errors.ClientError, 429, "Quota exceeded", "RESOURCE_EXHAUSTED"))
        client = GeminiCompletionClient(VALID_KEY, client=fake)

        with self.assertRaises(CompletionError) as ctx:
            await client.complete("SYSTEM", "hi")

        self.assertEqual(ctx.exception.kind, ErrorKind.RATE_LIMITED)
        self.assertEqual(ctx.exception.user_message, "API rate limit reached. Please wait a minute and try again.")

    async def test_network_error_is_classified(self):
        """Test transport failures become NETWORK_ERROR."""
        fake = FakeGenaiClient(httpx.ConnectError("connection refused"))
        client = GeminiCompletionClient(VALID_KEY, client=fake)

        with self.assertRaises(CompletionError) as ctx:
            await client.complete("SYSTEM", "hi")

        self.assertEqual(ctx.exception.kind, ErrorKind.NETWORK_ERROR)

    async def test_service_error_message_carries_detail(self):
        """Test the catch-all message keeps the original text."""
        fake = FakeGenaiClient(api_error(errors.ServerError, 500, "Backend overloaded", "INTERNAL"))
        client = GeminiCompletionClient(VALID_KEY, client=fake)

        with self.assertRaises(CompletionError) as ctx:
            await client.complete("SYSTEM", "hi")

        self.assertEqual(ctx.exception.kind, ErrorKind.SERVICE_ERROR)
        self.assertEqual(ctx.exception.user_message, "AI service error: Backend overloaded")


if __name__ == "__main__":
    unittest.main()

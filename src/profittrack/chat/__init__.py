"""Chat session state, persistence and plan gating.

ChatSession lives in profittrack.chat.session and is imported from there.
"""
from .models import ChatMessage, ConversationSession, ChatState, TurnOutcome, ChatSnapshot
from .storage import KeyValueStore, InMemoryStore, JsonFileStore
from .entitlements import Entitlements, PlanEntitlements, PLAN_LIMITS

__all__ = [
    "ChatMessage",
    "ConversationSession",
    "ChatState",
    "TurnOutcome",
    "ChatSnapshot",
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "Entitlements",
    "PlanEntitlements",
    "PLAN_LIMITS",
]

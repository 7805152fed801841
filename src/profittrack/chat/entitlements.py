"""Plan limits consulted before a chat turn."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from pydantic import BaseModel, ValidationError

from .storage import KeyValueStore
from ..utils.logger import get_logger

logger = get_logger()


@dataclass(frozen=True)
class PlanLimits:
    ai_chat_enabled: bool
    ai_chat_daily_limit: int


PLAN_LIMITS = {
    "trial": PlanLimits(ai_chat_enabled=True, ai_chat_daily_limit=50),
    "basic": PlanLimits(ai_chat_enabled=False, ai_chat_daily_limit=0),
    "standard": PlanLimits(ai_chat_enabled=True, ai_chat_daily_limit=30),
    "ultra": PlanLimits(ai_chat_enabled=True, ai_chat_daily_limit=999),
    "expired": PlanLimits(ai_chat_enabled=False, ai_chat_daily_limit=0),
}


class Entitlements(ABC):
    """What the current caller is allowed to do."""

    @abstractmethod
    def feature_enabled(self) -> bool:
        """Whether the AI assistant is available at all."""

    @abstractmethod
    def remaining_quota(self) -> int:
        """Chats left for the current day."""


class DailyChatCount(BaseModel):
    day: date
    count: int = 0


class PlanEntitlements(Entitlements):
    """Plan table limits with a per-day usage counter kept in a key-value store."""

    def __init__(
        self,
        user_id: str,
        plan: str,
        store: KeyValueStore,
        today: Optional[Callable[[], date]] = None
    ):
        if plan not in PLAN_LIMITS:
            raise ValueError(f"Unknown plan: {plan}")
        self.user_id = user_id
        self.plan = plan
        self.limits = PLAN_LIMITS[plan]
        self.store = store
        self._today = today or date.today
        self.usage = DailyChatCount(day=self._today())

    @property
    def key(self) -> str:
        return f"chat_daily_count_{self.user_id}"

    async def load(self) -> None:
        """Read today's usage; a counter from an earlier day starts over."""
        raw = await self.store.get(self.key)
        today = self._today()
        self.usage = DailyChatCount(day=today)
        if raw is None:
            return
        try:
            stored = DailyChatCount.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable chat counter: {e}")
            await self.store.delete(self.key)
            return
        if stored.day == today:
            self.usage = stored

    async def record_chat(self) -> None:
        """Count one answered chat for today."""
        today = self._today()
        if self.usage.day != today:
            self.usage = DailyChatCount(day=today)
        self.usage.count += 1
        await self.store.set(self.key, self.usage.model_dump_json())

    def feature_enabled(self) -> bool:
        return self.limits.ai_chat_enabled

    def remaining_quota(self) -> int:
        if not self.limits.ai_chat_enabled:
            return 0
        if self.usage.day != self._today():
            return self.limits.ai_chat_daily_limit
        return max(0, self.limits.ai_chat_daily_limit - self.usage.count)

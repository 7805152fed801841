"""Chat turn orchestration with retry, rollback and durable session state.

A turn runs: gate on plan limits -> append the user message -> resolve the
period -> aggregate records -> build the prompt -> call the model with
retries -> append the reply. A turn that cannot be answered is rolled back
so the log never holds an unanswered question.
"""
import asyncio
from datetime import date
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from pydantic import ValidationError

from .entitlements import Entitlements
from .models import (
    ChatMessage,
    ChatSnapshot,
    ChatState,
    ConversationSession,
    TurnOutcome,
    utc_now,
)
from .storage import KeyValueStore
from ..analytics.aggregator import MetricsAggregator
from ..analytics.period import resolve_period
from ..llm.gemini_client import to_completion_error
from ..llm.models import Turn
from ..llm.prompt_builder import (
    DEFAULT_CURRENCY,
    HISTORY_SIZE,
    build_conversation_history,
    build_system_prompt,
    filter_pii,
    summarize_older_messages,
)
from ..utils.exceptions import (
    FETCH_FAILED_MESSAGE,
    CompletionError,
    RecordFetchError,
    StoreError,
)
from ..utils.logger import get_logger, set_user_context
from ..utils.retry import MAX_RETRIES, RETRY_DELAY_SECONDS, call_with_retry

logger = get_logger()

NOT_OPEN_MESSAGE = "Open the chat before sending a message."
FEATURE_DISABLED_MESSAGE = "AI Assistant is not available on your current plan. Upgrade to unlock it."
DAILY_LIMIT_MESSAGE = "Daily chat limit reached. Upgrade your plan for higher limits."


class CompletionClient(Protocol):
    async def complete(self, system_prompt: str, user_message: str, history: Sequence[Turn] = ()) -> str:
        ...


Listener = Callable[[ChatSnapshot], None]


class ChatSession:
    """State machine for one conversation; owns its persisted message log."""

    def __init__(
        self,
        user_id: str,
        aggregator: MetricsAggregator,
        completion_client: CompletionClient,
        entitlements: Entitlements,
        store: KeyValueStore,
        session_id: str = "default",
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY_SECONDS,
        history_size: int = HISTORY_SIZE,
        currency_symbol: str = DEFAULT_CURRENCY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        today: Optional[Callable[[], date]] = None
    ):
        self.user_id = user_id
        self.session_id = session_id
        self.aggregator = aggregator
        self.completion_client = completion_client
        self.entitlements = entitlements
        self.store = store
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.history_size = history_size
        self.currency_symbol = currency_symbol
        self._sleep = sleep
        self._today = today or date.today

        self.state = ChatState.IDLE
        self.messages: List[ChatMessage] = []
        self.last_error: Optional[str] = None
        self.is_open = False
        self._loaded = False
        # Bumped by close() and clear(); a turn started under an older epoch drops its result
        self._epoch = 0
        self._listeners: List[Listener] = []

    @property
    def key(self) -> str:
        return f"chat_session_{self.session_id}"

    def snapshot(self) -> ChatSnapshot:
        return ChatSnapshot(
            state=self.state,
            messages=tuple(self.messages),
            last_error=self.last_error,
            is_open=self.is_open
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    async def open(self) -> None:
        """Make the session active, loading the persisted log on first open."""
        if not self._loaded:
            self.messages = await self._load()
            self._loaded = True
        self.is_open = True
        self.last_error = None
        self._notify()

    def close(self) -> None:
        """Deactivate the session; a reply still in flight will be dropped."""
        self.is_open = False
        self._epoch += 1
        self._notify()

    async def clear(self) -> None:
        """Forget every message, in memory and in storage."""
        self.messages = []
        self.last_error = None
        self._epoch += 1
        try:
            await self.store.delete(self.key)
        except StoreError as e:
            logger.error(f"Failed to delete chat session {self.session_id}: {e}")
        self._notify()

    async def send(self, content: str) -> TurnOutcome:
        """
        Run one turn for a user message.

        Args:
            content: The user's message

        Returns:
            TurnOutcome; on failure last_error holds the user-facing message
        """
        rejection = self._check_can_send(content)
        if rejection is not None:
            if rejection:
                self.last_error = rejection
                self._notify()
            return TurnOutcome.REJECTED

        set_user_context(self.user_id)
        self.state = ChatState.SENDING
        self.last_error = None
        epoch = self._epoch
        prior = list(self.messages)

        user_message = ChatMessage.create("user", content)
        self.messages.append(user_message)
        await self._persist()
        self._notify()

        try:
            return await self._run_turn(user_message, prior, epoch)
        except Exception:
            await self._rollback(user_message)
            raise
        finally:
            self.state = ChatState.IDLE
            self._notify()

    def _check_can_send(self, content: str) -> Optional[str]:
        """None when sending is allowed, else the rejection message ("" for a silent reject)."""
        if self.state is ChatState.SENDING:
            logger.warning("Message rejected: a turn is already in flight")
            return ""
        if not content or not content.strip():
            return ""
        if not self.is_open:
            return NOT_OPEN_MESSAGE
        if not self.entitlements.feature_enabled():
            return FEATURE_DISABLED_MESSAGE
        if self.entitlements.remaining_quota() <= 0:
            logger.info("Message rejected: daily chat limit reached")
            return DAILY_LIMIT_MESSAGE
        return None

    async def _run_turn(self, user_message: ChatMessage, prior: List[ChatMessage], epoch: int) -> TurnOutcome:
        content = user_message.content
        period = resolve_period(content, self._today())
        logger.info(f"Resolved period {period.label}: {period.start} to {period.end}")

        try:
            context = await self.aggregator.aggregate(self.user_id, period.start, period.end, period.label)
        except RecordFetchError as e:
            logger.error(f"Aggregation failed, abandoning turn: {e}")
            return await self._fail(user_message, FETCH_FAILED_MESSAGE, TurnOutcome.FAILED_TERMINAL, epoch)

        system_prompt = build_system_prompt(context, self.currency_symbol)
        older_topics = summarize_older_messages(prior, self.history_size)
        if older_topics:
            system_prompt = f"{system_prompt}\n\n{older_topics}"
        system_prompt = filter_pii(system_prompt)
        history = build_conversation_history(prior, self.history_size)
        logger.debug(f"System prompt built, length: {len(system_prompt)}, history: {len(history)} turns")

        async def attempt() -> str:
            try:
                return await self.completion_client.complete(system_prompt, content, history)
            except CompletionError:
                raise
            except Exception as e:
                raise to_completion_error(e) from e

        try:
            reply = await call_with_retry(
                attempt,
                max_retries=self.max_retries,
                retry_delay=self.retry_delay,
                sleep=self._sleep,
                name="completion"
            )
        except CompletionError as e:
            outcome = TurnOutcome.FAILED_AFTER_RETRIES if e.retryable else TurnOutcome.FAILED_TERMINAL
            return await self._fail(user_message, e.user_message, outcome, epoch)

        if epoch != self._epoch:
            logger.info("Session closed or cleared during the turn; dropping the reply")
            await self._rollback(user_message)
            return TurnOutcome.DISCARDED

        self.messages.append(ChatMessage.create("assistant", reply))
        await self._persist()
        return TurnOutcome.SUCCEEDED

    async def _fail(self, user_message: ChatMessage, message: str, outcome: TurnOutcome, epoch: int) -> TurnOutcome:
        await self._rollback(user_message)
        if epoch != self._epoch:
            logger.info("Session closed or cleared during the turn; dropping the failure")
            return TurnOutcome.DISCARDED
        self.last_error = message
        return outcome

    async def _rollback(self, user_message: ChatMessage) -> None:
        """Remove the pending user message so the failed turn leaves no trace."""
        remaining = [m for m in self.messages if m.id != user_message.id]
        if len(remaining) != len(self.messages):
            self.messages = remaining
            await self._persist()

    async def _persist(self) -> None:
        if not self.messages:
            try:
                await self.store.delete(self.key)
            except StoreError as e:
                logger.error(f"Failed to delete chat session {self.session_id}: {e}")
            return

        session = ConversationSession(messages=self.messages, last_updated_at=utc_now())
        try:
            await self.store.set(self.key, session.model_dump_json())
        except StoreError as e:
            logger.error(f"Failed to save chat session {self.session_id}: {e}")

    async def _load(self) -> List[ChatMessage]:
        raw = await self.store.get(self.key)
        if raw is None:
            return []
        try:
            session = ConversationSession.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable chat session {self.session_id}: {e}")
            try:
                await self.store.delete(self.key)
            except StoreError as delete_error:
                logger.error(f"Failed to delete chat session {self.session_id}: {delete_error}")
            return []
        logger.info(f"Loaded chat session {self.session_id} with {len(session.messages)} messages")
        return list(session.messages)

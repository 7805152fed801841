"""Command-line entry point."""
import argparse
import asyncio
import sys
from dataclasses import dataclass
from typing import Optional

from .analytics.aggregator import MetricsAggregator
from .analytics.period import resolve_period
from .analytics.store import SQLiteRecordStore
from .chat.entitlements import PlanEntitlements
from .chat.models import ChatSnapshot, TurnOutcome
from .chat.session import ChatSession
from .chat.storage import JsonFileStore
from .config.manager import Config, ConfigManager
from .config.settings import get_settings
from .llm.gemini_client import GeminiCompletionClient
from .llm.prompt_builder import build_system_prompt, filter_pii, get_suggested_questions
from .utils.exceptions import ProfitTrackError
from .utils.logger import get_logger, set_user_context

logger = get_logger()

EXIT_WORDS = ("exit", "quit", "/q")


@dataclass
class App:
    config: Config
    session: ChatSession
    aggregator: MetricsAggregator
    entitlements: PlanEntitlements


def _load_config(user_id: Optional[str], plan: Optional[str]) -> Config:
    """Load configuration, applying command-line overrides."""
    config_manager = ConfigManager()
    config = config_manager.load_config()

    if not config:
        logger.info("No configuration found; AI features stay disabled until a key is set")
        config = Config(gemini_api_key="", plan=get_settings().chat_default_plan)

    if user_id:
        config.user_id = user_id
    if plan:
        config.plan = plan

    is_valid, message = config_manager.validate_config(config)
    if not is_valid:
        logger.warning(f"Configuration problem: {message}")
    return config


async def _build_app(config: Config) -> App:
    settings = get_settings()
    config_manager = ConfigManager()
    set_user_context(config.user_id)

    record_store = SQLiteRecordStore(config_manager.database_path(config))
    state_store = JsonFileStore(config_manager.sessions_dir(config))
    aggregator = MetricsAggregator(record_store)

    entitlements = PlanEntitlements(config.user_id, config.plan, state_store)
    await entitlements.load()

    session = ChatSession(
        user_id=config.user_id,
        aggregator=aggregator,
        completion_client=GeminiCompletionClient(config.gemini_api_key),
        entitlements=entitlements,
        store=state_store,
        session_id=config.user_id,
        max_retries=settings.chat_max_retries,
        retry_delay=settings.chat_retry_delay_seconds,
        history_size=settings.chat_history_size,
        currency_symbol=settings.chat_currency_symbol
    )
    await session.open()
    return App(config, session, aggregator, entitlements)


def _print_messages(snapshot: ChatSnapshot) -> None:
    if not snapshot.messages:
        print("No messages yet.")
        return
    for message in snapshot.messages:
        who = "You" if message.role == "user" else "Assistant"
        print(f"[{message.timestamp.strftime('%Y-%m-%d %H:%M')}] {who}: {message.content}\n")


async def _ask(app: App, question: str) -> bool:
    """Send one question and print the reply or error."""
    outcome = await app.session.send(question)
    snapshot = app.session.snapshot()

    if outcome is TurnOutcome.SUCCEEDED:
        await app.entitlements.record_chat()
        print(f"\nAssistant: {snapshot.messages[-1].content}\n")
        return True

    if snapshot.last_error:
        print(f"\n✗ {snapshot.last_error}\n")
    return False


async def _chat_loop(app: App) -> None:
    print(f"{get_settings().app_name}: type 'exit' to quit.")
    print(f"Chats left today: {app.entitlements.remaining_quota()}\n")

    loop = asyncio.get_running_loop()
    while True:
        try:
            question = (await loop.run_in_executor(None, input, "You: ")).strip()
        except EOFError:
            break
        if question.lower() in EXIT_WORDS:
            break
        if question:
            await _ask(app, question)

    app.session.close()


async def _suggest(app: App) -> None:
    period = resolve_period("")
    context = await app.aggregator.aggregate(app.config.user_id, period.start, period.end, period.label)
    print("Try asking:")
    for question in get_suggested_questions(context):
        print(f"  - {question}")


async def _show_context(app: App, query: str) -> None:
    period = resolve_period(query)
    context = await app.aggregator.aggregate(app.config.user_id, period.start, period.end, period.label)
    print(f"Period: {period.label} ({period.start} to {period.end}, {period.days} days)\n")
    print(filter_pii(build_system_prompt(context, get_settings().chat_currency_symbol)))


async def run_command(args: argparse.Namespace) -> int:
    config = _load_config(args.user, args.plan)
    app = await _build_app(config)

    if args.command == "chat":
        await _chat_loop(app)
    elif args.command == "ask":
        return 0 if await _ask(app, " ".join(args.question)) else 1
    elif args.command == "history":
        _print_messages(app.session.snapshot())
    elif args.command == "clear":
        await app.session.clear()
        print("✓ Chat history cleared")
    elif args.command == "context":
        await _show_context(app, " ".join(args.question))
    elif args.command == "suggest":
        await _suggest(app)
    return 0


def main():
    """Main entry point for the ProfitTrack chat CLI."""
    parser = argparse.ArgumentParser(description="ProfitTrack business assistant")
    parser.add_argument(
        "command",
        nargs="?",
        choices=["chat", "ask", "history", "clear", "context", "suggest"],
        default="chat",
        help="Command to execute (default: chat)"
    )
    parser.add_argument(
        "question",
        nargs="*",
        help="Question text (for ask and context commands)"
    )
    parser.add_argument("--user", help="User ID (overrides configuration)")
    parser.add_argument(
        "--plan",
        choices=["trial", "basic", "standard", "ultra", "expired"],
        help="Subscription plan (overrides configuration)"
    )

    args = parser.parse_args()

    if args.command == "ask" and not args.question:
        parser.error("ask requires a question")

    try:
        sys.exit(asyncio.run(run_command(args)))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except ProfitTrackError as e:
        logger.critical(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

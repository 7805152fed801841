"""Context-aware prompt construction for the business assistant."""
import re
from decimal import Decimal
from typing import List, Sequence

from .models import Turn
from ..analytics.models import UserContext
from ..chat.models import ChatMessage

DEFAULT_CURRENCY = "₹"
HISTORY_SIZE = 5
SUMMARY_THRESHOLD = 10

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_PATTERN = re.compile(r"(\+91|0)?[6-9]\d{9}")
ADDRESS_PATTERN = re.compile(
    r"\d+\s+[A-Za-z]+\s+(Street|St|Road|Rd|Avenue|Ave|Lane|Ln|Drive|Dr)\b",
    re.IGNORECASE
)

TOPIC_KEYWORDS = (
    ("profit", ("profit",)),
    ("expenses", ("expense", "cost")),
    ("vehicles", ("vehicle",)),
    ("fuel", ("fuel",)),
    ("trends", ("trend", "growth")),
    ("recommendations", ("recommend", "improve")),
)


def format_currency(amount: Decimal, symbol: str = DEFAULT_CURRENCY) -> str:
    return f"{symbol}{amount:.2f}"


def format_percent(value: Decimal) -> str:
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.1f}%"


def build_system_prompt(context: UserContext, currency_symbol: str = DEFAULT_CURRENCY) -> str:
    """
    Render the system prompt for a context.

    Args:
        context: Aggregated user data
        currency_symbol: Symbol prefixed to monetary figures

    Returns:
        Onboarding prompt when the context has no data, otherwise a prompt
        embedding the figures and grounding instructions
    """
    if not context.has_data:
        return _build_empty_prompt(context)
    return _build_data_prompt(context, currency_symbol)


def _build_empty_prompt(context: UserContext) -> str:
    period = context.period
    return f"""You are an AI assistant for ProfitTrack Pro, a transport business management application.

The user has no data recorded for the period: {period.label} ({period.start.isoformat()} to {period.end.isoformat()}).

Help them understand how to use the app:
- They can add vehicles in the Vehicles section
- They can record daily trips in the Daily Entry section
- Once they have data, you can provide personalized insights

Be helpful and encouraging. Suggest they start by adding their first vehicle and recording a trip."""


def _build_data_prompt(context: UserContext, symbol: str) -> str:
    period = context.period
    summary = context.summary
    trends = context.trends

    def money(amount: Decimal) -> str:
        return format_currency(amount, symbol)

    vehicle_summary = "\n".join(
        f"  - {v.name} ({v.type}): {v.trip_count} trips, {v.total_distance:.1f} km, "
        f"Profit: {money(v.net_profit)}, Avg per trip: {money(v.avg_profit_per_trip)}"
        for v in context.vehicles
        if v.trip_count > 0
    )

    # Share is taken against recorded expenses; amortized costs alone fall back to their own total
    breakdown = context.expense_breakdown
    denominator = summary.total_expenses if summary.total_expenses > 0 else breakdown.total
    expense_items = [
        (name, value)
        for name, value in (
            ("Fuel", breakdown.fuel),
            ("EMI", breakdown.loan_payment),
            ("Driver Salary", breakdown.labor_cost),
            ("Maintenance", breakdown.maintenance),
            ("Toll", breakdown.toll),
            ("Repairs", breakdown.repair),
            ("Food", breakdown.food),
            ("Miscellaneous", breakdown.misc),
        )
        if value > 0
    ]
    expense_summary = "\n".join(
        f"  - {name}: {money(value)} ({value / denominator * 100:.1f}%)"
        for name, value in expense_items
    )

    return f"""You are an AI business analyst for ProfitTrack Pro, a transport business management application. You provide personalized, data-driven insights based on the user's actual business statistics.

## User's Business Data ({period.label}: {period.start.isoformat()} to {period.end.isoformat()})

### Summary Statistics
- Total Earnings: {money(summary.total_earnings)}
- Total Expenses: {money(summary.total_expenses)}
- Net Profit: {money(summary.net_profit)}
- Profit Margin: {summary.profit_margin:.1f}%
- Total Kilometers: {summary.total_distance:.1f} km
- Total Trips: {summary.total_trips}
- Average Daily Profit: {money(summary.avg_daily_profit)}

### Expense Breakdown
{expense_summary or '  No expenses recorded'}

### Vehicle Performance
{vehicle_summary or '  No vehicle data available'}

### Trends (vs Previous {period.days} days)
- Profit Change: {format_percent(trends.profit_change)}
- Earnings Change: {format_percent(trends.earnings_change)}
- Expense Change: {format_percent(trends.expense_change)}
- Kilometers Change: {format_percent(trends.distance_change)}

### Key Insights
- Top Performing Vehicle: {context.top_performer or 'N/A'}
- Lowest Performing Vehicle: {context.worst_performer or 'N/A'}
- Highest Expense Category: {context.highest_expense_category or 'None'}

## Your Role
1. Answer questions about the user's business performance using the data above
2. Provide specific, actionable recommendations based on their actual numbers
3. Reference specific values from their data (e.g., "Your fuel costs are {symbol}X, which is Y% of expenses")
4. Compare vehicles and identify optimization opportunities
5. Be concise but thorough - aim for 2-4 paragraphs per response
6. Use bullet points for lists of recommendations
7. Always be encouraging and solution-oriented

## Important Guidelines
- ALWAYS reference specific numbers from the user's data
- NEVER give generic advice without connecting it to their actual statistics
- If asked about something not in the data, explain what data would be needed
- Format currency as {symbol}X,XXX.XX
- Format percentages with one decimal place"""


def build_conversation_history(
    messages: Sequence[ChatMessage],
    max_messages: int = HISTORY_SIZE
) -> List[Turn]:
    """Last max_messages prior messages as model turns; the message being sent is not included."""
    if max_messages <= 0:
        return []
    return [
        Turn(role="user" if msg.role == "user" else "model", text=msg.content)
        for msg in list(messages)[-max_messages:]
    ]


def summarize_older_messages(messages: Sequence[ChatMessage], history_size: int = HISTORY_SIZE) -> str:
    """Topic note for the messages that fall outside the history window of long conversations."""
    if len(messages) <= SUMMARY_THRESHOLD:
        return ""

    older = list(messages)[:-history_size] if history_size > 0 else list(messages)
    topics: List[str] = []
    for msg in older:
        content = msg.content.lower()
        for topic, keywords in TOPIC_KEYWORDS:
            if topic not in topics and any(k in content for k in keywords):
                topics.append(topic)

    if not topics:
        return ""

    return f"[Previous conversation covered: {', '.join(topics)}]"


def filter_pii(text: str) -> str:
    """Best-effort redaction of emails, phone numbers and street addresses."""
    filtered = EMAIL_PATTERN.sub("[EMAIL]", text)
    filtered = PHONE_PATTERN.sub("[PHONE]", filtered)
    filtered = ADDRESS_PATTERN.sub("[ADDRESS]", filtered)
    return filtered


def get_suggested_questions(context: UserContext) -> List[str]:
    """Starter questions tailored to what the context holds."""
    if not context.has_data:
        return [
            "How do I get started with ProfitTrack Pro?",
            "What features does this app offer?",
            "How do I add my first vehicle?",
            "How do I record a daily trip?",
        ]

    questions = [
        "How can I improve my profit?",
        "What are my biggest expenses?",
    ]

    if len([v for v in context.vehicles if v.trip_count > 0]) > 1:
        questions.append("Which vehicle is most profitable?")
    else:
        questions.append("How is my vehicle performing?")

    if context.trends.profit_change != 0:
        questions.append("Show me my performance trend")
    else:
        questions.append("What should I focus on this month?")

    return questions

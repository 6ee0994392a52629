"""
Conversation windowing and prompt rendering.
"""

from typing import Sequence

from vintellitour.models.conversation import Message, MessageRole
from vintellitour.models.itinerary import (
    PERIOD_LABELS,
    PERIODS,
    ItineraryDraft,
    describe_period,
    format_cost,
    period_cost,
    total_cost,
)

CONVERSATION_ROLES = (MessageRole.USER, MessageRole.ASSISTANT)


def recent_turns(history: Sequence[Message], max_count: int = 3) -> list[Message]:
    """
    The last `max_count` user/assistant messages, oldest first.
    System and tool messages are skipped and do not count.
    """
    if max_count <= 0:
        return []
    recent: list[Message] = []
    for msg in reversed(history):
        if msg.role in CONVERSATION_ROLES:
            recent.append(msg)
            if len(recent) == max_count:
                break
    recent.reverse()
    return recent


def format_for_prompt(history: Sequence[Message]) -> str:
    """Render messages as <role index="i">...</role> blocks."""
    return "\n".join(
        f'<{msg.role.value} index="{idx}">\n{msg.text}\n</{msg.role.value}>'
        for idx, msg in enumerate(history)
    )


def last_tool_message(history: Sequence[Message], name: str | None = None) -> Message | None:
    """Most recent tool message, optionally only one produced by `name`."""
    for msg in reversed(history):
        if msg.role == MessageRole.TOOL and (name is None or msg.name == name):
            return msg
    return None


def render_itinerary(itinerary: ItineraryDraft) -> str:
    """Plain-text itinerary for chat replies."""
    lines = [f"📍 {itinerary.destination} - {itinerary.duration}"]
    if itinerary.start_date:
        lines.append(f"📅 Bắt đầu: {itinerary.start_date.strftime('%d/%m/%Y')}")
    for day in itinerary.days:
        lines.append(f"\nNgày {day.day}:")
        for period in PERIODS:
            block = day.block(period)
            if not block.activities:
                continue
            lines.append(
                f"  • {PERIOD_LABELS[period].capitalize()}: {describe_period(block)} ({format_cost(period_cost(block))})"
            )
    lines.append(f"\n💰 Tổng chi phí: {format_cost(total_cost(itinerary))}")
    return "\n".join(lines)


__all__ = ["recent_turns", "format_for_prompt", "last_tool_message", "render_itinerary"]

"""
Models package: itinerary documents and conversation state
"""

from vintellitour.models.conversation import ConversationState, Intent, Message, MessageRole
from vintellitour.models.itinerary import Activity, Day, Itinerary, ItineraryDraft, ItinerarySummary, TimeBlock

__all__ = [
    "Activity",
    "TimeBlock",
    "Day",
    "ItineraryDraft",
    "Itinerary",
    "ItinerarySummary",
    "ConversationState",
    "Intent",
    "Message",
    "MessageRole",
]

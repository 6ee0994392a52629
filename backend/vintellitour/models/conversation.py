"""
Conversation model: intents, role-tagged messages and the per-session state.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from vintellitour.models.itinerary import ItineraryDraft


class Intent(str, Enum):
    GENERAL = "general"
    SEARCH = "search"
    GREETING = "greeting"
    ACCOMMODATION = "accommodation"
    DESTINATION = "destination"
    TRANSPORTATION = "transportation"
    ACTIVITIES = "activities"
    WEATHER = "weather"
    CREATE_ITINERARY = "addItinerary"
    GENERATE_ITINERARY = "generateItinerary"
    FIND_ITINERARY = "findItinerary"
    UPDATE_ITINERARY = "updateItinerary"


# Intents answered from a web search
SEARCH_INTENTS = frozenset(
    {
        Intent.SEARCH,
        Intent.ACCOMMODATION,
        Intent.DESTINATION,
        Intent.TRANSPORTATION,
        Intent.ACTIVITIES,
        Intent.WEATHER,
    }
)


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class ContentPart(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    type: str = "text"
    text: str | None = None


class Message(BaseModel):
    """A single turn. The role is fixed when the message is built."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str | list[ContentPart] = ""
    name: str | None = Field(default=None, description="Tool name for tool messages")
    data: Any = Field(default=None, description="Structured tool payload")

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def tool(cls, name: str, content: str, data: Any = None) -> "Message":
        return cls(role=MessageRole.TOOL, name=name, content=content, data=data)

    @property
    def text(self) -> str:
        """Text content; non-text parts are skipped."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(part.text for part in self.content if part.type == "text" and part.text is not None)


class PendingUpdate(BaseModel):
    """An itinerary edit proposal shown to the user and waiting for a yes/no."""

    model_config = ConfigDict(frozen=True)

    itinerary_id: str
    proposed: ItineraryDraft
    changes: list[str] = Field(default_factory=list)


class ConversationState(BaseModel):
    """
    Per-session state. Immutable: every turn produces a new value.
    """

    model_config = ConfigDict(frozen=True)

    messages: tuple[Message, ...] = ()
    intent: Intent = Intent.GENERAL
    last_intent: Intent = Intent.GENERAL
    user_id: str
    active_itinerary_id: str | None = None
    pending_update: PendingUpdate | None = None

    @classmethod
    def start(cls, user_id: str) -> "ConversationState":
        return cls(user_id=user_id)


__all__ = [
    "Intent",
    "SEARCH_INTENTS",
    "MessageRole",
    "ContentPart",
    "Message",
    "PendingUpdate",
    "ConversationState",
]

# agent_state.py - State carried through one orchestrator pass (one turn)
import operator
from typing import Annotated, Any, TypedDict

from vintellitour.models.conversation import Intent, Message, PendingUpdate


class TurnState(TypedDict, total=False):
    """
    Working state for a single turn of the dialogue graph.

    It is seeded from the session's ConversationState and folded back into a
    new ConversationState once the graph finishes; nothing here outlives the
    turn except what `process_turn` copies back.

    Core fields:
    - messages: full history; nodes return only the messages they add
    - incoming: the user message being handled
    - intent / last_intent: this turn's classification and the previous one
    - active_itinerary_id: itinerary selected for update, if any
    - pending_update: proposal awaiting a yes/no

    Scratch:
    - reply: assistant text produced by the routed node
    - route: next node picked by the classifier
    - agent_scratch: per-turn working memory (notes, clarification flags)
    """

    # ========== Conversation ==========
    messages: Annotated[list[Message], operator.add]
    incoming: Message
    user_id: str

    # ========== Flow control ==========
    intent: Intent
    last_intent: Intent
    active_itinerary_id: str | None
    pending_update: PendingUpdate | None
    route: str

    # ========== Per-turn output ==========
    reply: str
    agent_scratch: dict[str, Any]

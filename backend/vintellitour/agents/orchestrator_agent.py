# orchestrator_agent.py - Dialogue orchestrator for the itinerary assistant
import asyncio

from langgraph.graph import END, START, StateGraph

from vintellitour.agents.agent_state import TurnState
from vintellitour.agents.llm import IntentChoice, LanguageModel
from vintellitour.agents.messages import format_for_prompt, last_tool_message, recent_turns, render_itinerary
from vintellitour.agents.prompts import (
    COMPOSE_SYSTEM,
    EXTRACT_USER,
    GENERATE_USER,
    INTENT_SYSTEM,
    INTENT_USER,
    SEARCH_USER,
    UPDATE_USER,
)
from vintellitour.agents.references import describe_choices, is_affirmative, is_negative, resolve_selection
from vintellitour.agents.search import TavilySearchProvider
from vintellitour.agents.tools import COMMIT_PENDING_MESSAGE, Capability, ToolBox
from vintellitour.core.config import HISTORY_WINDOW
from vintellitour.core.errors import (
    AmbiguousReferenceError,
    ForbiddenError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from vintellitour.core.logger import get_logger
from vintellitour.db.itinerary_repository import ItineraryRepository
from vintellitour.models.conversation import SEARCH_INTENTS, ConversationState, Intent, Message, PendingUpdate
from vintellitour.models.itinerary import Itinerary, ItineraryDraft

log = get_logger(__name__)

CLARIFY_MESSAGE = (
    "Xin lỗi, mình chưa hiểu rõ yêu cầu của bạn. Bạn muốn tìm thông tin du lịch, "
    "lập lịch trình mới, hay xem và cập nhật các lịch trình đã lưu?"
)
APOLOGY_MESSAGE = "Xin lỗi, hệ thống đang gặp sự cố nên mình chưa trả lời được. Bạn thử lại sau ít phút nhé."
CONFIRM_QUESTION = "Bạn có muốn lưu các thay đổi này không? (có/không)"
COMMIT_FAILED_MESSAGE = "Mình chưa xác nhận được thay đổi đã được lưu do lỗi hệ thống lưu trữ."
NO_SELECTION_MESSAGE = (
    "Bạn muốn cập nhật lịch trình nào? Hãy nhờ mình tìm các lịch trình đã lưu "
    '(ví dụ: "tìm lịch trình của tôi") rồi chọn một lịch trình nhé.'
)

# --- Intent -> graph node ---
INTENT_ROUTES: dict[Intent, str] = {
    Intent.GREETING: "respond",
    Intent.GENERAL: "respond",
    **{intent: "search" for intent in SEARCH_INTENTS},
    Intent.GENERATE_ITINERARY: "compose_itinerary",
    Intent.CREATE_ITINERARY: "compose_itinerary",
    Intent.FIND_ITINERARY: "find_itineraries",
    Intent.UPDATE_ITINERARY: "update_itinerary",
}


def route_from_start(state: TurnState) -> str:
    """A pending update proposal is settled before anything else."""
    return "confirm" if state.get("pending_update") else "classify"


def route_from_confirm(state: TurnState) -> str:
    return state.get("route") or "finalize"


def route_from_classify(state: TurnState) -> str:
    return INTENT_ROUTES.get(state.get("intent"), "respond")


class DialogueOrchestrator:
    def __init__(
        self,
        llm: LanguageModel | None = None,
        repository: ItineraryRepository | None = None,
        search_provider: TavilySearchProvider | None = None,
        toolbox: ToolBox | None = None,
        history_window: int = HISTORY_WINDOW,
    ) -> None:
        self.llm = llm or LanguageModel()
        self.repository = repository or ItineraryRepository()
        self.toolbox = toolbox or ToolBox(self.repository, search_provider or TavilySearchProvider())
        self.history_window = history_window
        self.app = self._build_graph()

    # ---- Helpers ----
    def _window(self, state: TurnState) -> str:
        return format_for_prompt(recent_turns(state.get("messages") or [], self.history_window))

    async def _load(self, itinerary_id: str, user_id: str) -> Itinerary:
        try:
            return await asyncio.wait_for(
                self.repository.get_owned(itinerary_id, user_id), timeout=self.toolbox.timeout
            )
        except asyncio.TimeoutError:
            raise UpstreamError(f"Loading itinerary {itinerary_id} timed out")

    def _resolve_selection(self, state: TurnState) -> dict:
        """
        Map the user's words onto the list shown by the last FindItineraries
        call. Only valid right after that list (or after a failed selection).
        """
        latest = last_tool_message(state.get("messages") or [])
        continuing = state.get("last_intent") in (Intent.FIND_ITINERARY, Intent.UPDATE_ITINERARY)
        if continuing and latest is not None and latest.name == Capability.FIND_ITINERARIES.value and latest.data:
            return resolve_selection(state["incoming"].text, latest.data)
        raise AmbiguousReferenceError("No itinerary selected", user_message=NO_SELECTION_MESSAGE)

    # ---- Nodes ----
    async def _confirm(self, state: TurnState) -> TurnState:
        pending: PendingUpdate = state["pending_update"]
        text = state["incoming"].text

        if is_affirmative(text):
            return await self._commit(state, pending)

        if is_negative(text):
            log.info("User declined update of itinerary %s", pending.itinerary_id)
            return {
                "intent": Intent.UPDATE_ITINERARY,
                "pending_update": None,
                "route": "finalize",
                "reply": "Đã huỷ các thay đổi. Lịch trình của bạn được giữ nguyên.",
            }

        log.info("Pending update of %s discarded; handling message as a new request", pending.itinerary_id)
        scratch = dict(state.get("agent_scratch") or {})
        scratch["notes"] = ["(Các thay đổi chưa được xác nhận trước đó đã được bỏ qua.)"]
        return {"pending_update": None, "route": "classify", "agent_scratch": scratch}

    async def _commit(self, state: TurnState, pending: PendingUpdate) -> TurnState:
        base: TurnState = {"intent": Intent.UPDATE_ITINERARY, "route": "finalize"}
        arguments = {
            "user_id": state["user_id"],
            "itinerary_id": pending.itinerary_id,
            "proposed": pending.proposed.model_dump(),
        }
        try:
            result = await self.toolbox.invoke(Capability.COMMIT_UPDATE, arguments)
        except UpstreamError as e:
            # keep the proposal; saving the same version again is harmless
            log.warning("Commit of itinerary %s not confirmed: %s", pending.itinerary_id, e)
            return {
                **base,
                "reply": (
                    f"{e.user_message if e.user_message == COMMIT_PENDING_MESSAGE else COMMIT_FAILED_MESSAGE} "
                    'Bạn hãy trả lời "đồng ý" để lưu lại. Lưu lại cùng bản đề xuất vẫn an toàn '
                    "kể cả khi thay đổi đã được lưu."
                ),
            }
        except ValidationError as e:
            return {**base, "pending_update": None, "reply": e.user_message}
        except (NotFoundError, ForbiddenError) as e:
            return {**base, "pending_update": None, "active_itinerary_id": None, "reply": e.user_message}

        updated: Itinerary = result.data
        return {
            **base,
            "pending_update": None,
            "active_itinerary_id": updated.id,
            "messages": [
                Message.tool(Capability.COMMIT_UPDATE.value, result.message, data={"itinerary_id": updated.id})
            ],
            "reply": f"✅ {result.message}\n\n{render_itinerary(updated)}",
        }

    async def _classify(self, state: TurnState) -> TurnState:
        incoming = state["incoming"]
        prior = [m for m in state.get("messages") or [] if m is not incoming]
        last_intent = state.get("last_intent") or Intent.GENERAL
        prompt = INTENT_USER.format(
            last_intent=last_intent.value,
            has_active="có" if state.get("active_itinerary_id") else "không",
            history=format_for_prompt(recent_turns(prior, self.history_window)),
            message=incoming.text,
        )

        scratch = dict(state.get("agent_scratch") or {})
        try:
            choice = await self.llm.structured(IntentChoice, prompt, INTENT_SYSTEM)
            intent = choice.intent
            log.info("Intent %s (last %s): %s", intent.value, last_intent.value, choice.reason)
        except UpstreamError as e:
            log.warning("Intent classification failed, falling back to general: %s", e)
            intent = Intent.GENERAL
            scratch["clarify"] = True
        return {"intent": intent, "agent_scratch": scratch}

    async def _respond(self, state: TurnState) -> TurnState:
        if (state.get("agent_scratch") or {}).get("clarify"):
            return {"reply": CLARIFY_MESSAGE}
        try:
            text = await self.llm.generate(self._window(state))
        except UpstreamError:
            text = APOLOGY_MESSAGE
        return {"reply": text or CLARIFY_MESSAGE}

    async def _search(self, state: TurnState) -> TurnState:
        query = state["incoming"].text.strip()
        try:
            result = await self.toolbox.invoke(Capability.SEARCH, {"query": query})
        except ValidationError:
            return {"reply": CLARIFY_MESSAGE}
        except UpstreamError:
            return {"reply": APOLOGY_MESSAGE}

        if not result.success:
            return {"reply": f"Xin lỗi, {result.message[:1].lower()}{result.message[1:]} Bạn thử lại sau ít phút nhé."}

        results = result.data or []
        listed = "\n".join(f"- {r.title}: {r.snippet} ({r.url})" for r in results)
        tool_message = Message.tool(
            Capability.SEARCH.value, listed or result.message, data=[r.model_dump() for r in results]
        )
        prompt = SEARCH_USER.format(
            history=self._window(state), query=query, results=listed or "(không có kết quả)"
        )
        try:
            text = await self.llm.generate(prompt)
        except UpstreamError:
            links = "\n".join(f"- {r.title}: {r.url}" for r in results) or "(không có kết quả)"
            text = f"Mình chưa tổng hợp được câu trả lời, dưới đây là các kết quả tìm kiếm:\n{links}"
        return {"messages": [tool_message], "reply": text}

    async def _compose_itinerary(self, state: TurnState) -> TurnState:
        template = GENERATE_USER if state.get("intent") == Intent.GENERATE_ITINERARY else EXTRACT_USER
        try:
            draft = await self.llm.structured(
                ItineraryDraft, template.format(history=self._window(state)), COMPOSE_SYSTEM
            )
        except UpstreamError:
            return {"reply": "Xin lỗi, mình chưa lập được lịch trình lúc này. Bạn thử lại sau nhé."}

        arguments = {"user_id": state["user_id"], **draft.model_dump()}
        try:
            result = await self.toolbox.invoke(Capability.CREATE_ITINERARY, arguments)
        except ValidationError as e:
            return {
                "reply": f"{e.user_message} Bạn mô tả rõ hơn điểm đến, số ngày và các hoạt động mong muốn giúp mình nhé."
            }
        except UpstreamError:
            return {
                "reply": f"Có lỗi xảy ra khi lưu lịch trình cho {draft.destination}. Lịch trình chưa được lưu, bạn thử lại nhé."
            }

        saved_id = result.data.id if result.success else None
        tool_message = Message.tool(
            Capability.CREATE_ITINERARY.value, result.message, data={"success": result.success, "itinerary_id": saved_id}
        )
        if not result.success:
            return {"messages": [tool_message], "reply": result.message}
        return {"messages": [tool_message], "reply": f"✅ {result.message}\n\n{render_itinerary(result.data)}"}

    async def _find_itineraries(self, state: TurnState) -> TurnState:
        try:
            result = await self.toolbox.invoke(Capability.FIND_ITINERARIES, {"user_id": state.get("user_id")})
        except ValidationError as e:
            return {"reply": e.user_message}
        except UpstreamError:
            return {"reply": "Không thể tải danh sách lịch trình lúc này, vui lòng thử lại."}

        if not result.success:
            return {"active_itinerary_id": None, "reply": result.message}

        data = result.data
        return {
            "messages": [Message.tool(Capability.FIND_ITINERARIES.value, data["readable_list"], data=data["itineraries"])],
            # a fresh list means a fresh selection
            "active_itinerary_id": None,
            "reply": f"{result.message}\n{data['readable_list']}",
        }

    async def _update_itinerary(self, state: TurnState) -> TurnState:
        user_id = state["user_id"]
        active = state.get("active_itinerary_id")
        selected_now = False

        try:
            if not active:
                active = self._resolve_selection(state)["id"]
                selected_now = True
            current = await self._load(active, user_id)
        except AmbiguousReferenceError as e:
            update: TurnState = {"reply": e.user_message}
            shown = last_tool_message(state.get("messages") or [], Capability.FIND_ITINERARIES.value)
            if e.candidates and shown is not None:
                # keep the list addressable for the next turn
                update["messages"] = [Message.tool(shown.name, describe_choices(shown.data), data=shown.data)]
            return update
        except (NotFoundError, ForbiddenError) as e:
            return {"active_itinerary_id": None, "reply": e.user_message}
        except UpstreamError:
            return {"active_itinerary_id": active, "reply": APOLOGY_MESSAGE}

        log.info("Updating itinerary %s (%s) for user %s", current.id, current.destination, user_id)
        try:
            proposed = await self.llm.structured(
                ItineraryDraft,
                UPDATE_USER.format(current=current.draft().model_dump_json(indent=2), history=self._window(state)),
                COMPOSE_SYSTEM,
            )
            result = await self.toolbox.invoke(
                Capability.PROPOSE_UPDATE,
                {"user_id": user_id, "itinerary_id": active, "proposed": proposed.model_dump()},
            )
        except ValidationError:
            return {
                "active_itinerary_id": active,
                "reply": "Bản chỉnh sửa chưa hợp lệ (số ngày hoặc chi phí không đúng). Bạn mô tả lại thay đổi giúp mình nhé.",
            }
        except (NotFoundError, ForbiddenError) as e:
            return {"active_itinerary_id": None, "reply": e.user_message}
        except UpstreamError:
            return {"active_itinerary_id": active, "reply": APOLOGY_MESSAGE}

        if not result.success:
            if selected_now:
                reply = f"Bạn đã chọn lịch trình {current.destination} - {current.duration}. Bạn muốn thay đổi gì?"
            else:
                reply = f"{result.message} Bạn muốn thay đổi gì?"
            return {"active_itinerary_id": active, "reply": reply}

        changes = [str(entry) for entry in result.data["changes"]]
        pending = PendingUpdate(itinerary_id=active, proposed=proposed, changes=changes)
        return {
            "active_itinerary_id": active,
            "pending_update": pending,
            "messages": [
                Message.tool(
                    Capability.PROPOSE_UPDATE.value,
                    "\n".join(changes),
                    data={"itinerary_id": active, "changes": changes},
                )
            ],
            "reply": f"{result.message}\n" + "\n".join(changes) + f"\n\n{CONFIRM_QUESTION}",
        }

    async def _finalize(self, state: TurnState) -> TurnState:
        reply = state.get("reply") or CLARIFY_MESSAGE
        notes = (state.get("agent_scratch") or {}).get("notes") or []
        text = "\n".join([*notes, reply])
        return {"messages": [Message.assistant(text)]}

    # ---- Graph ----
    def _build_graph(self):
        g = StateGraph(TurnState)
        g.add_node("confirm", self._confirm)
        g.add_node("classify", self._classify)
        g.add_node("respond", self._respond)
        g.add_node("search", self._search)
        g.add_node("compose_itinerary", self._compose_itinerary)
        g.add_node("find_itineraries", self._find_itineraries)
        g.add_node("update_itinerary", self._update_itinerary)
        g.add_node("finalize", self._finalize)

        g.add_conditional_edges(START, route_from_start, {"confirm": "confirm", "classify": "classify"})
        g.add_conditional_edges("confirm", route_from_confirm, {"classify": "classify", "finalize": "finalize"})
        g.add_conditional_edges(
            "classify",
            route_from_classify,
            {
                "respond": "respond",
                "search": "search",
                "compose_itinerary": "compose_itinerary",
                "find_itineraries": "find_itineraries",
                "update_itinerary": "update_itinerary",
            },
        )
        for node in ("respond", "search", "compose_itinerary", "find_itineraries", "update_itinerary"):
            g.add_edge(node, "finalize")
        g.add_edge("finalize", END)
        return g.compile()

    # ---- Public API ----
    async def process_turn(
        self, state: ConversationState, incoming: Message | str
    ) -> tuple[ConversationState, Message]:
        """
        Run one turn. The given state is never modified; the returned state
        reflects the turn only once every collaborator call has returned.
        """
        if isinstance(incoming, str):
            incoming = Message.user(incoming)

        turn: TurnState = {
            "messages": [*state.messages, incoming],
            "incoming": incoming,
            "user_id": state.user_id,
            "intent": state.intent,
            "last_intent": state.last_intent,
            "active_itinerary_id": state.active_itinerary_id,
            "pending_update": state.pending_update,
            "route": "",
            "reply": "",
            "agent_scratch": {},
        }
        result = await self.app.ainvoke(turn)

        intent = result.get("intent") or Intent.GENERAL
        outgoing: Message = result["messages"][-1]
        new_state = state.model_copy(
            update={
                "messages": tuple(result["messages"]),
                "intent": intent,
                "last_intent": intent,
                "active_itinerary_id": result.get("active_itinerary_id"),
                "pending_update": result.get("pending_update"),
            }
        )
        return new_state, outgoing


__all__ = [
    "INTENT_ROUTES",
    "DialogueOrchestrator",
    "route_from_start",
    "route_from_confirm",
    "route_from_classify",
]

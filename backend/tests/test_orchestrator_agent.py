import asyncio

import pytest

from vintellitour.agents.llm import IntentChoice
from vintellitour.agents.tools import COMMIT_PENDING_MESSAGE
from vintellitour.agents.orchestrator_agent import (
    CLARIFY_MESSAGE,
    COMMIT_FAILED_MESSAGE,
    INTENT_ROUTES,
    NO_SELECTION_MESSAGE,
    route_from_classify,
    route_from_start,
)
from vintellitour.models.conversation import ConversationState, Intent, MessageRole
from vintellitour.models.itinerary import ItineraryDraft

from conftest import intents, make_chat_model

USER = "user_alice"


@pytest.fixture
def hoian_draft() -> ItineraryDraft:
    return ItineraryDraft(
        destination="Hội An",
        duration="2 ngày",
        days=[
            {"day": 1, "afternoon": {"activities": [{"description": "Phố cổ", "cost": 120000}]}},
            {"day": 2, "morning": {"activities": [{"description": "Rừng dừa Bảy Mẫu", "cost": 150000}]}},
        ],
    )


@pytest.fixture
def hoian_extended(hoian_draft) -> ItineraryDraft:
    days = [d.model_dump() for d in hoian_draft.days]
    days.append({"day": 3, "morning": {"activities": [{"description": "Đi chợ", "cost": 50000}]}})
    return ItineraryDraft(destination=hoian_draft.destination, duration=hoian_draft.duration, days=days)


def turn(orchestrator, state, text):
    return asyncio.run(orchestrator.process_turn(state, text))


def test_routing_tables():
    assert route_from_start({"pending_update": None}) == "classify"
    assert route_from_classify({"intent": Intent.WEATHER}) == "search"
    assert route_from_classify({"intent": Intent.CREATE_ITINERARY}) == "compose_itinerary"
    assert route_from_classify({}) == "respond"
    assert set(INTENT_ROUTES) == set(Intent)


def test_greeting_returns_new_state(build_orchestrator):
    chat_model = make_chat_model({IntentChoice: intents(Intent.GREETING)}, text="Chào bạn! Mình giúp gì được?")
    orchestrator = build_orchestrator(chat_model)
    state = ConversationState.start(USER)

    new_state, reply = turn(orchestrator, state, "xin chào")

    assert reply.role == MessageRole.ASSISTANT
    assert reply.text == "Chào bạn! Mình giúp gì được?"
    assert new_state.intent == Intent.GREETING
    assert new_state.last_intent == Intent.GREETING
    assert [m.role for m in new_state.messages] == [MessageRole.USER, MessageRole.ASSISTANT]
    # input state untouched
    assert state.messages == ()
    assert state.intent == Intent.GENERAL


def test_classification_failure_asks_to_clarify(build_orchestrator):
    chat_model = make_chat_model({IntentChoice: [RuntimeError("model down")]})
    orchestrator = build_orchestrator(chat_model)

    new_state, reply = turn(orchestrator, ConversationState.start(USER), "???")

    assert reply.text == CLARIFY_MESSAGE
    assert new_state.intent == Intent.GENERAL
    chat_model.ainvoke.assert_not_called()


def test_search_intent_uses_search_results(build_orchestrator, search_provider):
    chat_model = make_chat_model({IntentChoice: intents(Intent.WEATHER)}, text="Đà Lạt đang se lạnh, 18-24°C.")
    orchestrator = build_orchestrator(chat_model)

    new_state, reply = turn(orchestrator, ConversationState.start(USER), "Thời tiết Đà Lạt tuần này?")

    assert reply.text == "Đà Lạt đang se lạnh, 18-24°C."
    assert search_provider.queries == ["Thời tiết Đà Lạt tuần này?"]
    tool_messages = [m for m in new_state.messages if m.role == MessageRole.TOOL]
    assert tool_messages[0].name == "search"
    prompt = chat_model.ainvoke.call_args.args[0][1][1]
    assert "https://example.com/dalat" in prompt


def test_search_outage_is_an_apology(build_orchestrator, search_provider):
    from vintellitour.core.errors import UpstreamError

    search_provider.error = UpstreamError("Search failed")
    orchestrator = build_orchestrator(make_chat_model({IntentChoice: intents(Intent.SEARCH)}))

    new_state, reply = turn(orchestrator, ConversationState.start(USER), "homestay Sa Pa")

    assert reply.text.startswith("Xin lỗi")
    assert new_state.intent == Intent.SEARCH


def test_generate_itinerary_is_saved(build_orchestrator, repository, dalat_draft):
    chat_model = make_chat_model(
        {IntentChoice: intents(Intent.GENERATE_ITINERARY), ItineraryDraft: [dalat_draft]}
    )
    orchestrator = build_orchestrator(chat_model)

    new_state, reply = turn(orchestrator, ConversationState.start(USER), "Lập lịch trình Đà Lạt 2 ngày")

    assert "Lịch trình cho Đà Lạt đã được thêm thành công." in reply.text
    assert "💰 Tổng chi phí: 250.000 ₫" in reply.text
    saved = list(repository.docs.values())
    assert len(saved) == 1
    assert saved[0].owner_user_id == USER
    assert new_state.active_itinerary_id is None


def test_invalid_generated_itinerary_is_not_saved(build_orchestrator, repository, dalat_draft):
    broken = dalat_draft.model_copy(update={"days": []})
    chat_model = make_chat_model({IntentChoice: intents(Intent.CREATE_ITINERARY), ItineraryDraft: [broken]})

    _, reply = turn(build_orchestrator(chat_model), ConversationState.start(USER), "lưu lịch trình này")

    assert repository.docs == {}
    assert reply.text.startswith("Dữ liệu lịch trình không hợp lệ.")


def test_find_with_no_itineraries_keeps_no_active(build_orchestrator):
    orchestrator = build_orchestrator(make_chat_model({IntentChoice: intents(Intent.FIND_ITINERARY)}))

    new_state, reply = turn(orchestrator, ConversationState.start(USER), "tìm lịch trình của tôi")

    assert reply.text == "Không tìm thấy lịch trình nào cho người dùng này."
    assert new_state.active_itinerary_id is None
    assert not any(m.role == MessageRole.TOOL for m in new_state.messages)


def test_update_without_selection_context_asks(build_orchestrator, repository, dalat_draft):
    asyncio.run(repository.create(USER, dalat_draft))
    chat_model = make_chat_model({IntentChoice: intents(Intent.UPDATE_ITINERARY)})
    orchestrator = build_orchestrator(chat_model)

    new_state, reply = turn(orchestrator, ConversationState.start(USER), "sửa lịch trình thêm 1 ngày")

    assert reply.text == NO_SELECTION_MESSAGE
    assert new_state.active_itinerary_id is None
    assert new_state.pending_update is None
    schemas = [c.args[0] for c in chat_model.with_structured_output.call_args_list]
    assert ItineraryDraft not in schemas


def _select_and_propose(orchestrator, repository, dalat_draft, hoian_draft):
    """find -> pick the second one -> describe a change. Returns state awaiting confirmation."""
    asyncio.run(repository.create(USER, dalat_draft))
    hoian = asyncio.run(repository.create(USER, hoian_draft))
    state = ConversationState.start(USER)

    state, reply = turn(orchestrator, state, "cho mình xem các lịch trình đã lưu")
    assert "Tôi đã tìm thấy 2 lịch trình." in reply.text
    assert "- Hội An - 2 ngày" in reply.text

    state, reply = turn(orchestrator, state, "cái thứ hai")
    assert state.active_itinerary_id == hoian.id
    assert reply.text == "Bạn đã chọn lịch trình Hội An - 2 ngày. Bạn muốn thay đổi gì?"

    state, reply = turn(orchestrator, state, "thêm ngày 3 đi chợ buổi sáng, khoảng 50k")
    assert state.pending_update is not None
    assert state.pending_update.changes == [
        "🆕 Thêm ngày 3 với các hoạt động sau:",
        "🕒 Ngày 3 - buổi sáng: Đi chợ (Chi phí: 50000đ)",
    ]
    assert reply.text.endswith("(có/không)")
    assert len(repository.docs[hoian.id].days) == 2
    return state, hoian


def _update_flow_model(hoian_draft, hoian_extended, *extra_intents, later_drafts=()):
    return make_chat_model(
        {
            IntentChoice: intents(
                Intent.FIND_ITINERARY, Intent.UPDATE_ITINERARY, Intent.UPDATE_ITINERARY, *extra_intents
            ),
            ItineraryDraft: [hoian_draft, hoian_extended, *later_drafts],
        }
    )


def test_confirmed_update_is_committed(build_orchestrator, repository, dalat_draft, hoian_draft, hoian_extended):
    orchestrator = build_orchestrator(_update_flow_model(hoian_draft, hoian_extended))
    state, hoian = _select_and_propose(orchestrator, repository, dalat_draft, hoian_draft)

    state, reply = turn(orchestrator, state, "Có, lưu đi")

    assert reply.text.startswith("✅ Đã cập nhật lịch trình Hội An.")
    assert state.pending_update is None
    assert state.active_itinerary_id == hoian.id
    assert state.intent == Intent.UPDATE_ITINERARY
    assert repository.docs[hoian.id].draft() == hoian_extended


def test_declined_update_leaves_itinerary(build_orchestrator, repository, dalat_draft, hoian_draft, hoian_extended):
    orchestrator = build_orchestrator(_update_flow_model(hoian_draft, hoian_extended))
    state, hoian = _select_and_propose(orchestrator, repository, dalat_draft, hoian_draft)

    state, reply = turn(orchestrator, state, "không, thôi")

    assert reply.text == "Đã huỷ các thay đổi. Lịch trình của bạn được giữ nguyên."
    assert state.pending_update is None
    assert repository.replace_calls == 0
    assert repository.docs[hoian.id].draft() == hoian_draft


def test_failed_commit_keeps_proposal(build_orchestrator, repository, dalat_draft, hoian_draft, hoian_extended):
    orchestrator = build_orchestrator(_update_flow_model(hoian_draft, hoian_extended))
    state, hoian = _select_and_propose(orchestrator, repository, dalat_draft, hoian_draft)

    repository.fail_writes = True
    state, reply = turn(orchestrator, state, "đồng ý")

    assert COMMIT_FAILED_MESSAGE in reply.text
    assert "giữ nguyên" not in reply.text
    assert state.pending_update is not None
    assert repository.docs[hoian.id].draft() == hoian_draft

    repository.fail_writes = False
    state, reply = turn(orchestrator, state, "ok")

    assert state.pending_update is None
    assert repository.docs[hoian.id].draft() == hoian_extended


def test_unrelated_message_discards_proposal(build_orchestrator, repository, dalat_draft, hoian_draft, hoian_extended):
    orchestrator = build_orchestrator(_update_flow_model(hoian_draft, hoian_extended, Intent.GREETING))
    state, hoian = _select_and_propose(orchestrator, repository, dalat_draft, hoian_draft)

    state, reply = turn(orchestrator, state, "à mà chào bạn")

    assert reply.text.startswith("(Các thay đổi chưa được xác nhận trước đó đã được bỏ qua.)")
    assert state.pending_update is None
    assert state.intent == Intent.GREETING
    assert repository.replace_calls == 0


def test_ambiguous_selection_keeps_list(build_orchestrator, repository, dalat_draft):
    first = asyncio.run(repository.create(USER, dalat_draft))
    second = asyncio.run(repository.create(USER, dalat_draft.model_copy(update={"duration": "4 ngày"})))
    chat_model = make_chat_model(
        {
            IntentChoice: intents(Intent.FIND_ITINERARY, Intent.UPDATE_ITINERARY, Intent.UPDATE_ITINERARY),
            ItineraryDraft: [dalat_draft.model_copy(update={"duration": "4 ngày"})],
        }
    )
    orchestrator = build_orchestrator(chat_model)
    state = ConversationState.start(USER)

    state, _ = turn(orchestrator, state, "tìm lịch trình")
    state, reply = turn(orchestrator, state, "lịch trình Đà Lạt")

    assert state.active_itinerary_id is None
    assert "1. Đà Lạt - 2 ngày 1 đêm" in reply.text
    assert "2. Đà Lạt - 4 ngày" in reply.text

    state, reply = turn(orchestrator, state, "số 2")

    assert state.active_itinerary_id == second.id
    assert state.active_itinerary_id != first.id


def test_other_users_itinerary_is_forbidden(build_orchestrator, repository, dalat_draft):
    saved = asyncio.run(repository.create("user_bob", dalat_draft))
    orchestrator = build_orchestrator(make_chat_model({IntentChoice: intents(Intent.UPDATE_ITINERARY)}))
    state = ConversationState.start(USER).model_copy(update={"active_itinerary_id": saved.id})

    new_state, reply = turn(orchestrator, state, "đổi sang 3 ngày")

    assert reply.text == "Bạn không có quyền thao tác trên lịch trình này."
    assert new_state.active_itinerary_id is None


def test_question_starting_with_yes_word_is_not_a_confirmation(
    build_orchestrator, repository, dalat_draft, hoian_draft, hoian_extended
):
    orchestrator = build_orchestrator(_update_flow_model(hoian_draft, hoian_extended, Intent.TRANSPORTATION))
    state, hoian = _select_and_propose(orchestrator, repository, dalat_draft, hoian_draft)

    state, reply = turn(orchestrator, state, "Có cách nào đi từ Đà Nẵng vào Hội An rẻ hơn?")

    assert repository.replace_calls == 0
    assert repository.docs[hoian.id].draft() == hoian_draft
    assert state.pending_update is None
    assert state.intent == Intent.TRANSPORTATION
    assert reply.text.startswith("(Các thay đổi chưa được xác nhận trước đó đã được bỏ qua.)")


def test_follow_up_question_is_classified_not_declined(
    build_orchestrator, repository, dalat_draft, hoian_draft, hoian_extended
):
    days = [d.model_dump() for d in hoian_extended.days]
    days[2]["evening"] = {"activities": [{"description": "Cà phê", "cost": 40000}]}
    with_coffee = ItineraryDraft(destination="Hội An", duration="2 ngày", days=days)
    orchestrator = build_orchestrator(
        _update_flow_model(hoian_draft, hoian_extended, Intent.UPDATE_ITINERARY, later_drafts=[with_coffee])
    )
    state, hoian = _select_and_propose(orchestrator, repository, dalat_draft, hoian_draft)

    state, reply = turn(orchestrator, state, "Thêm cà phê buổi tối ngày 3 được không?")

    assert "Đã huỷ các thay đổi" not in reply.text
    assert state.intent == Intent.UPDATE_ITINERARY
    assert state.pending_update is not None
    assert state.pending_update.proposed == with_coffee
    assert repository.replace_calls == 0


def test_slow_commit_does_not_claim_nothing_changed(
    build_orchestrator, repository, dalat_draft, hoian_draft, hoian_extended
):
    orchestrator = build_orchestrator(_update_flow_model(hoian_draft, hoian_extended), timeout=0.3)
    state, hoian = _select_and_propose(orchestrator, repository, dalat_draft, hoian_draft)
    repository.replace_delay = 0.6

    async def confirm_and_wait():
        result = await orchestrator.process_turn(state, "đồng ý")
        # the write was already sent and keeps going
        await asyncio.sleep(0.6)
        return result

    state, reply = asyncio.run(confirm_and_wait())

    assert COMMIT_PENDING_MESSAGE in reply.text
    assert "giữ nguyên" not in reply.text
    assert state.pending_update is not None
    assert repository.docs[hoian.id].draft() == hoian_extended

    repository.replace_delay = 0
    state, reply = turn(orchestrator, state, "ok")

    assert state.pending_update is None
    assert repository.docs[hoian.id].draft() == hoian_extended


def test_empty_find_clears_previous_selection(build_orchestrator, repository, dalat_draft):
    saved = asyncio.run(repository.create("user_bob", dalat_draft))
    orchestrator = build_orchestrator(make_chat_model({IntentChoice: intents(Intent.FIND_ITINERARY)}))
    state = ConversationState.start(USER).model_copy(update={"active_itinerary_id": saved.id})

    new_state, reply = turn(orchestrator, state, "tìm lịch trình của tôi")

    assert reply.text == "Không tìm thấy lịch trình nào cho người dùng này."
    assert new_state.active_itinerary_id is None

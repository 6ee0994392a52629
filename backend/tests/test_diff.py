from vintellitour.agents.diff import ChangeKind, diff_itineraries, render_changes
from vintellitour.models.itinerary import ItineraryDraft


def _with_days(base: ItineraryDraft, days: list[dict], duration: str | None = None) -> ItineraryDraft:
    return ItineraryDraft(destination=base.destination, duration=duration or base.duration, days=days)


def test_identical_itineraries_have_no_changes(dalat_draft):
    assert diff_itineraries(dalat_draft, dalat_draft) == []
    assert diff_itineraries(dalat_draft, dalat_draft.model_copy(deep=True)) == []


def test_added_day_with_single_activity(dalat_draft):
    days = [d.model_dump() for d in dalat_draft.days]
    days.append({"day": 3, "morning": {"activities": [{"description": "Đi chợ", "cost": 50000}]}})
    new = _with_days(dalat_draft, days)

    changes = diff_itineraries(dalat_draft, new)

    assert [c.kind for c in changes] == [ChangeKind.DAY_ADDED, ChangeKind.ACTIVITY_ADDED]
    assert changes[0].day == 3
    assert changes[0].text == "🆕 Thêm ngày 3 với các hoạt động sau:"
    assert changes[1].text == "🕒 Ngày 3 - buổi sáng: Đi chợ (Chi phí: 50000đ)"
    assert changes[1].period == "morning"


def test_removed_day(dalat_draft):
    new = _with_days(dalat_draft, [dalat_draft.days[0].model_dump()])
    assert render_changes(diff_itineraries(dalat_draft, new)) == ["🗑️ Xoá ngày 2 khỏi lịch trình."]


def test_change_order_is_deterministic(dalat_draft):
    days = [d.model_dump() for d in dalat_draft.days]
    days[0]["morning"]["activities"][0] = {"description": "Đồi chè Cầu Đất", "cost": 70000}
    days[0]["morning"]["activities"].append({"description": "Cà phê", "cost": 40000})
    days[0]["evening"]["activities"] = []
    new = _with_days(dalat_draft, days, duration="2 ngày 2 đêm")

    expected = [
        '⏱️ Thời gian: "2 ngày 1 đêm" → "2 ngày 2 đêm"',
        "🔄 Ngày 1 - buổi sáng:",
        '✏️ Thay đổi: "Đồi chè Cầu Đất" → "Đồi chè Cầu Đất" (Chi phí: 50000đ → 70000đ)',
        '➕ Thêm: "Cà phê" (Chi phí: 40000đ)',
        "🔄 Ngày 1 - buổi tối:",
        '➖ Xoá: "Ăn lẩu gà lá é"',
    ]
    assert render_changes(diff_itineraries(dalat_draft, new)) == expected
    assert render_changes(diff_itineraries(dalat_draft, new)) == expected


def test_days_pair_by_position_not_number(dalat_draft):
    days = [d.model_dump() for d in dalat_draft.days]
    days[1]["day"] = 7
    assert diff_itineraries(dalat_draft, _with_days(dalat_draft, days)) == []


def test_missing_sides_never_raise(dalat_draft):
    changes = diff_itineraries(None, dalat_draft)
    assert changes[0].kind == ChangeKind.DURATION_CHANGE
    assert [c.kind for c in changes].count(ChangeKind.DAY_ADDED) == 2
    assert diff_itineraries(None, None) == []

"""
Itinerary diff engine.

Produces the ordered, human-readable change list shown to the user before an
itinerary update is committed. Days are paired by list position, not by
their `day` number. Never raises: missing days/blocks/activities are empty.
"""

from dataclasses import dataclass
from enum import Enum

from vintellitour.models.itinerary import (
    PERIOD_LABELS,
    PERIODS,
    Activity,
    Day,
    ItineraryDraft,
    plain_number,
)


class ChangeKind(str, Enum):
    DURATION_CHANGE = "duration-change"
    DAY_ADDED = "day-added"
    DAY_REMOVED = "day-removed"
    BLOCK_CHANGED = "block-changed"
    ACTIVITY_ADDED = "activity-added"
    ACTIVITY_REMOVED = "activity-removed"
    ACTIVITY_CHANGED = "activity-changed"


@dataclass(frozen=True)
class ChangeEntry:
    kind: ChangeKind
    text: str
    day: int | None = None
    period: str | None = None

    def __str__(self) -> str:
        return self.text


def _cost(activity: Activity) -> str:
    return f"{plain_number(activity.cost)}đ"


def _activities(day: Day | None, period: str) -> list[Activity]:
    if day is None:
        return []
    block = getattr(day, period, None)
    if block is None:
        return []
    return list(block.activities or [])


def _same(old: list[Activity], new: list[Activity]) -> bool:
    return [(a.description, a.cost) for a in old] == [(a.description, a.cost) for a in new]


def _expand_new_day(day: Day, day_num: int) -> list[ChangeEntry]:
    entries: list[ChangeEntry] = []
    for period in PERIODS:
        activities = _activities(day, period)
        if not activities:
            continue
        listed = "; ".join(f"{a.description} (Chi phí: {_cost(a)})" for a in activities)
        entries.append(
            ChangeEntry(
                ChangeKind.ACTIVITY_ADDED,
                f"🕒 Ngày {day_num} - {PERIOD_LABELS[period]}: {listed}",
                day=day_num,
                period=period,
            )
        )
    return entries


def _diff_block(old: list[Activity], new: list[Activity], day_num: int, period: str) -> list[ChangeEntry]:
    entries = [
        ChangeEntry(ChangeKind.BLOCK_CHANGED, f"🔄 Ngày {day_num} - {PERIOD_LABELS[period]}:", day_num, period)
    ]
    for j in range(max(len(old), len(new))):
        old_act = old[j] if j < len(old) else None
        new_act = new[j] if j < len(new) else None
        if old_act is None and new_act is not None:
            entries.append(
                ChangeEntry(
                    ChangeKind.ACTIVITY_ADDED,
                    f'➕ Thêm: "{new_act.description}" (Chi phí: {_cost(new_act)})',
                    day_num,
                    period,
                )
            )
        elif old_act is not None and new_act is None:
            entries.append(
                ChangeEntry(ChangeKind.ACTIVITY_REMOVED, f'➖ Xoá: "{old_act.description}"', day_num, period)
            )
        elif old_act.description != new_act.description or old_act.cost != new_act.cost:
            entries.append(
                ChangeEntry(
                    ChangeKind.ACTIVITY_CHANGED,
                    f'✏️ Thay đổi: "{old_act.description}" → "{new_act.description}" '
                    f"(Chi phí: {_cost(old_act)} → {_cost(new_act)})",
                    day_num,
                    period,
                )
            )
    return entries


def diff_itineraries(old: ItineraryDraft | None, new: ItineraryDraft | None) -> list[ChangeEntry]:
    changes: list[ChangeEntry] = []

    old_duration = old.duration if old is not None else None
    new_duration = new.duration if new is not None else None
    if old_duration != new_duration:
        changes.append(
            ChangeEntry(ChangeKind.DURATION_CHANGE, f'⏱️ Thời gian: "{old_duration or ""}" → "{new_duration or ""}"')
        )

    old_days = list((old.days if old is not None else None) or [])
    new_days = list((new.days if new is not None else None) or [])

    for i in range(max(len(old_days), len(new_days))):
        old_day = old_days[i] if i < len(old_days) else None
        new_day = new_days[i] if i < len(new_days) else None
        day_num = i + 1

        if old_day is None and new_day is not None:
            changes.append(ChangeEntry(ChangeKind.DAY_ADDED, f"🆕 Thêm ngày {day_num} với các hoạt động sau:", day_num))
            changes.extend(_expand_new_day(new_day, day_num))
            continue

        if old_day is not None and new_day is None:
            changes.append(ChangeEntry(ChangeKind.DAY_REMOVED, f"🗑️ Xoá ngày {day_num} khỏi lịch trình.", day_num))
            continue

        for period in PERIODS:
            old_acts = _activities(old_day, period)
            new_acts = _activities(new_day, period)
            if not _same(old_acts, new_acts):
                changes.extend(_diff_block(old_acts, new_acts, day_num, period))

    return changes


def render_changes(changes: list[ChangeEntry]) -> list[str]:
    return [entry.text for entry in changes]


__all__ = ["ChangeKind", "ChangeEntry", "diff_itineraries", "render_changes"]

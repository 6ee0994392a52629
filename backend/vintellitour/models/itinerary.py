"""
Itinerary model: days -> time-blocks -> activities, plus cost helpers.

The helpers are pure and total. Missing blocks, days or costs count as
empty / zero instead of raising.
"""

from datetime import date, datetime
from typing import Iterable

from pydantic import BaseModel, Field, field_validator

PERIODS: tuple[str, str, str] = ("morning", "afternoon", "evening")

PERIOD_LABELS = {
    "morning": "buổi sáng",
    "afternoon": "buổi chiều",
    "evening": "buổi tối",
}

DESCRIPTION_SEPARATOR = ", "


class Activity(BaseModel):
    description: str = Field(default="", description="What happens, e.g. 'Đi chợ Đà Lạt'")
    cost: float = Field(default=0, ge=0, description="Estimated cost in VND")

    @field_validator("cost", mode="before")
    @classmethod
    def _missing_cost_is_zero(cls, value):
        return 0 if value is None else value


class TimeBlock(BaseModel):
    activities: list[Activity] = Field(default_factory=list)

    @field_validator("activities", mode="before")
    @classmethod
    def _missing_activities_is_empty(cls, value):
        return [] if value is None else value


class Day(BaseModel):
    day: int = Field(..., ge=1, description="1-based day number")
    morning: TimeBlock = Field(default_factory=TimeBlock)
    afternoon: TimeBlock = Field(default_factory=TimeBlock)
    evening: TimeBlock = Field(default_factory=TimeBlock)

    @field_validator("morning", "afternoon", "evening", mode="before")
    @classmethod
    def _missing_block_is_empty(cls, value):
        return {} if value is None else value

    def block(self, period: str) -> TimeBlock:
        return getattr(self, period)


class ItineraryDraft(BaseModel):
    """
    Itinerary content without identity. This is the shape the language model
    produces when composing or editing a plan.
    """

    destination: str = Field(..., description="Destination, e.g. 'Đà Lạt'")
    duration: str = Field(..., description="Free-form duration, e.g. '3 ngày 2 đêm'")
    start_date: date | None = Field(default=None, description="YYYY-MM-DD if known")
    days: list[Day] = Field(default_factory=list)

    @field_validator("days", mode="before")
    @classmethod
    def _missing_days_is_empty(cls, value):
        return [] if value is None else value


class Itinerary(ItineraryDraft):
    """
    Persisted itinerary, owned by exactly one user.
    """

    id: str | None = Field(default=None, description="Document id")
    owner_user_id: str = Field(..., description="Owner user id")
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "665f1c2e9b1e8a3f4c2d1a00",
                "owner_user_id": "user_123",
                "destination": "Đà Lạt",
                "duration": "2 ngày 1 đêm",
                "start_date": "2025-06-01",
                "days": [
                    {
                        "day": 1,
                        "morning": {"activities": [{"description": "Đi chợ", "cost": 50000}]},
                        "afternoon": {"activities": []},
                        "evening": {"activities": [{"description": "Ăn lẩu", "cost": 200000}]},
                    }
                ],
            }
        }

    def draft(self) -> ItineraryDraft:
        return ItineraryDraft(
            destination=self.destination,
            duration=self.duration,
            start_date=self.start_date,
            days=self.days,
        )

    def summary(self, index: int) -> "ItinerarySummary":
        return ItinerarySummary(
            id=self.id or "",
            index=index,
            destination=self.destination,
            duration=self.duration,
            start_date=self.start_date,
            day_count=len(self.days),
            total_cost=total_cost(self),
        )


class ItinerarySummary(BaseModel):
    id: str
    index: int = Field(..., description="1-based position in the owner's list")
    destination: str
    duration: str
    start_date: date | None = None
    day_count: int = 0
    total_cost: float = 0


# ====== Pure helpers ======


def period_cost(block: TimeBlock | None) -> float:
    if block is None:
        return 0
    return sum((activity.cost or 0) for activity in block.activities or [])


def day_cost(day: Day | None) -> float:
    if day is None:
        return 0
    return sum(period_cost(day.block(period)) for period in PERIODS)


def total_cost(itinerary: ItineraryDraft | None) -> float:
    if itinerary is None:
        return 0
    return sum(day_cost(day) for day in itinerary.days or [])


def describe_period(block: TimeBlock | None) -> str:
    if block is None or not block.activities:
        return ""
    return DESCRIPTION_SEPARATOR.join(activity.description for activity in block.activities)


def plain_number(amount: float | None) -> str:
    """50000.0 -> '50000', 12.5 -> '12.5'."""
    value = float(amount or 0)
    return str(int(value)) if value.is_integer() else str(value)


def format_cost(amount: float | None) -> str:
    """Format a VND amount the way the schedules page does (50.000 ₫)."""
    return f"{float(amount or 0):,.0f}".replace(",", ".") + " ₫"


def check_day_sequence(days: Iterable[Day]) -> None:
    """
    Day numbers must be unique and contiguous from 1, in list order.
    Raises ValueError otherwise.
    """
    numbers = [d.day for d in days]
    expected = list(range(1, len(numbers) + 1))
    if numbers != expected:
        raise ValueError(
            f"Day numbers must be 1..{len(numbers)} in order, got {numbers}"
        )


__all__ = [
    "PERIODS",
    "PERIOD_LABELS",
    "Activity",
    "TimeBlock",
    "Day",
    "ItineraryDraft",
    "Itinerary",
    "ItinerarySummary",
    "period_cost",
    "day_cost",
    "total_cost",
    "describe_period",
    "plain_number",
    "format_cost",
    "check_day_sequence",
]

"""
Capability tools the orchestrator can invoke.

Each capability declares a pydantic input model; `ToolBox.invoke` validates
the raw arguments before anything runs and bounds the call with a timeout.
"""

import asyncio
from datetime import date
from enum import Enum
from typing import Any

import pydantic
from pydantic import BaseModel, Field, model_validator

from vintellitour.agents.diff import ChangeEntry, diff_itineraries
from vintellitour.agents.search import SearchResult, TavilySearchProvider
from vintellitour.core.config import TOOL_TIMEOUT_SECONDS
from vintellitour.core.errors import UpstreamError, ValidationError
from vintellitour.core.logger import get_logger
from vintellitour.db.itinerary_repository import ItineraryRepository
from vintellitour.models.conversation import SEARCH_INTENTS, Intent
from vintellitour.models.itinerary import Day, ItineraryDraft, check_day_sequence

log = get_logger(__name__)

COMMIT_PENDING_MESSAGE = (
    "Hệ thống lưu trữ phản hồi chậm nên mình chưa biết thay đổi đã được lưu hay chưa; "
    "việc lưu có thể vẫn đang hoàn tất."
)


class Capability(str, Enum):
    SEARCH = "search"
    CREATE_ITINERARY = "add_itinerary"
    FIND_ITINERARIES = "find_itineraries"
    PROPOSE_UPDATE = "propose_itinerary_update"
    COMMIT_UPDATE = "update_itinerary"


class ToolResult(BaseModel):
    success: bool
    message: str
    data: Any = None


# ====== Input schemas ======


class SearchInput(BaseModel):
    query: str = Field(..., min_length=1)


class CreateItineraryInput(BaseModel):
    user_id: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    duration: str = Field(..., min_length=1)
    start_date: date | None = None
    days: list[Day] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _days_are_contiguous(self):
        check_day_sequence(self.days)
        return self

    def draft(self) -> ItineraryDraft:
        return ItineraryDraft(
            destination=self.destination,
            duration=self.duration,
            start_date=self.start_date,
            days=self.days,
        )


class FindItinerariesInput(BaseModel):
    user_id: str = Field(..., min_length=1)


class UpdateItineraryInput(BaseModel):
    user_id: str = Field(..., min_length=1)
    itinerary_id: str = Field(..., min_length=1)
    proposed: ItineraryDraft

    @model_validator(mode="after")
    def _days_are_contiguous(self):
        check_day_sequence(self.proposed.days)
        return self


class ItineraryChoice(BaseModel):
    """Machine-addressable entry of a FindItineraries result."""

    id: str
    index: int
    destination: str
    duration: str


# ====== Tools ======


class SearchTool:
    capability = Capability.SEARCH
    input_model = SearchInput

    def __init__(self, provider: TavilySearchProvider) -> None:
        self.provider = provider

    async def run(self, params: SearchInput) -> ToolResult:
        try:
            results: list[SearchResult] = await self.provider.search(params.query)
        except UpstreamError as e:
            log.warning("Search failed: %s", e)
            return ToolResult(success=False, message="Không thể tìm kiếm lúc này.")
        return ToolResult(
            success=True,
            message=f"Tìm thấy {len(results)} kết quả cho \"{params.query}\".",
            data=results,
        )


class CreateItineraryTool:
    capability = Capability.CREATE_ITINERARY
    input_model = CreateItineraryInput

    def __init__(self, repository: ItineraryRepository) -> None:
        self.repository = repository

    async def run(self, params: CreateItineraryInput) -> ToolResult:
        log.info("Creating itinerary for user %s: %s", params.user_id, params.destination)
        try:
            itinerary = await self.repository.create(params.user_id, params.draft())
        except UpstreamError as e:
            log.warning("Itinerary save failed: %s", e)
            return ToolResult(
                success=False,
                message=f"Có lỗi xảy ra khi lưu lịch trình cho {params.destination}.",
            )
        return ToolResult(
            success=True,
            message=f"Lịch trình cho {params.destination} đã được thêm thành công.",
            data=itinerary,
        )


class FindItinerariesTool:
    capability = Capability.FIND_ITINERARIES
    input_model = FindItinerariesInput

    def __init__(self, repository: ItineraryRepository) -> None:
        self.repository = repository

    async def run(self, params: FindItinerariesInput) -> ToolResult:
        try:
            itineraries = await self.repository.find_by_owner(params.user_id)
        except UpstreamError as e:
            log.warning("Itinerary lookup failed: %s", e)
            return ToolResult(success=False, message="Không thể tải danh sách lịch trình lúc này, vui lòng thử lại.")

        if not itineraries:
            return ToolResult(success=False, message="Không tìm thấy lịch trình nào cho người dùng này.")

        choices = [
            ItineraryChoice(id=item.id or "", index=idx, destination=item.destination, duration=item.duration)
            for idx, item in enumerate(itineraries, start=1)
        ]
        readable = "\n".join(f"- {c.destination} - {c.duration}" for c in choices)
        return ToolResult(
            success=True,
            message=f"Tôi đã tìm thấy {len(choices)} lịch trình. Bạn muốn chọn lịch trình nào để cập nhật?",
            data={"readable_list": readable, "itineraries": [c.model_dump() for c in choices]},
        )


class ProposeUpdateTool:
    """Load the stored version and diff it against the proposal. Writes nothing."""

    capability = Capability.PROPOSE_UPDATE
    input_model = UpdateItineraryInput

    def __init__(self, repository: ItineraryRepository) -> None:
        self.repository = repository

    async def run(self, params: UpdateItineraryInput) -> ToolResult:
        current = await self.repository.get_owned(params.itinerary_id, params.user_id)
        changes: list[ChangeEntry] = diff_itineraries(current, params.proposed)
        if not changes:
            return ToolResult(success=False, message="Không có thay đổi nào so với lịch trình hiện tại.", data={"changes": []})
        return ToolResult(
            success=True,
            message=f"Các thay đổi dự kiến cho lịch trình {current.destination}:",
            data={"current": current, "proposed": params.proposed, "changes": changes},
        )


class CommitUpdateTool:
    """Persist a confirmed proposal as one document write."""

    capability = Capability.COMMIT_UPDATE
    input_model = UpdateItineraryInput

    def __init__(self, repository: ItineraryRepository) -> None:
        self.repository = repository

    async def run(self, params: UpdateItineraryInput) -> ToolResult:
        await self.repository.get_owned(params.itinerary_id, params.user_id)
        updated = await self.repository.replace(params.itinerary_id, params.user_id, params.proposed)
        return ToolResult(
            success=True,
            message=f"Đã cập nhật lịch trình {updated.destination}.",
            data=updated,
        )


# Which capability serves which intent
INTENT_CAPABILITIES: dict[Intent, Capability] = {
    **{intent: Capability.SEARCH for intent in SEARCH_INTENTS},
    Intent.GENERATE_ITINERARY: Capability.CREATE_ITINERARY,
    Intent.CREATE_ITINERARY: Capability.CREATE_ITINERARY,
    Intent.FIND_ITINERARY: Capability.FIND_ITINERARIES,
    Intent.UPDATE_ITINERARY: Capability.PROPOSE_UPDATE,
}


class ToolBox:
    def __init__(
        self,
        repository: ItineraryRepository,
        search_provider: TavilySearchProvider,
        timeout: float = TOOL_TIMEOUT_SECONDS,
    ) -> None:
        self.timeout = timeout
        self.tools = {
            tool.capability: tool
            for tool in (
                SearchTool(search_provider),
                CreateItineraryTool(repository),
                FindItinerariesTool(repository),
                ProposeUpdateTool(repository),
                CommitUpdateTool(repository),
            )
        }

    def for_intent(self, intent: Intent) -> Capability | None:
        return INTENT_CAPABILITIES.get(intent)

    async def invoke(self, capability: Capability, arguments: dict[str, Any]) -> ToolResult:
        tool = self.tools[capability]
        try:
            params = tool.input_model.model_validate(arguments)
        except pydantic.ValidationError as e:
            log.info("Rejected %s input: %s", capability.value, e.errors())
            raise ValidationError(f"Invalid {capability.value} input: {e}")

        call = tool.run(params)
        if capability == Capability.COMMIT_UPDATE:
            # a write already sent must finish even if we stop waiting for it
            call = asyncio.shield(asyncio.ensure_future(call))
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            log.warning("%s timed out after %ss", capability.value, self.timeout)
            if capability == Capability.COMMIT_UPDATE:
                raise UpstreamError(
                    f"{capability.value} still running after {self.timeout}s",
                    user_message=COMMIT_PENDING_MESSAGE,
                )
            raise UpstreamError(f"{capability.value} timed out after {self.timeout}s")


__all__ = [
    "Capability",
    "ToolResult",
    "SearchInput",
    "CreateItineraryInput",
    "FindItinerariesInput",
    "UpdateItineraryInput",
    "ItineraryChoice",
    "INTENT_CAPABILITIES",
    "ToolBox",
]

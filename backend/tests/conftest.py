import asyncio
import sys
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableLambda

# Allow importing from backend/vintellitour
sys.path.insert(0, str(Path(__file__).parent.parent))

from vintellitour.agents.llm import IntentChoice, LanguageModel
from vintellitour.agents.orchestrator_agent import DialogueOrchestrator
from vintellitour.agents.search import SearchResult
from vintellitour.agents.tools import ToolBox
from vintellitour.core.errors import ForbiddenError, NotFoundError, UpstreamError
from vintellitour.models.conversation import Intent
from vintellitour.models.itinerary import Itinerary, ItineraryDraft, ItinerarySummary


class InMemoryItineraryRepository:
    """Same async surface as ItineraryRepository, backed by a dict."""

    def __init__(self) -> None:
        self.docs: dict[str, Itinerary] = {}
        self.fail_writes = False
        self.replace_calls = 0
        self.replace_delay = 0.0

    async def create(self, owner_user_id: str, draft: ItineraryDraft) -> Itinerary:
        if self.fail_writes:
            raise UpstreamError("Database error: write refused")
        now = datetime(2025, 1, 1)
        itinerary = Itinerary(
            id=str(ObjectId()),
            owner_user_id=owner_user_id,
            created_at=now,
            updated_at=now,
            **draft.model_dump(),
        )
        self.docs[itinerary.id] = itinerary
        return itinerary

    async def find_by_owner(self, owner_user_id: str) -> list[Itinerary]:
        return [doc for doc in self.docs.values() if doc.owner_user_id == owner_user_id]

    async def list_summaries(self, owner_user_id: str) -> list[ItinerarySummary]:
        items = await self.find_by_owner(owner_user_id)
        return [item.summary(index) for index, item in enumerate(items, start=1)]

    async def get(self, itinerary_id: str) -> Itinerary:
        if itinerary_id not in self.docs:
            raise NotFoundError(f"Itinerary {itinerary_id} not found")
        return self.docs[itinerary_id]

    async def get_owned(self, itinerary_id: str, owner_user_id: str) -> Itinerary:
        itinerary = await self.get(itinerary_id)
        if itinerary.owner_user_id != owner_user_id:
            raise ForbiddenError(f"Itinerary {itinerary_id} is not owned by {owner_user_id}")
        return itinerary

    async def replace(self, itinerary_id: str, owner_user_id: str, draft: ItineraryDraft) -> Itinerary:
        self.replace_calls += 1
        if self.replace_delay:
            await asyncio.sleep(self.replace_delay)
        if self.fail_writes:
            raise UpstreamError("Database error: write refused")
        current = await self.get_owned(itinerary_id, owner_user_id)
        updated = current.model_copy(update={**dict(draft), "updated_at": datetime(2025, 1, 2)})
        self.docs[itinerary_id] = updated
        return updated

    async def delete(self, itinerary_id: str, owner_user_id: str) -> None:
        await self.get_owned(itinerary_id, owner_user_id)
        del self.docs[itinerary_id]


class FakeSearchProvider:
    def __init__(self, results: list[SearchResult] | None = None, error: Exception | None = None) -> None:
        self.results = results or []
        self.error = error
        self.queries: list[str] = []

    async def search(self, query: str) -> list[SearchResult]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.results


def make_chat_model(structured: dict[type, list[Any]] | None = None, text: str = "Xin chào!") -> MagicMock:
    """
    Mock chat model. `structured` maps a schema to the queue of values its
    structured runnable returns; an Exception in the queue is raised instead.
    """
    queues = {schema: deque(values) for schema, values in (structured or {}).items()}
    mock = MagicMock()

    def _runnable_for(schema):
        def _respond(_messages):
            value = queues[schema].popleft()
            if isinstance(value, Exception):
                raise value
            return value

        return RunnableLambda(_respond)

    mock.with_structured_output.side_effect = _runnable_for
    mock.ainvoke = AsyncMock(return_value=AIMessage(content=text))
    return mock


def intents(*values: Intent) -> list[IntentChoice]:
    return [IntentChoice(intent=value, reason="test") for value in values]


@pytest.fixture
def repository() -> InMemoryItineraryRepository:
    return InMemoryItineraryRepository()


@pytest.fixture
def search_provider() -> FakeSearchProvider:
    return FakeSearchProvider(
        results=[
            SearchResult(title="Thời tiết Đà Lạt", snippet="Trời se lạnh, 18-24°C", url="https://example.com/dalat"),
        ]
    )


@pytest.fixture
def build_orchestrator(repository, search_provider) -> Callable[..., DialogueOrchestrator]:
    def _build(chat_model: MagicMock, timeout: float = 5) -> DialogueOrchestrator:
        return DialogueOrchestrator(
            llm=LanguageModel(llm=chat_model, timeout=timeout),
            repository=repository,
            toolbox=ToolBox(repository, search_provider, timeout=timeout),
        )

    return _build


@pytest.fixture
def dalat_draft() -> ItineraryDraft:
    return ItineraryDraft(
        destination="Đà Lạt",
        duration="2 ngày 1 đêm",
        days=[
            {
                "day": 1,
                "morning": {"activities": [{"description": "Đồi chè Cầu Đất", "cost": 50000}]},
                "evening": {"activities": [{"description": "Ăn lẩu gà lá é", "cost": 200000}]},
            },
            {
                "day": 2,
                "morning": {"activities": [{"description": "Hồ Tuyền Lâm", "cost": 0}]},
            },
        ],
    )

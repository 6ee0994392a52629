"""
Itinerary Router
Read and delete saved itineraries outside of a conversation.
"""

from fastapi import APIRouter, Depends, Query

from vintellitour.agents.messages import render_itinerary
from vintellitour.core.errors import AssistantError
from vintellitour.db.itinerary_repository import ItineraryRepository
from vintellitour.models.common import APIResponse
from vintellitour.router.deps import get_repository, http_error

router = APIRouter(prefix="/itineraries", tags=["Itineraries"])


@router.get("", response_model=APIResponse)
async def list_itineraries(
    user_id: str = Query(..., min_length=1),
    repository: ItineraryRepository = Depends(get_repository),
):
    """
    Summaries of a user's itineraries, oldest first, numbered from 1.
    """
    try:
        summaries = await repository.list_summaries(user_id)
    except AssistantError as e:
        raise http_error(e)
    return APIResponse.ok([s.model_dump(mode="json") for s in summaries])


@router.get("/{itinerary_id}", response_model=APIResponse)
async def get_itinerary(
    itinerary_id: str,
    user_id: str | None = Query(default=None, description="Only return it when owned by this user"),
    repository: ItineraryRepository = Depends(get_repository),
):
    try:
        if user_id:
            itinerary = await repository.get_owned(itinerary_id, user_id)
        else:
            itinerary = await repository.get(itinerary_id)
    except AssistantError as e:
        raise http_error(e)
    data = itinerary.model_dump(mode="json")
    data["text"] = render_itinerary(itinerary)
    return APIResponse.ok(data)


@router.delete("/{itinerary_id}", response_model=APIResponse)
async def delete_itinerary(
    itinerary_id: str,
    user_id: str = Query(..., min_length=1),
    repository: ItineraryRepository = Depends(get_repository),
):
    try:
        await repository.delete(itinerary_id, user_id)
    except AssistantError as e:
        raise http_error(e)
    return APIResponse.ok({"id": itinerary_id}, msg="Itinerary deleted")

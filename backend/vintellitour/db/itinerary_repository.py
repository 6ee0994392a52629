"""
Itinerary document store backed by the `itineraries` MongoDB collection.

Document shape (same as the schedules collection the web client reads):
    {_id, user, destination, duration, startDate, itinerary: [Day...], createdAt, updatedAt}
"""

from datetime import date, datetime, timezone
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from vintellitour.core.errors import ForbiddenError, NotFoundError, UpstreamError
from vintellitour.core.logger import get_logger
from vintellitour.db.database import get_itineraries_collection
from vintellitour.models.itinerary import Itinerary, ItineraryDraft, ItinerarySummary

log = get_logger(__name__)


def _object_id(itinerary_id: str) -> ObjectId:
    try:
        return ObjectId(itinerary_id)
    except (InvalidId, TypeError):
        raise NotFoundError(f"Invalid itinerary id: {itinerary_id!r}")


def to_document(owner_user_id: str, draft: ItineraryDraft) -> dict[str, Any]:
    start = draft.start_date
    return {
        "user": owner_user_id,
        "destination": draft.destination,
        "duration": draft.duration,
        # BSON has no date type
        "startDate": datetime(start.year, start.month, start.day) if isinstance(start, date) else None,
        "itinerary": [day.model_dump() for day in draft.days],
    }


def from_document(doc: dict[str, Any]) -> Itinerary:
    start = doc.get("startDate")
    if isinstance(start, datetime):
        start = start.date()
    return Itinerary(
        id=str(doc["_id"]),
        owner_user_id=str(doc.get("user") or ""),
        destination=doc.get("destination") or "",
        duration=doc.get("duration") or "",
        start_date=start,
        days=doc.get("itinerary") or [],
        created_at=doc.get("createdAt"),
        updated_at=doc.get("updatedAt"),
    )


class ItineraryRepository:
    """
    Create/find/replace/delete itinerary documents.

    Storage failures surface as UpstreamError; a missing document as
    NotFoundError; an owner mismatch as ForbiddenError.
    """

    def __init__(self, collection=None) -> None:
        self._collection = collection

    @property
    def collection(self):
        if self._collection is None:
            self._collection = get_itineraries_collection()
        return self._collection

    async def create(self, owner_user_id: str, draft: ItineraryDraft) -> Itinerary:
        now = datetime.now(timezone.utc)
        doc = to_document(owner_user_id, draft)
        doc.update({"createdAt": now, "updatedAt": now})
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as e:
            log.exception("Failed to insert itinerary for user %s", owner_user_id)
            raise UpstreamError(f"Database error: {e}")
        doc["_id"] = result.inserted_id
        log.info("Saved itinerary %s (%s) for user %s", result.inserted_id, draft.destination, owner_user_id)
        return from_document(doc)

    async def find_by_owner(self, owner_user_id: str) -> list[Itinerary]:
        try:
            docs = await self.collection.find({"user": owner_user_id}).sort("_id", 1).to_list(length=None)
        except PyMongoError as e:
            log.exception("Failed to list itineraries for user %s", owner_user_id)
            raise UpstreamError(f"Database error: {e}")
        return [from_document(doc) for doc in docs]

    async def list_summaries(self, owner_user_id: str) -> list[ItinerarySummary]:
        itineraries = await self.find_by_owner(owner_user_id)
        return [item.summary(index) for index, item in enumerate(itineraries, start=1)]

    async def get(self, itinerary_id: str) -> Itinerary:
        oid = _object_id(itinerary_id)
        try:
            doc = await self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            raise UpstreamError(f"Database error: {e}")
        if not doc:
            raise NotFoundError(f"Itinerary {itinerary_id} not found")
        return from_document(doc)

    async def get_owned(self, itinerary_id: str, owner_user_id: str) -> Itinerary:
        itinerary = await self.get(itinerary_id)
        if itinerary.owner_user_id != owner_user_id:
            raise ForbiddenError(f"Itinerary {itinerary_id} is not owned by {owner_user_id}")
        return itinerary

    async def replace(self, itinerary_id: str, owner_user_id: str, draft: ItineraryDraft) -> Itinerary:
        """Swap in a new version as a single-document write, keeping createdAt."""
        oid = _object_id(itinerary_id)
        doc = to_document(owner_user_id, draft)
        doc["updatedAt"] = datetime.now(timezone.utc)
        try:
            updated = await self.collection.find_one_and_update(
                {"_id": oid, "user": owner_user_id},
                {"$set": doc},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            log.exception("Failed to update itinerary %s", itinerary_id)
            raise UpstreamError(f"Database error: {e}")
        if updated is None:
            raise NotFoundError(f"Itinerary {itinerary_id} not found for user {owner_user_id}")
        log.info("Updated itinerary %s (%s)", itinerary_id, draft.destination)
        return from_document(updated)

    async def delete(self, itinerary_id: str, owner_user_id: str) -> None:
        itinerary = await self.get_owned(itinerary_id, owner_user_id)
        try:
            result = await self.collection.delete_one({"_id": _object_id(itinerary_id), "user": owner_user_id})
        except PyMongoError as e:
            raise UpstreamError(f"Database error: {e}")
        if result.deleted_count == 0:
            raise NotFoundError(f"Itinerary {itinerary_id} not found")
        log.info("Deleted itinerary %s (%s)", itinerary_id, itinerary.destination)


__all__ = ["ItineraryRepository", "to_document", "from_document"]

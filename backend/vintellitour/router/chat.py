"""
Chat Router
One assistant turn per request; sessions live in process memory.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from vintellitour.agents.sessions import SessionManager
from vintellitour.core.errors import AssistantError
from vintellitour.core.logger import get_logger
from vintellitour.models.common import APIResponse
from vintellitour.router.deps import get_session_manager, http_error

log = get_logger(__name__)

router = APIRouter(prefix="/chat", tags=["Chat"])


class ChatRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)

    class Config:
        json_schema_extra = {"example": {"user_id": "u-123", "message": "Tìm giúp mình lịch trình đã lưu"}}


@router.post("/{session_id}", response_model=APIResponse)
async def chat(session_id: str, body: ChatRequest, sessions: SessionManager = Depends(get_session_manager)):
    """
    Send a user message and get the assistant reply.
    """
    try:
        state, reply = await sessions.handle(session_id, body.user_id, body.message)
    except AssistantError as e:
        log.warning("Chat turn failed for session %s: %s", session_id, e)
        raise http_error(e)

    return APIResponse.ok(
        {
            "reply": reply.text,
            "intent": state.intent.value,
            "active_itinerary_id": state.active_itinerary_id,
            "awaiting_confirmation": state.pending_update is not None,
        }
    )


@router.delete("/{session_id}", response_model=APIResponse)
async def end_chat(session_id: str, sessions: SessionManager = Depends(get_session_manager)):
    if not await sessions.end(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return APIResponse.ok({"session_id": session_id}, msg="Session ended")

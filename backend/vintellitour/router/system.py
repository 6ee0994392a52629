from fastapi import APIRouter

from vintellitour.core.config import APP_VERSION, ENVIRONMENT
from vintellitour.models.common import APIResponse

router = APIRouter(tags=["System"])


@router.get("/", response_model=APIResponse)
def root():
    return APIResponse(
        code=0, msg="ok", data={"msg": "Vintellitour Assistant API. POST /chat/{session_id} to talk."}
    )


@router.get("/health", response_model=APIResponse)
def health_check():
    return APIResponse(
        code=0,
        msg="ok",
        data={
            "status": "healthy",
            "service": "vintellitour-assistant",
            "version": APP_VERSION,
            "environment": ENVIRONMENT,
        },
    )

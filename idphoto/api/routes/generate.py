"""
ID photo generation endpoints: generate, cooldown status, session history.
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from idphoto.schemas.generation import (
    CooldownOut,
    GenerateIn,
    GenerateOut,
    GenerationErrorOut,
    HistoryOut,
)
from idphoto.services.id_photo import IdPhotoService
from idphoto.services.image_generation import ErrorKind, GenerationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generate"])

ERROR_STATUS = {
    ErrorKind.AUTH_ERROR: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.QUOTA_EXCEEDED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.SERVICE_OVERLOADED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.MALFORMED_RESPONSE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TRANSPORT_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.UNKNOWN: status.HTTP_502_BAD_GATEWAY,
}


def get_id_photo_service(request: Request) -> IdPhotoService:
    return request.app.state.id_photo_service


def _error_response(e: GenerationError) -> JSONResponse:
    body = GenerationErrorOut(
        kind=e.kind.value,
        message=e.user_message,
        retry_after_seconds=e.retry_after_seconds,
    )
    headers = {}
    if e.retry_after_seconds:
        headers["Retry-After"] = str(e.retry_after_seconds)
    return JSONResponse(
        status_code=ERROR_STATUS.get(e.kind, status.HTTP_502_BAD_GATEWAY),
        content=body.model_dump(),
        headers=headers,
    )


@router.post(
    "/generate",
    response_model=GenerateOut,
    responses={401: {"model": GenerationErrorOut}, 429: {"model": GenerationErrorOut}},
)
async def generate(
    payload: GenerateIn,
    service: IdPhotoService = Depends(get_id_photo_service),
):
    """Turn an uploaded photo into a passport-style ID photo."""
    try:
        image_data_url = await service.generate(
            payload.image,
            payload.media_type,
            payload.instructions,
        )
    except GenerationError as e:
        return _error_response(e)
    return GenerateOut(image_data_url=image_data_url)


@router.get("/cooldown", response_model=CooldownOut)
def get_cooldown(service: IdPhotoService = Depends(get_id_photo_service)) -> CooldownOut:
    remaining = service.cooldown.remaining_seconds
    return CooldownOut(remaining_seconds=remaining, cooling=remaining > 0)


@router.get("/history", response_model=HistoryOut)
def get_history(service: IdPhotoService = Depends(get_id_photo_service)) -> HistoryOut:
    return HistoryOut(items=service.history.items())


@router.delete("/history", status_code=status.HTTP_204_NO_CONTENT)
def clear_history(service: IdPhotoService = Depends(get_id_photo_service)) -> None:
    service.history.clear()

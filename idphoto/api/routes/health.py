from fastapi import APIRouter, Request, Response


router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness check - always returns 200 if app is running."""
    return {"status": "ok"}


@router.get("/ready")
def readiness(request: Request, response: Response) -> dict:
    """Readiness check - returns 503 if the image provider has no usable credential."""
    service = request.app.state.id_photo_service
    if not service.provider.is_available():
        response.status_code = 503
        return {"status": "not_ready", "error": "image provider API key missing or malformed"}
    return {"status": "ready"}

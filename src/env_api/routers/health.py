from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint for liveness and readiness probes.

    Returns the application name and version the app was created with.
    """
    settings = request.app.state.settings

    return {
        "status": "ok",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "ready": True,
    }

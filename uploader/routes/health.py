from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict[str, str]:
    app_settings = request.app.state.settings
    return {
        "status": "ok",
        "app_name": app_settings.app_name,
        "storage_backend": app_settings.storage_backend,
    }

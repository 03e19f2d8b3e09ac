from fastapi import APIRouter

from novablick.config import settings

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health() -> dict[str, str]:
    return {"status": "ok", "service": settings.PROJECT_NAME}

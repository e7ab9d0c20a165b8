import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from usermgmt.database.session import get_async_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(db: AsyncSession = Depends(get_async_session)) -> JSONResponse:
    """Liveness plus a `SELECT 1` round trip to the database."""
    try:
        await db.execute(text("SELECT 1"))
        database = "UP"
    except Exception:
        logger.exception("health.database_check_failed")
        database = "DOWN"

    up = database == "UP"
    return JSONResponse(
        status_code=status.HTTP_200_OK if up else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "UP" if up else "DOWN", "checks": {"database": database}},
    )

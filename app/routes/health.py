import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.container import ServiceContainer
from app.core.dependencies import get_container
from app.database import get_db

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health")
async def health(db: Session = Depends(get_db), container: ServiceContainer = Depends(get_container)):
    checks = {"database": "ok", "cache": "ok"}

    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database failure: {str(e)}")
        checks["database"] = "unavailable"

    try:
        if not await container.cache.ping():
            checks["cache"] = "unavailable"
    except (RedisError, OSError) as e:
        logger.error(f"Health check cache failure: {str(e)}")
        checks["cache"] = "unavailable"

    healthy = all(value == "ok" for value in checks.values())
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "degraded", "checks": checks},
    )

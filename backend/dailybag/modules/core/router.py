import logging
import time

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dailybag.core.logging import format_frontend_message
from dailybag.db import GetDb

router = APIRouter(prefix="/api", tags=["health"])
logger = logging.getLogger("dailybag.health")
frontend_logger = logging.getLogger("frontend")


@router.get("/health")
async def api_health() -> dict:
    logger.debug("health check ok")
    return {"status": "ok"}


@router.get("/health/db")
def api_health_db(db: Session = Depends(GetDb)) -> dict:
    try:
        db.execute(text("SELECT 1")).scalar()
    except SQLAlchemyError:
        logger.exception("db check failed")
        return {"status": "error", "detail": "database unavailable"}
    logger.debug("db check ok")
    return {"status": "ok"}


class FrontendLogPayload(BaseModel):
    level: str = Field(default="info", max_length=16)
    message: str = Field(..., max_length=2000)
    context: dict | None = None


@router.post("/logs")
async def api_logs(payload: FrontendLogPayload, request: Request) -> dict:
    level = payload.level.lower()
    metadata = {
        "ip": request.client.host if request.client else "unknown",
        "ua": request.headers.get("user-agent", "unknown"),
    }
    message = format_frontend_message(payload.message, {**metadata, **(payload.context or {})})

    if level == "debug":
        frontend_logger.debug(message)
    elif level in ("warn", "warning"):
        frontend_logger.warning(message)
    elif level == "error":
        frontend_logger.error(message)
    else:
        frontend_logger.info(message)

    logger.debug("frontend log received")
    return {"status": "ok", "timestamp": time.time()}

import logging

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db_session

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.head("/healthz")
async def healthz_head() -> Response:
    return Response(status_code=200)


@router.get("/readyz")
async def readyz(session: AsyncSession = Depends(get_db_session)) -> JSONResponse:
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("readiness_db_failed", extra={"extra": {"error_type": type(exc).__name__}})
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": "error"})
    return JSONResponse(status_code=200, content={"status": "ok", "database": "ok"})

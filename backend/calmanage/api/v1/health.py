from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from calmanage.core.config import settings
from calmanage.db import engine
from calmanage.tasks.reminders import get_redis_client

router = APIRouter()


def _check_database() -> str | None:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return str(e)
    return None


def _check_redis() -> str | None:
    try:
        get_redis_client().ping()
    except RedisError as e:
        return str(e)
    return None


@router.get("/", summary="Health check", tags=["health"])
def read_health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready", summary="Readiness check", tags=["health"])
def read_ready():
    """
    Report whether the database and Redis answer.

    Redis carries the scheduler tick lock and the Celery broker, so without it
    reminders and emails stall even though the API still serves requests.
    """
    errors = {"database": _check_database(), "redis": _check_redis()}
    body = {name: "connected" if error is None else "disconnected" for name, error in errors.items()}

    if not any(errors.values()):
        return {"status": "ready", **body}

    if settings.ENVIRONMENT != "production":
        body["errors"] = {name: error for name, error in errors.items() if error}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", **body},
    )

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import logging
from sqlalchemy.exc import SQLAlchemyError

from newshub.core.timezone_utils import utcnow
from newshub.db import session as db_session

router = APIRouter(tags=["Health"])

logger = logging.getLogger(__name__)


@router.get("/health")
def health():
    try:
        db_session.ping()
        database = "ok"
    except SQLAlchemyError:
        logger.exception("health check: database ping failed")
        database = "unavailable"
    body = {
        "success": database == "ok",
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "timestamp": utcnow().isoformat(),
    }
    return JSONResponse(status_code=200 if database == "ok" else 503, content=body)

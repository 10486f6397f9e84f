from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from newshub.core import request_stats
from newshub.core.timezone_utils import utcnow
from newshub.db.session import get_db, get_pool_stats
from newshub.models.article import Article as ArticleModel
from newshub.models.session import AdminSession
from newshub.models.source import Source as SourceModel, SourceType
from newshub.services.auth import require_admin

router = APIRouter(prefix="/admin/monitoring", tags=["Monitoring"], dependencies=[Depends(require_admin)])


@router.get("")
@router.get("/")
def monitoring(db: Session = Depends(get_db)):
    """
    Process and store counters for the admin dashboard.

    Returns uptime, request counters collected by the request middleware,
    pool/query counters from the engine listeners, source totals and
    session counts.
    """
    now = utcnow()
    total_sources = db.query(func.count(SourceModel.id)).scalar() or 0
    active_sources = db.query(func.count(SourceModel.id)).filter(SourceModel.active.is_(True)).scalar() or 0
    rss_sources = db.query(func.count(SourceModel.id)).filter(SourceModel.type == SourceType.rss).scalar() or 0
    total_sessions = db.query(func.count(AdminSession.id)).scalar() or 0
    active_sessions = (
        db.query(func.count(AdminSession.id))
        .filter(AdminSession.is_active.is_(True), AdminSession.expires_at > now)
        .scalar()
        or 0
    )
    total_articles = db.query(func.count(ArticleModel.id)).scalar() or 0
    return {
        "success": True,
        "uptimeSeconds": request_stats.uptime_seconds(),
        "startedAt": datetime.fromtimestamp(request_stats.STARTED_AT, tz=timezone.utc).isoformat(),
        "requests": request_stats.snapshot(),
        "database": get_pool_stats(),
        "sources": {
            "total": total_sources,
            "active": active_sources,
            "inactive": total_sources - active_sources,
            "rss": rss_sources,
            "api": total_sources - rss_sources,
        },
        "sessions": {"total": total_sessions, "active": active_sessions},
        "articles": {"total": total_articles},
    }

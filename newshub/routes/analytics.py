from collections import Counter

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from newshub.core.timezone_utils import utcnow
from newshub.db.session import get_db
from newshub.models.article import Article as ArticleModel, VISIBLE_STATUSES
from newshub.services import articles as articles_service
from newshub.services.auth import require_admin

router = APIRouter(prefix="/admin/analytics", tags=["Analytics"], dependencies=[Depends(require_admin)])

TOP_CATEGORIES = 6
# readers are not tracked; the dashboard estimates them from views
VIEWS_PER_READER = 3


@router.get("")
@router.get("/")
def analytics(db: Session = Depends(get_db)):
    """
    Readership summary for the admin dashboard.

    Counts only visible articles: totals, views, articles published since
    midnight UTC, the most used categories and per-language totals.
    """
    visible = db.query(ArticleModel).filter(ArticleModel.status.in_(VISIBLE_STATUSES))
    total_articles = visible.count()
    total_views = visible.with_entities(func.coalesce(func.sum(ArticleModel.view_count), 0)).scalar() or 0
    start_of_day = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    articles_today = visible.filter(ArticleModel.published_at >= start_of_day).count()

    counts = Counter()
    for (categories,) in visible.with_entities(ArticleModel.categories).order_by(ArticleModel.id.asc()).all():
        counts.update(categories or [])
    top_categories = [
        {
            "name": name,
            "count": count,
            "percentage": round(count / total_articles * 100) if total_articles else 0,
        }
        for name, count in counts.most_common(TOP_CATEGORIES)
    ]

    language_rows = (
        visible.with_entities(
            ArticleModel.language,
            func.count(ArticleModel.id),
            func.coalesce(func.sum(ArticleModel.view_count), 0),
        )
        .group_by(ArticleModel.language)
        .order_by(func.count(ArticleModel.id).desc(), ArticleModel.language.asc())
        .all()
    )
    language_stats = [
        {
            "code": code,
            "language": articles_service.LANGUAGE_NAMES.get(code, (code.capitalize(),))[0],
            "articles": count,
            "views": int(views or 0),
        }
        for code, count, views in language_rows
    ]

    return {
        "success": True,
        "analytics": {
            "totalArticles": total_articles,
            "totalViews": int(total_views),
            "totalUsers": int(total_views) // VIEWS_PER_READER,
            "articlesToday": articles_today,
            "topCategories": top_categories,
            "languageStats": language_stats,
        },
    }

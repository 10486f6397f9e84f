from collections import Counter
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from newshub.core.timezone_utils import utcnow
from newshub.db.session import get_db
from newshub.models.article import Article as ArticleModel, VISIBLE_STATUSES
from newshub.models.category import Category as CategoryModel
from newshub.models.source import Source as SourceModel
from newshub.routes.site_settings import get_or_create_settings
from newshub.schemas.article import (
    ArticleListResponse,
    ArticleResponse,
    LanguageListResponse,
    LanguageStat,
    LatestNewsResponse,
    TrendingResponse,
    TrendingTopic,
)
from newshub.schemas.base import Pagination
from newshub.schemas.category import CategoryCount, CategoryCountResponse
from newshub.schemas.source import (
    PublicSourceItem,
    PublicSourceListResponse,
    PublicSourceSummary,
    SourceRead,
)
from newshub.services import articles as articles_service

router = APIRouter(tags=["Public"])

SORT_COLUMNS = {
    "publishedAt": ArticleModel.published_at,
    "viewCount": ArticleModel.view_count,
    "createdAt": ArticleModel.created_at,
}

TRENDING_DAYS = 7
# backfill window when the last week has too few articles
TRENDING_FALLBACK_DAYS = 30
TRENDING_TOPICS = 6


def _visible(db: Session):
    return db.query(ArticleModel).filter(ArticleModel.status.in_(VISIBLE_STATUSES))


@router.get("/news", response_model=ArticleListResponse)
def list_news(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    lang: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    sortBy: str = Query("publishedAt"),
    sortOrder: str = Query("desc"),
    db: Session = Depends(get_db),
):
    if sortBy not in SORT_COLUMNS:
        raise HTTPException(status_code=400, detail="sortBy must be one of: " + ", ".join(SORT_COLUMNS))
    if sortOrder not in ("asc", "desc"):
        raise HTTPException(status_code=400, detail="sortOrder must be asc or desc")
    if limit is None:
        limit = get_or_create_settings(db).max_articles_per_page

    q = _visible(db)
    if lang:
        q = q.filter(ArticleModel.language == lang)
    if category and category != "all":
        q = articles_service.filter_by_category(q, db, category)
    if search:
        q = q.filter(articles_service.search_filter(search))

    total = q.count()
    column = SORT_COLUMNS[sortBy]
    order = column.asc() if sortOrder == "asc" else column.desc()
    items = q.order_by(order, ArticleModel.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return ArticleListResponse(items=items, pagination=Pagination.build(page, limit, total))


@router.get("/news/latest", response_model=LatestNewsResponse)
def latest_news(
    lang: str = Query("en"),
    category: Optional[str] = None,
    limit: int = Query(8, ge=1, le=100),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    """Newest visible articles for one language (or `all`), optionally narrowed by category or tag."""
    q = _visible(db)
    if lang != "all":
        q = q.filter(ArticleModel.language == lang)
    if category and category != "all":
        q = articles_service.filter_by_category(q, db, category, include_tags=True)

    total = q.count()
    items = (
        q.order_by(ArticleModel.published_at.desc(), ArticleModel.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return LatestNewsResponse(
        articles=items, pagination=Pagination.build(page, limit, total), language=lang, total_found=total
    )


@router.get("/trending", response_model=TrendingResponse)
def trending(
    limit: int = Query(10, ge=1, le=50),
    lang: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Most viewed articles of the last week.

    When the week has fewer than `limit` articles the rest is filled with
    the newest articles of the last month. Topics are the most frequent
    categories of the week.
    """
    now = utcnow()
    base = _visible(db)
    if lang and lang != "all":
        base = base.filter(ArticleModel.language == lang)
    week = base.filter(ArticleModel.published_at >= now - timedelta(days=TRENDING_DAYS))

    items = week.order_by(ArticleModel.view_count.desc(), ArticleModel.published_at.desc()).limit(limit).all()
    if len(items) < limit:
        backfill = base.filter(ArticleModel.published_at >= now - timedelta(days=TRENDING_FALLBACK_DAYS))
        if items:
            backfill = backfill.filter(ArticleModel.id.notin_([a.id for a in items]))
        items += backfill.order_by(ArticleModel.published_at.desc()).limit(limit - len(items)).all()

    counts = Counter()
    for (categories,) in week.with_entities(ArticleModel.categories).order_by(ArticleModel.id.asc()).all():
        counts.update(categories or [])
    topics = [TrendingTopic(name=name, count=count) for name, count in counts.most_common(TRENDING_TOPICS)]
    return TrendingResponse(data=items, topics=topics, total=len(items))


@router.get("/languages", response_model=LanguageListResponse)
def list_languages(db: Session = Depends(get_db)):
    """Supported languages with visible article counts, active languages first."""
    stats = {
        code: (count, last)
        for code, count, last in db.query(
            ArticleModel.language, func.count(ArticleModel.id), func.max(ArticleModel.published_at)
        )
        .filter(ArticleModel.status.in_(VISIBLE_STATUSES))
        .group_by(ArticleModel.language)
        .all()
    }
    names = articles_service.LANGUAGE_NAMES
    codes = list(names) + sorted(c for c in stats if c not in names)
    items = []
    for code in codes:
        count, last = stats.get(code, (0, None))
        name, native_name = names.get(code, (code.upper(), code.upper()))
        items.append(
            LanguageStat(
                code=code,
                name=name,
                native_name=native_name,
                article_count=count,
                last_article=last,
                is_active=count > 0,
            )
        )
    items.sort(key=lambda i: (not i.is_active, -i.article_count))
    return LanguageListResponse(
        languages=items,
        total_languages=len(items),
        active_languages=sum(1 for i in items if i.is_active),
        total_articles=sum(i.article_count for i in items),
    )


@router.get("/articles/{article_id}", response_model=ArticleResponse)
def read_article(article_id: int, db: Session = Depends(get_db)):
    visible = _visible(db).filter(ArticleModel.id == article_id).first()
    if not visible:
        raise HTTPException(status_code=404, detail="Article not found")
    article = articles_service.increment_views(db, article_id)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return ArticleResponse(article=article)


@router.get("/categories", response_model=CategoryCountResponse)
def list_categories(lang: Optional[str] = None, db: Session = Depends(get_db)):
    base = _visible(db)
    if lang:
        base = base.filter(ArticleModel.language == lang)
    rows = db.query(CategoryModel).order_by(CategoryModel.order.asc(), CategoryModel.id.asc()).all()
    items = []
    for c in rows:
        count = articles_service.filter_by_category(base, db, c.key).count()
        items.append(
            CategoryCount(id=c.id, key=c.key, label=c.label, icon=c.icon, color=c.color, order=c.order, count=count)
        )
    return CategoryCountResponse(categories=items, total_articles=base.count())


@router.get("/sources", response_model=PublicSourceListResponse)
def list_sources(db: Session = Depends(get_db)):
    stats = {
        source_id: (count, last)
        for source_id, count, last in db.query(
            ArticleModel.source_id, func.count(ArticleModel.id), func.max(ArticleModel.published_at)
        )
        .filter(ArticleModel.source_id.isnot(None))
        .group_by(ArticleModel.source_id)
        .all()
    }
    rows = db.query(SourceModel).order_by(SourceModel.name.asc()).all()
    items = []
    for s in rows:
        count, last = stats.get(s.id, (0, None))
        items.append(
            PublicSourceItem(
                **SourceRead.model_validate(s).model_dump(),
                status="active" if s.active else "inactive",
                article_count=count,
                last_article=last,
            )
        )
    active = sum(1 for s in rows if s.active)
    with_articles = sum(1 for i in items if i.article_count > 0)
    total_articles = sum(i.article_count for i in items)
    summary = PublicSourceSummary(
        total_sources=len(rows),
        active_sources=active,
        inactive_sources=len(rows) - active,
        total_articles=total_articles,
        sources_with_articles=with_articles,
        sources_without_articles=len(rows) - with_articles,
        average_articles_per_source=round(total_articles / len(rows)) if rows else 0,
    )
    return PublicSourceListResponse(sources=items, summary=summary)

from fastapi import APIRouter, Depends, HTTPException, Query
import logging
from typing import Optional
from sqlalchemy.orm import Session

from newshub.db.session import get_db
from newshub.core.exceptions import ValidationError
from newshub.models.article import Article as ArticleModel, ArticleStatus
from newshub.schemas.article import (
    ArticleListResponse,
    ArticleResponse,
    ArticleUpdate,
    ManualArticleCreate,
)
from newshub.schemas.base import MessageResponse, Pagination
from newshub.services import articles as articles_service
from newshub.services.auth import require_admin

router = APIRouter(prefix="/admin/articles", tags=["Articles"], dependencies=[Depends(require_admin)])

logger = logging.getLogger(__name__)


def _paginate(q, page: int, limit: int) -> ArticleListResponse:
    total = q.count()
    items = (
        q.order_by(ArticleModel.published_at.desc(), ArticleModel.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return ArticleListResponse(items=items, pagination=Pagination.build(page, limit, total))


@router.get("", response_model=ArticleListResponse)
@router.get("/", response_model=ArticleListResponse)
def list_articles(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    language: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    q = db.query(ArticleModel)
    if status:
        try:
            q = q.filter(ArticleModel.status == ArticleStatus(status))
        except ValueError:
            raise ValidationError(f"Invalid status: {status}")
    if language:
        q = q.filter(ArticleModel.language == language)
    if category:
        q = articles_service.filter_by_category(q, db, category)
    if search:
        q = q.filter(articles_service.search_filter(search))
    return _paginate(q, page, limit)


# /manual must be registered before /{article_id}
@router.post("/manual", response_model=ArticleResponse, status_code=201)
def create_manual_article(payload: ManualArticleCreate, db: Session = Depends(get_db)):
    article = articles_service.create_manual_article(db, payload)
    logger.info("manual article created id=%s slug=%s", article.id, article.slug)
    return ArticleResponse(article=article, message="Article created successfully")


@router.get("/manual", response_model=ArticleListResponse)
def list_manual_articles(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    language: Optional[str] = None,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
):
    q = db.query(ArticleModel).filter(ArticleModel.is_manual.is_(True))
    if language and language != "all":
        q = q.filter(ArticleModel.language == language)
    if category and category != "all":
        q = articles_service.filter_by_category(q, db, category)
    return _paginate(q, page, limit)


@router.get("/{article_id}", response_model=ArticleResponse)
def get_article(article_id: int, db: Session = Depends(get_db)):
    article = db.query(ArticleModel).filter(ArticleModel.id == article_id).first()
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return ArticleResponse(article=article)


@router.put("/{article_id}", response_model=ArticleResponse)
def update_article(article_id: int, payload: ArticleUpdate, db: Session = Depends(get_db)):
    article = db.query(ArticleModel).filter(ArticleModel.id == article_id).first()
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "categories" in changes:
        changes["categories"] = [c.strip().lower() for c in changes["categories"]]
    article = articles_service.apply_update(db, article, changes)
    return ArticleResponse(article=article, message="Article updated successfully")


@router.delete("/{article_id}", response_model=MessageResponse)
def delete_article(article_id: int, db: Session = Depends(get_db)):
    article = db.query(ArticleModel).filter(ArticleModel.id == article_id).first()
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    db.delete(article)
    db.commit()
    return MessageResponse(message="Article deleted successfully")

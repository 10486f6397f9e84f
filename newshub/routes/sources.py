from fastapi import APIRouter, Depends, HTTPException
import logging
from sqlalchemy.orm import Session

from newshub.core.exceptions import Conflict, ValidationError
from newshub.core.timezone_utils import utcnow
from newshub.db.session import get_db
from newshub.models.source import Source as SourceModel, SourceType
from newshub.schemas.base import MessageResponse
from newshub.schemas.source import (
    SourceConfigSummary,
    SourceCreate,
    SourceHealth,
    SourceListResponse,
    SourceRead,
    SourceResponse,
    SourceStatusItem,
    SourceStatusResponse,
    SourceStatusUpdate,
    SourceUpdate,
)
from newshub.services.auth import require_admin

router = APIRouter(prefix="/admin/sources", tags=["Sources"], dependencies=[Depends(require_admin)])

logger = logging.getLogger(__name__)


def _get_or_404(db: Session, source_id: int) -> SourceModel:
    source = db.query(SourceModel).filter(SourceModel.id == source_id).first()
    if not source:
        raise HTTPException(status_code=404, detail="Source not found")
    return source


def _url_taken(db: Session, url: str, exclude_id: int = None) -> bool:
    q = db.query(SourceModel.id).filter(SourceModel.url == url)
    if exclude_id is not None:
        q = q.filter(SourceModel.id != exclude_id)
    return q.first() is not None


@router.get("", response_model=SourceListResponse)
@router.get("/", response_model=SourceListResponse)
def list_sources(db: Session = Depends(get_db)):
    rows = db.query(SourceModel).order_by(SourceModel.id.desc()).all()
    config = SourceConfigSummary(
        total_sources=len(rows),
        active_sources=sum(1 for s in rows if s.active),
        rss_sources=sum(1 for s in rows if s.type == SourceType.rss),
        api_sources=sum(1 for s in rows if s.type == SourceType.api),
        last_updated=utcnow(),
    )
    return SourceListResponse(sources=rows, config=config)


@router.post("", response_model=SourceResponse, status_code=201)
@router.post("/", response_model=SourceResponse, status_code=201)
def create_source(payload: SourceCreate, db: Session = Depends(get_db)):
    if _url_taken(db, payload.url):
        raise Conflict("Source with this URL already exists")
    source = SourceModel(
        name=payload.name,
        url=payload.url,
        rss_urls=[payload.rss_url] if payload.rss_url else [],
        language=payload.language,
        categories=[c.lower() for c in payload.categories],
        active=payload.active,
        # anything that is not an rss source is treated as an api source
        type=SourceType.rss if payload.type == "rss" else SourceType.api,
    )
    db.add(source)
    db.commit()
    db.refresh(source)
    logger.info("created source id=%s url=%r", source.id, source.url)
    return SourceResponse(source=source, message="Source added successfully")


@router.get("/status", response_model=SourceStatusResponse)
def sources_status(db: Session = Depends(get_db)):
    rows = db.query(SourceModel).order_by(SourceModel.id.desc()).all()
    items = []
    for s in rows:
        health = SourceHealth(status="healthy" if s.active else "inactive", issues=[] if s.active else ["Inactive"])
        items.append(SourceStatusItem(**SourceRead.model_validate(s).model_dump(), health=health))
    return SourceStatusResponse(sources=items)


@router.put("/status", response_model=MessageResponse)
def update_source_status(payload: SourceStatusUpdate, db: Session = Depends(get_db)):
    source = _get_or_404(db, payload.source_id)
    if payload.active is not None:
        source.active = payload.active
        db.add(source)
        db.commit()
    return MessageResponse(message="Source status updated successfully")


@router.patch("/{source_id}", response_model=SourceResponse)
def update_source(source_id: int, payload: SourceUpdate, db: Session = Depends(get_db)):
    source = _get_or_404(db, source_id)
    if payload.url and _url_taken(db, payload.url, exclude_id=source_id):
        raise Conflict("Source with this URL already exists")
    if payload.language is not None and not payload.language.strip():
        raise ValidationError("Language cannot be empty")
    if payload.active is not None:
        source.active = payload.active
    if payload.name:
        source.name = payload.name
    if payload.url:
        source.url = payload.url
    if payload.rss_url:
        source.rss_urls = [payload.rss_url]
    if payload.categories is not None:
        source.categories = [c.lower() for c in payload.categories]
    if payload.language:
        source.language = payload.language
    db.add(source)
    db.commit()
    db.refresh(source)
    return SourceResponse(source=source, message="Source updated successfully")


@router.delete("/{source_id}", response_model=MessageResponse)
def delete_source(source_id: int, db: Session = Depends(get_db)):
    source = _get_or_404(db, source_id)
    db.delete(source)
    db.commit()
    return MessageResponse(message="Source deleted successfully")

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from typing import Any, Optional
from sqlalchemy.orm import Session

from newshub.db.session import get_db
from newshub.models.source import Source as SourceModel, SourceType
from newshub.schemas.base import MessageResponse
from newshub.schemas.source import (
    FeedLoadResponse,
    RssFeedCreate,
    RssFeedListResponse,
    RssFeedUpdate,
    SourceResponse,
)
from newshub.services import feeds as feeds_service
from newshub.services.auth import require_admin

router = APIRouter(prefix="/admin/rss-feeds", tags=["RSS Feeds"], dependencies=[Depends(require_admin)])


def _source_type(value: str) -> SourceType:
    try:
        return SourceType(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Type must be one of: rss, api")


@router.get("", response_model=RssFeedListResponse)
@router.get("/", response_model=RssFeedListResponse)
def list_feeds(db: Session = Depends(get_db)):
    rows = db.query(SourceModel).order_by(SourceModel.id.desc()).all()
    return RssFeedListResponse(rss_feeds=rows)


@router.post("", response_model=SourceResponse, status_code=201)
@router.post("/", response_model=SourceResponse, status_code=201)
def create_feed(payload: RssFeedCreate, db: Session = Depends(get_db)):
    if db.query(SourceModel.id).filter(SourceModel.url == payload.url).first():
        raise HTTPException(status_code=409, detail="Source with this URL already exists")
    source = SourceModel(
        name=payload.name,
        url=payload.url,
        rss_urls=payload.rss_urls,
        language=payload.language,
        categories=[c.lower() for c in payload.categories],
        active=True,
        type=_source_type(payload.type),
        last_scraped=None,
    )
    db.add(source)
    db.commit()
    db.refresh(source)
    return SourceResponse(source=source, message="RSS feed added successfully")


@router.put("", response_model=SourceResponse)
@router.put("/", response_model=SourceResponse)
def update_feed(payload: RssFeedUpdate, db: Session = Depends(get_db)):
    source = db.query(SourceModel).filter(SourceModel.id == payload.id).first()
    if not source:
        raise HTTPException(status_code=404, detail="Source not found")
    if payload.url and payload.url != source.url:
        clash = db.query(SourceModel.id).filter(SourceModel.url == payload.url, SourceModel.id != source.id).first()
        if clash:
            raise HTTPException(status_code=409, detail="Source with this URL already exists")
        source.url = payload.url
    if payload.name:
        source.name = payload.name
    if payload.rss_urls:
        source.rss_urls = payload.rss_urls
    if payload.language:
        source.language = payload.language
    if payload.categories:
        source.categories = [c.lower() for c in payload.categories]
    if payload.active is not None:
        source.active = payload.active
    if payload.type:
        source.type = _source_type(payload.type)
    db.add(source)
    db.commit()
    db.refresh(source)
    return SourceResponse(source=source, message="RSS feed updated successfully")


@router.delete("", response_model=MessageResponse)
@router.delete("/", response_model=MessageResponse)
def delete_feed(id: Optional[int] = Query(None), db: Session = Depends(get_db)):
    if id is None:
        raise HTTPException(status_code=400, detail="Source ID is required")
    source = db.query(SourceModel).filter(SourceModel.id == id).first()
    if not source:
        raise HTTPException(status_code=404, detail="Source not found")
    db.delete(source)
    db.commit()
    return MessageResponse(message="RSS feed deleted successfully")


@router.post("/load", response_model=FeedLoadResponse)
def load_feeds(registry: Optional[Any] = Body(None), db: Session = Depends(get_db)):
    """Bulk load sources from the feed registry.

    A registry may be posted as the body; otherwise the configured registry
    file is read.
    """
    if registry:
        data = feeds_service.parse_registry(registry)
    else:
        data = feeds_service.read_registry()
    counts = feeds_service.load_feeds(db, data)
    return FeedLoadResponse(message="RSS feeds loaded successfully", **counts)

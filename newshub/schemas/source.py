from pydantic import Field
from typing import Dict, List, Optional
from datetime import datetime

from newshub.schemas.base import CamelModel


class SourceCreate(CamelModel):
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1)
    rss_url: Optional[str] = None
    categories: List[str] = []
    active: bool = True


class SourceUpdate(CamelModel):
    name: Optional[str] = None
    url: Optional[str] = None
    rss_url: Optional[str] = None
    categories: Optional[List[str]] = None
    language: Optional[str] = None
    active: Optional[bool] = None


class SourceStatusUpdate(CamelModel):
    source_id: int
    active: Optional[bool] = None


class SourceRead(CamelModel):
    id: int
    name: str
    url: str
    rss_urls: List[str] = []
    language: str
    categories: List[str] = []
    active: bool
    type: str
    last_scraped: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SourceConfigSummary(CamelModel):
    total_sources: int
    active_sources: int
    rss_sources: int
    api_sources: int
    last_updated: datetime


class SourceListResponse(CamelModel):
    success: bool = True
    sources: List[SourceRead]
    config: SourceConfigSummary


class SourceResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    source: SourceRead


class SourceHealth(CamelModel):
    status: str
    issues: List[str] = []


class SourceStatusItem(SourceRead):
    health: SourceHealth


class SourceStatusResponse(CamelModel):
    success: bool = True
    sources: List[SourceStatusItem]


class RssFeedCreate(CamelModel):
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    rss_urls: List[str] = Field(..., min_length=1)
    language: str = "en"
    categories: List[str] = ["general"]
    type: str = "rss"


class RssFeedUpdate(CamelModel):
    id: int
    name: Optional[str] = None
    url: Optional[str] = None
    rss_urls: Optional[List[str]] = None
    language: Optional[str] = None
    categories: Optional[List[str]] = None
    active: Optional[bool] = None
    type: Optional[str] = None


class RssFeedListResponse(CamelModel):
    success: bool = True
    rss_feeds: List[SourceRead]


class FeedEntry(CamelModel):
    """One feed of the registry file."""

    name: str
    url: str
    rss_urls: List[str] = []
    language: Optional[str] = None
    categories: List[str] = []
    active: bool = True


# language -> category -> feeds
FeedRegistry = Dict[str, Dict[str, List[FeedEntry]]]


class FeedLoadResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    loaded: int
    skipped: int
    failed: int
    total: int


class PublicSourceItem(SourceRead):
    status: str
    article_count: int = 0
    last_article: Optional[datetime] = None


class PublicSourceSummary(CamelModel):
    total_sources: int
    active_sources: int
    inactive_sources: int
    total_articles: int
    sources_with_articles: int
    sources_without_articles: int
    average_articles_per_source: int


class PublicSourceListResponse(CamelModel):
    success: bool = True
    sources: List[PublicSourceItem]
    summary: PublicSourceSummary

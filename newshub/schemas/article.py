from pydantic import Field, field_validator
from typing import List, Optional, Union
from datetime import datetime

from newshub.schemas.base import CamelModel, Pagination


class ArticleImage(CamelModel):
    url: str
    alt: str
    caption: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    generated: bool = False


class ArticleRead(CamelModel):
    id: int
    title: str
    slug: str
    summary: str
    content: Optional[str] = None
    thumbnail: Optional[str] = None
    images: List[ArticleImage] = []
    category_id: Optional[int] = None
    categories: List[str] = []
    tags: List[str] = []
    author: Optional[str] = None
    language: str
    source_id: Optional[int] = None
    source_name: str
    source_url: str = ""
    status: str
    published_at: datetime
    scraped_at: Optional[datetime] = None
    canonical_url: str
    word_count: int
    reading_time: int
    view_count: int
    is_manual: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ArticleUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    summary: Optional[str] = Field(None, max_length=300)
    content: Optional[str] = None
    thumbnail: Optional[str] = None
    images: Optional[List[ArticleImage]] = None
    category_id: Optional[int] = None
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    author: Optional[str] = None
    language: Optional[str] = Field(None, pattern=r"^[a-z]{2,3}$")
    status: Optional[str] = None
    published_at: Optional[datetime] = None


class ManualArticleCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    source_name: str = Field(..., min_length=1)
    source_url: Optional[str] = None
    published_at: Optional[datetime] = None
    thumbnail: Optional[str] = None
    summary: Optional[str] = None
    tags: Union[List[str], str, None] = None
    author: Optional[str] = None

    @field_validator("tags")
    @classmethod
    def split_tags(cls, v):
        # accepts "a, b" as well as ["a", "b"]
        if v is None:
            return []
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v


class ArticleResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    article: ArticleRead


class ArticleListResponse(CamelModel):
    success: bool = True
    items: List[ArticleRead]
    pagination: Pagination


class LatestNewsResponse(CamelModel):
    success: bool = True
    articles: List[ArticleRead]
    pagination: Pagination
    language: str
    total_found: int


class TrendingTopic(CamelModel):
    name: str
    count: int


class TrendingResponse(CamelModel):
    success: bool = True
    data: List[ArticleRead]
    topics: List[TrendingTopic]
    total: int


class LanguageStat(CamelModel):
    code: str
    name: str
    native_name: str
    article_count: int
    last_article: Optional[datetime] = None
    is_active: bool


class LanguageListResponse(CamelModel):
    success: bool = True
    languages: List[LanguageStat]
    total_languages: int
    active_languages: int
    total_articles: int

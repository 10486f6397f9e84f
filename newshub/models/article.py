from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, Enum, JSON, ForeignKey, Index
from sqlalchemy.sql import func
from newshub.db.session import Base
import enum


class ArticleStatus(str, enum.Enum):
    scraped = "scraped"
    pending = "pending"
    processed = "processed"
    published = "published"
    rejected = "rejected"
    needs_review = "needs_review"


# statuses the public reader shows
VISIBLE_STATUSES = (ArticleStatus.scraped, ArticleStatus.processed, ArticleStatus.published)


class Article(Base):
    __tablename__ = "articles"
    __table_args__ = (
        Index("ix_articles_language_status_published", "language", "status", "published_at"),
        Index("ix_articles_status_published", "status", "published_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    summary = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    thumbnail = Column(String(1024), nullable=True)
    # list of {url, alt, caption?, width?, height?}
    images = Column(JSON, nullable=False, default=list)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    categories = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)
    author = Column(String(255), nullable=True)
    language = Column(String(3), nullable=False, default="en")
    source_id = Column(Integer, ForeignKey("sources.id", ondelete="SET NULL"), nullable=True, index=True)
    source_name = Column(String(255), nullable=False)
    source_url = Column(String(1024), nullable=False, default="")
    status = Column(Enum(ArticleStatus, name="article_status"), nullable=False, default=ArticleStatus.scraped)
    published_at = Column(DateTime, nullable=False)
    scraped_at = Column(DateTime, nullable=False, server_default=func.now())
    canonical_url = Column(String(1024), unique=True, nullable=False)
    word_count = Column(Integer, nullable=False, default=0)
    reading_time = Column(Integer, nullable=False, default=0)
    view_count = Column(Integer, nullable=False, default=0)
    hash = Column(String(64), unique=True, nullable=False)
    is_manual = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


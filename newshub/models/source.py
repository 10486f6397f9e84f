from sqlalchemy import Column, Integer, String, DateTime, Boolean, Enum, JSON
from sqlalchemy.sql import func
from newshub.db.session import Base
import enum


class SourceType(str, enum.Enum):
    rss = "rss"
    api = "api"


class Source(Base):
    __tablename__ = "sources"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), index=True, nullable=False)
    url = Column(String(1024), unique=True, nullable=False)
    rss_urls = Column(JSON, nullable=False, default=list)
    language = Column(String(32), nullable=False, default="en")
    # category keys, lowercased
    categories = Column(JSON, nullable=False, default=list)
    active = Column(Boolean, nullable=False, default=True)
    type = Column(Enum(SourceType, name="source_type"), nullable=False, default=SourceType.rss)
    last_scraped = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

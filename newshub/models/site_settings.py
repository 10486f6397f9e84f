from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text
from sqlalchemy.sql import func
from newshub.db.session import Base


class SiteSettings(Base):
    """Single-row table holding site wide display settings."""

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    site_name = Column(String(255), nullable=False, default="NewsHub")
    site_description = Column(String(500), nullable=False, default="Your trusted source for news")
    site_url = Column(String(255), nullable=False, default="http://localhost:3000")
    admin_email = Column(String(255), nullable=False, default="admin@newshub.com")
    enable_registration = Column(Boolean, nullable=False, default=False)
    enable_comments = Column(Boolean, nullable=False, default=True)
    enable_notifications = Column(Boolean, nullable=False, default=True)
    max_articles_per_page = Column(Integer, nullable=False, default=20)
    cache_timeout = Column(Integer, nullable=False, default=3600)
    maintenance_mode = Column(Boolean, nullable=False, default=False)
    seo_title = Column(String(255), nullable=False, default="NewsHub - Latest News")
    seo_description = Column(String(500), nullable=False, default="Stay updated with the latest news from around the world")
    seo_keywords = Column(Text, nullable=False, default="news, latest, updates, world news, breaking news")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

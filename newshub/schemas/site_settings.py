from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime

from newshub.schemas.base import CamelModel


class SiteSettingsRead(CamelModel):
    site_name: str
    site_description: str
    site_url: str
    admin_email: str
    enable_registration: bool
    enable_comments: bool
    enable_notifications: bool
    max_articles_per_page: int
    cache_timeout: int
    maintenance_mode: bool
    seo_title: str
    seo_description: str
    seo_keywords: str
    updated_at: Optional[datetime] = None


class SiteSettingsUpdate(CamelModel):
    site_name: Optional[str] = None
    site_description: Optional[str] = None
    site_url: Optional[str] = None
    admin_email: Optional[EmailStr] = None
    enable_registration: Optional[bool] = None
    enable_comments: Optional[bool] = None
    enable_notifications: Optional[bool] = None
    max_articles_per_page: Optional[int] = Field(None, ge=1, le=100)
    cache_timeout: Optional[int] = Field(None, ge=0)
    maintenance_mode: Optional[bool] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[str] = None


class SiteSettingsResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    settings: SiteSettingsRead

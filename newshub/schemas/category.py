from pydantic import Field
from typing import List, Optional
from datetime import datetime

from newshub.schemas.base import CamelModel


class CategoryCreate(CamelModel):
    key: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    icon: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[int] = None
    order: Optional[int] = None


class CategoryUpdate(CamelModel):
    id: int
    key: Optional[str] = None
    label: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[int] = None
    order: Optional[int] = None


class CategoryRead(CamelModel):
    id: int
    key: str
    label: str
    icon: str
    color: str
    parent_id: Optional[int] = None
    order: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryNode(CategoryRead):
    subcategories: List[CategoryRead] = []


class CategoryTreeResponse(CamelModel):
    success: bool = True
    categories: List[CategoryNode]
    total_categories: int
    main_categories: int
    sub_categories: int


class CategoryResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    category: CategoryRead


class CategoryCount(CamelModel):
    id: int
    key: str
    label: str
    icon: str
    color: str
    order: int
    count: int


class CategoryCountResponse(CamelModel):
    success: bool = True
    categories: List[CategoryCount]
    total_articles: int

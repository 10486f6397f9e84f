from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from newshub.db.session import get_db
from newshub.models.category import Category as CategoryModel
from newshub.schemas.base import MessageResponse
from newshub.schemas.category import (
    CategoryCreate,
    CategoryNode,
    CategoryRead,
    CategoryResponse,
    CategoryTreeResponse,
    CategoryUpdate,
)
from newshub.services.articles import category_key_in_use
from newshub.services.auth import require_admin

router = APIRouter(prefix="/admin/categories", tags=["Categories"], dependencies=[Depends(require_admin)])


def _key_exists(db: Session, key: str, exclude_id: Optional[int] = None) -> bool:
    q = db.query(CategoryModel.id).filter(CategoryModel.key == key)
    if exclude_id is not None:
        q = q.filter(CategoryModel.id != exclude_id)
    return q.first() is not None


def _is_descendant(db: Session, candidate_id: int, ancestor_id: int) -> bool:
    """Walk up from ``candidate_id`` and report whether ``ancestor_id`` is on the path."""
    seen = set()
    current = candidate_id
    while current is not None and current not in seen:
        if current == ancestor_id:
            return True
        seen.add(current)
        row = db.query(CategoryModel.parent_id).filter(CategoryModel.id == current).first()
        current = row.parent_id if row else None
    return False


@router.get("", response_model=CategoryTreeResponse)
@router.get("/", response_model=CategoryTreeResponse)
def list_categories(db: Session = Depends(get_db)):
    rows = db.query(CategoryModel).order_by(CategoryModel.order.asc(), CategoryModel.created_at.asc(), CategoryModel.id.asc()).all()
    main = [c for c in rows if c.parent_id is None]
    subs = [c for c in rows if c.parent_id is not None]
    tree = []
    for m in main:
        node = CategoryNode(**CategoryRead.model_validate(m).model_dump())
        node.subcategories = [CategoryRead.model_validate(s) for s in subs if s.parent_id == m.id]
        tree.append(node)
    return CategoryTreeResponse(
        categories=tree,
        total_categories=len(rows),
        main_categories=len(main),
        sub_categories=len(subs),
    )


@router.post("", response_model=CategoryResponse, status_code=201)
@router.post("/", response_model=CategoryResponse, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    key = payload.key.strip().lower()
    if _key_exists(db, key):
        raise HTTPException(status_code=409, detail="Category with this key already exists")
    if payload.parent_id is not None:
        if not db.query(CategoryModel.id).filter(CategoryModel.id == payload.parent_id).first():
            raise HTTPException(status_code=404, detail="Parent category not found")
    order = payload.order
    if order is None:
        max_order = db.query(func.max(CategoryModel.order)).scalar()
        order = (max_order or 0) + 1
    category = CategoryModel(
        key=key,
        label=payload.label.strip(),
        icon=payload.icon or "newspaper",
        color=payload.color or "#6366f1",
        parent_id=payload.parent_id,
        order=order,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return CategoryResponse(category=category, message="Category created successfully")


@router.put("", response_model=CategoryResponse)
@router.put("/", response_model=CategoryResponse)
def update_category(payload: CategoryUpdate, db: Session = Depends(get_db)):
    category = db.query(CategoryModel).filter(CategoryModel.id == payload.id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    if payload.parent_id is not None:
        if payload.parent_id == payload.id:
            raise HTTPException(status_code=400, detail="Category cannot be its own parent")
        if not db.query(CategoryModel.id).filter(CategoryModel.id == payload.parent_id).first():
            raise HTTPException(status_code=404, detail="Parent category not found")
        if _is_descendant(db, payload.parent_id, category.id):
            raise HTTPException(status_code=400, detail="Category cannot be moved under its own subcategory")
    if payload.key:
        key = payload.key.strip().lower()
        if key != category.key and _key_exists(db, key, exclude_id=category.id):
            raise HTTPException(status_code=409, detail="Category with this key already exists")
        category.key = key
    if payload.label:
        category.label = payload.label
    if payload.icon:
        category.icon = payload.icon
    if payload.color:
        category.color = payload.color
    if "parent_id" in payload.model_fields_set:
        category.parent_id = payload.parent_id
    if payload.order is not None:
        category.order = payload.order
    db.add(category)
    db.commit()
    db.refresh(category)
    return CategoryResponse(category=category, message="Category updated successfully")


@router.delete("", response_model=MessageResponse)
@router.delete("/", response_model=MessageResponse)
def delete_category(id: Optional[int] = Query(None), db: Session = Depends(get_db)):
    if id is None:
        raise HTTPException(status_code=400, detail="Category ID is required")
    category = db.query(CategoryModel).filter(CategoryModel.id == id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    if db.query(CategoryModel.id).filter(CategoryModel.parent_id == id).first():
        raise HTTPException(
            status_code=400,
            detail="Cannot delete category with subcategories. Please delete subcategories first.",
        )
    if category_key_in_use(db, category):
        raise HTTPException(status_code=400, detail="Cannot delete category that is being used by articles")
    db.delete(category)
    db.commit()
    return MessageResponse(message="Category deleted successfully")

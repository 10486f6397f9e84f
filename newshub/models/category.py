from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from newshub.db.session import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, index=True, nullable=False)
    label = Column(String(255), nullable=False)
    icon = Column(String(100), nullable=False, default="newspaper")
    color = Column(String(32), nullable=False, default="#6366f1")
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    parent = relationship("Category", remote_side=[id])

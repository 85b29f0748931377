from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime

from storefront.models.base import Base, new_id


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(64), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text)
    image_url = Column(Text)
    image_alt = Column(Text)
    # Catalog display order, ascending
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    product_links = relationship("ProductCategory", back_populates="category", cascade="all, delete-orphan")


class ProductCategory(Base):
    __tablename__ = "product_categories"

    id = Column(String(64), primary_key=True, default=new_id)
    product_id = Column(String(64), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String(64), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    category = relationship("Category", back_populates="product_links")
    product = relationship("Product", back_populates="category_links")

from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from storefront.models.base import Base, new_id

STOCK_STATUSES = ("IN_STOCK", "OUT_OF_STOCK", "ON_BACKORDER")


class Product(Base):
    __tablename__ = "products"

    id = Column(String(64), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text)
    short_description = Column(Text)
    price = Column(Numeric(10, 2))
    regular_price = Column(Numeric(10, 2))
    sale_price = Column(Numeric(10, 2))
    on_sale = Column(Boolean, default=False, nullable=False)
    stock_status = Column(String(20), default="IN_STOCK", nullable=False)  # IN_STOCK, OUT_OF_STOCK, ON_BACKORDER
    stock_quantity = Column(Integer)
    # Rich text / HTML blocks shown on the product page
    measurements = Column(Text)
    materials = Column(Text)
    features = Column(Text)
    details = Column(Text)
    # Hosted Stripe checkout / payment link
    stripe_checkout_url = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    images = relationship("ProductImage", back_populates="product", cascade="all, delete-orphan")
    attributes = relationship("ProductAttribute", back_populates="product", cascade="all, delete-orphan")
    size_inventory = relationship("ProductSizeInventory", back_populates="product", cascade="all, delete-orphan")
    category_links = relationship("ProductCategory", back_populates="product", cascade="all, delete-orphan")


class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(String(64), primary_key=True, default=new_id)
    product_id = Column(String(64), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(Text, nullable=False)  # CDN URL
    alt_text = Column(Text)
    is_primary = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    product = relationship("Product", back_populates="images")


class ProductAttribute(Base):
    __tablename__ = "product_attributes"

    id = Column(String(64), primary_key=True, default=new_id)
    product_id = Column(String(64), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)  # e.g. "Size", "Color"
    options = Column(Text, nullable=False, default="[]")  # JSON array, e.g. ["S", "M", "L"]
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    product = relationship("Product", back_populates="attributes")


class ProductSizeInventory(Base):
    __tablename__ = "product_size_inventory"
    __table_args__ = (
        UniqueConstraint("product_id", "size", name="uq_product_size"),
    )

    id = Column(String(64), primary_key=True, default=new_id)
    product_id = Column(String(64), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    size = Column(String(50), nullable=False)  # e.g. "S", '28"', "One Size"
    quantity = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    product = relationship("Product", back_populates="size_inventory")

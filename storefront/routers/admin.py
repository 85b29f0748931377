import logging
from datetime import datetime
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Dict, List

from storefront.config import Settings, get_settings
from storefront.models.base import get_db
from storefront.models.product import Product, ProductAttribute, ProductSizeInventory
from storefront.schemas.admin import AdminOk, AdminProductUpdate, SizeInventoryIn, StripeLinkOut
from storefront.schemas.product import SizeListOut, SizeOut
from storefront.services.catalog import decode_options
from storefront.utils.security import require_admin
from storefront.utils.sizing import sort_sizes
from storefront.utils.stripe_links import StripeLinkError, create_payment_link

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

# Request field -> Product column
PRODUCT_FIELDS = {
    "name": "name",
    "slug": "slug",
    "price": "price",
    "regularPrice": "regular_price",
    "salePrice": "sale_price",
    "onSale": "on_sale",
    "stockStatus": "stock_status",
    "stockQuantity": "stock_quantity",
    "description": "description",
    "shortDescription": "short_description",
    "measurements": "measurements",
    "materials": "materials",
    "features": "features",
    "details": "details",
    "stripeCheckoutUrl": "stripe_checkout_url",
}
# Columns that cannot be cleared; an explicit null is treated as "not provided"
NOT_NULL_FIELDS = {"name", "slug", "onSale", "stockStatus"}
PRICE_COLUMNS = {"price", "regular_price", "sale_price"}


def collect_updates(payload: AdminProductUpdate) -> Dict[str, object]:
    updates = {}
    for field in payload.model_fields_set:
        column = PRODUCT_FIELDS.get(field)
        if column is None:
            continue
        value = getattr(payload, field)
        if value is None and field in NOT_NULL_FIELDS:
            continue
        if column in PRICE_COLUMNS and value is not None:
            value = Decimal(value)
        updates[column] = value
    return updates


def upsert_size_inventory(db: Session, product_id: str, entries: List[SizeInventoryIn]) -> None:
    """Overwrite quantities of existing (product, size) rows and insert the rest."""
    # Later entries for the same label win
    wanted = {e.size: e.quantity for e in entries}
    existing = {
        row.size: row
        for row in db.query(ProductSizeInventory)
        .filter(ProductSizeInventory.product_id == product_id, ProductSizeInventory.size.in_(list(wanted)))
        .all()
    }
    now = datetime.utcnow()
    for size, quantity in wanted.items():
        row = existing.get(size)
        if row is not None:
            row.quantity = quantity
            row.updated_at = now
        else:
            db.add(ProductSizeInventory(product_id=product_id, size=size, quantity=quantity))


@router.patch("/product/{id}", response_model=AdminOk)
def update_product(id: str, payload: AdminProductUpdate, db: Session = Depends(get_db)):
    updates = collect_updates(payload)
    sizes = payload.sizeInventory if "sizeInventory" in payload.model_fields_set else None
    if not updates and not sizes:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    product = db.query(Product).filter(Product.id == id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    for column, value in updates.items():
        setattr(product, column, value)
    product.updated_at = datetime.utcnow()
    if sizes:
        upsert_size_inventory(db, product.id, sizes)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Admin PATCH product %s rejected by constraint", id, exc_info=True)
        raise HTTPException(status_code=409, detail="Update conflicts with an existing product or size")
    except SQLAlchemyError:
        db.rollback()
        logger.error("Admin PATCH product %s failed", id, exc_info=True)
        raise HTTPException(status_code=500, detail="Update failed")
    logger.info("Admin updated product %s fields=%s sizes=%d", id, sorted(updates), len(sizes or []))
    return AdminOk()


@router.get("/product/{id}/sizes", response_model=SizeListOut)
def get_product_sizes(id: str, db: Session = Depends(get_db)):
    """Recorded inventory merged with the product's "Size" attribute options (missing ones at 0)."""
    try:
        product = db.query(Product.id).filter(Product.id == id).first()
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        rows = db.query(ProductSizeInventory).filter(ProductSizeInventory.product_id == id).all()
        size_attrs = (
            db.query(ProductAttribute)
            .filter(ProductAttribute.product_id == id)
            .all()
        )
    except SQLAlchemyError:
        logger.error("Admin GET product sizes failed for %s", id, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load sizes")

    merged: Dict[str, int] = {r.size: r.quantity for r in rows}
    for attr in size_attrs:
        if attr.name.strip().lower() != "size":
            continue
        for option in decode_options(attr):
            merged.setdefault(option, 0)
    sizes = sort_sizes([SizeOut(size=s, quantity=q) for s, q in merged.items()], key=lambda s: s.size)
    return SizeListOut(sizes=sizes)


@router.post("/product/{id}/stripe-link", response_model=StripeLinkOut)
def create_stripe_link(id: str, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    if not settings.STRIPE_SECRET_KEY:
        raise HTTPException(status_code=503, detail="Card payment is not available")
    product = db.query(Product).filter(Product.id == id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.price is None or Decimal(product.price) <= 0:
        raise HTTPException(status_code=400, detail="Product has no valid price")

    try:
        url = create_payment_link(settings.STRIPE_SECRET_KEY, product.name, Decimal(product.price))
    except StripeLinkError:
        logger.error("Stripe payment link creation failed for product %s", id, exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to create checkout link")

    product.stripe_checkout_url = url
    product.updated_at = datetime.utcnow()
    db.commit()
    return StripeLinkOut(checkoutUrl=url)

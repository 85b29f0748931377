import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional

from storefront.models.base import get_db
from storefront.models.product import Product, ProductSizeInventory
from storefront.schemas.category import CategoryOut
from storefront.schemas.product import ProductOut, SizeListOut, SizeOut
from storefront.services import catalog
from storefront.utils.sizing import sort_sizes

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/products", response_model=List[ProductOut], response_model_exclude_none=True)
def get_all_products(category: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """List products in display order, optionally restricted to one category slug."""
    return catalog.list_products(db, category_slug=category)


@router.get("/products/{slug}", response_model=ProductOut, response_model_exclude_none=True)
def get_product_by_slug(slug: str, db: Session = Depends(get_db)):
    product = catalog.get_product(db, slug)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/categories", response_model=List[CategoryOut], response_model_exclude_none=True)
def get_categories(db: Session = Depends(get_db)):
    return catalog.list_categories(db)


# Live size inventory for the product page; short cache so admin edits show up quickly
@router.get("/product/{slug}/sizes", response_model=SizeListOut)
def get_product_sizes(slug: str, response: Response, db: Session = Depends(get_db)):
    try:
        product = db.query(Product.id).filter(Product.slug == slug).first()
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        rows = (
            db.query(ProductSizeInventory.size, ProductSizeInventory.quantity)
            .filter(ProductSizeInventory.product_id == product.id)
            .order_by(ProductSizeInventory.size)
            .all()
        )
    except SQLAlchemyError:
        logger.error("GET product sizes failed for %s", slug, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load sizes")

    sizes = sort_sizes([SizeOut(size=r.size, quantity=r.quantity) for r in rows], key=lambda s: s.size)
    response.headers["Cache-Control"] = "public, max-age=60"
    return SizeListOut(sizes=sizes)

"""Catalog read layer: products, categories and their related rows.

Products are loaded with one wide outer join across images, categories,
attributes and size inventory, then folded into one accumulator per product.
Each related collection is keyed by its own id, so repeated rows produced by
the join fan-out collapse on insert.
"""
import json
import logging
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote, urlsplit, urlunsplit

from sqlalchemy.orm import Session

from storefront.models.category import Category, ProductCategory
from storefront.models.product import Product, ProductAttribute, ProductImage, ProductSizeInventory
from storefront.schemas.category import CategoryOut
from storefront.schemas.product import AttributeOut, CategoryRef, ImageOut, ProductOut, SizeOut
from storefront.utils.sizing import sort_sizes

logger = logging.getLogger(__name__)

_TEE_WORD = re.compile(r"\btees?\b")


# Helpers

def format_price(value) -> Optional[str]:
    if value is None:
        return None
    return f"${value}"


def encode_image_url(url: str) -> str:
    """Percent-encode path segments of a CDN URL unless it is already encoded."""
    if "%" in url:
        return url
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return quote(url, safe="/:?#[]@!$&'()*+,;=")
    path = "/".join(quote(segment, safe="") for segment in parts.path.split("/"))
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def decode_options(attr: ProductAttribute) -> List[str]:
    try:
        options = json.loads(attr.options or "[]")
    except ValueError:
        logger.warning("Attribute %s on product %s has malformed options: %r", attr.id, attr.product_id, attr.options)
        return []
    if not isinstance(options, list):
        return []
    return [str(o) for o in options]


# Display ordering

def product_type_rank(name: str) -> int:
    """Garment-type rank used for catalog order (lower first)."""
    n = name.lower()
    if "jacket" in n:
        return 0
    if "hoodie" in n:
        return 1
    if _TEE_WORD.search(n):
        return 2 if "logo" in n else 3
    if "denim" in n or "jean" in n:
        return 4
    if "beanie" in n:
        return 5
    if "mask" in n or "therma" in n:
        return 6
    return 7


def jacket_variant_rank(name: str) -> int:
    n = name.lower()
    if "black" in n and "white" in n:
        return 0
    if "blue" in n:
        return 1
    if "black" in n:
        return 2
    return 3


def product_sort_key(name: str) -> Tuple[int, int, str]:
    rank = product_type_rank(name)
    variant = jacket_variant_rank(name) if rank == 0 else 0
    return rank, variant, name.lower()


# Row folding

class _ProductAccumulator:
    __slots__ = ("product", "images", "categories", "attributes", "sizes")

    def __init__(self, product: Product):
        self.product = product
        self.images: Dict[str, ProductImage] = {}
        self.categories: Dict[str, Category] = {}
        self.attributes: Dict[str, ProductAttribute] = {}
        self.sizes: Dict[str, ProductSizeInventory] = {}


def _wide_query(db: Session):
    return (
        db.query(Product, ProductImage, Category, ProductAttribute, ProductSizeInventory)
        .outerjoin(ProductImage, ProductImage.product_id == Product.id)
        .outerjoin(ProductCategory, ProductCategory.product_id == Product.id)
        .outerjoin(Category, Category.id == ProductCategory.category_id)
        .outerjoin(ProductAttribute, ProductAttribute.product_id == Product.id)
        .outerjoin(ProductSizeInventory, ProductSizeInventory.product_id == Product.id)
    )


def group_rows(rows) -> List[_ProductAccumulator]:
    grouped: Dict[str, _ProductAccumulator] = {}
    for product, image, category, attribute, size in rows:
        entry = grouped.setdefault(product.id, _ProductAccumulator(product))
        if image is not None:
            entry.images.setdefault(image.id, image)
        if category is not None:
            entry.categories.setdefault(category.id, category)
        if attribute is not None:
            entry.attributes.setdefault(attribute.id, attribute)
        if size is not None:
            entry.sizes.setdefault(size.id, size)
    return list(grouped.values())


def _size_list(entry: _ProductAccumulator, attributes: List[AttributeOut]) -> List[SizeOut]:
    if entry.sizes:
        rows = [SizeOut(size=s.size, quantity=s.quantity) for s in entry.sizes.values()]
        return sort_sizes(rows, key=lambda s: s.size)
    # No live inventory: fall back to the "Size" attribute labels
    for attr in attributes:
        if attr.name.strip().lower() == "size":
            return sort_sizes([SizeOut(size=o) for o in attr.options], key=lambda s: s.size)
    return []


def to_product_out(entry: _ProductAccumulator) -> ProductOut:
    p = entry.product
    images = sorted(entry.images.values(), key=lambda i: i.sort_order or 0)
    primary = next((i for i in images if i.is_primary), images[0] if images else None)
    attributes = [
        AttributeOut(id=a.id, name=a.name, options=decode_options(a))
        for a in sorted(entry.attributes.values(), key=lambda a: a.name)
    ]
    categories = sorted(entry.categories.values(), key=lambda c: (c.sort_order or 0, c.name))
    return ProductOut(
        id=p.id,
        name=p.name,
        slug=p.slug,
        description=p.description or None,
        shortDescription=p.short_description or None,
        price=format_price(p.price),
        regularPrice=format_price(p.regular_price),
        salePrice=format_price(p.sale_price),
        onSale=bool(p.on_sale),
        stockStatus=p.stock_status or "IN_STOCK",
        stockQuantity=p.stock_quantity,
        measurements=p.measurements or None,
        materials=p.materials or None,
        features=p.features or None,
        details=p.details or None,
        stripeCheckoutUrl=p.stripe_checkout_url or None,
        image=ImageOut(sourceUrl=encode_image_url(primary.image_url), altText=primary.alt_text) if primary else None,
        galleryImages=[ImageOut(sourceUrl=encode_image_url(i.image_url), altText=i.alt_text) for i in images],
        categories=[CategoryRef(id=c.id, name=c.name, slug=c.slug) for c in categories],
        attributes=attributes,
        sizes=_size_list(entry, attributes),
    )


# Queries

def list_products(db: Session, category_slug: Optional[str] = None) -> List[ProductOut]:
    query = _wide_query(db)
    if category_slug:
        category = db.query(Category.id).filter(Category.slug == category_slug).first()
        if not category:
            return []
        product_ids = [
            r.product_id
            for r in db.query(ProductCategory.product_id).filter(ProductCategory.category_id == category.id).all()
        ]
        if not product_ids:
            return []
        query = query.filter(Product.id.in_(product_ids))
    entries = group_rows(query.all())
    entries.sort(key=lambda e: product_sort_key(e.product.name))
    return [to_product_out(e) for e in entries]


def get_product(db: Session, slug: str) -> Optional[ProductOut]:
    entries = group_rows(_wide_query(db).filter(Product.slug == slug).all())
    if not entries:
        return None
    return to_product_out(entries[0])


def list_categories(db: Session) -> List[CategoryOut]:
    rows = db.query(Category).order_by(Category.sort_order, Category.name).all()
    return [
        CategoryOut(
            id=c.id,
            name=c.name,
            slug=c.slug,
            description=c.description or None,
            image=ImageOut(sourceUrl=c.image_url, altText=c.image_alt) if c.image_url else None,
            sortOrder=c.sort_order or 0,
        )
        for c in rows
    ]


def get_product_stripe_url(db: Session, product_id: str) -> Optional[str]:
    row = db.query(Product.stripe_checkout_url).filter(Product.id == product_id).first()
    return row.stripe_checkout_url if row and row.stripe_checkout_url else None

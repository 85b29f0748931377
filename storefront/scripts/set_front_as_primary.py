"""Make the front-view image the primary image of every product.

An image counts as the front view when its alt text or URL mentions "front".
It moves to sort order 0; the remaining images keep their relative order.

Usage:
    python -m storefront.scripts.set_front_as_primary
"""
import logging
from typing import Tuple

from sqlalchemy.orm import Session

from storefront.models.product import Product, ProductImage
from storefront.scripts._common import open_session

logger = logging.getLogger(__name__)


def is_front_image(image: ProductImage) -> bool:
    return "front" in (image.alt_text or "").lower() or "front" in (image.image_url or "").lower()


def set_front_as_primary(db: Session) -> Tuple[int, int]:
    """Returns (updated, skipped)."""
    updated = skipped = 0
    for product in db.query(Product).all():
        images = (
            db.query(ProductImage)
            .filter(ProductImage.product_id == product.id)
            .order_by(ProductImage.sort_order)
            .all()
        )
        front = next((img for img in images if is_front_image(img)), None)
        if front is None or (front.is_primary and front.sort_order == 0):
            skipped += 1
            continue

        front.is_primary = True
        front.sort_order = 0
        position = 1
        for img in images:
            if img is front:
                continue
            img.is_primary = False
            img.sort_order = position
            position += 1
        logger.info("%s: primary image -> %s", product.name, front.image_url)
        updated += 1
    db.commit()
    return updated, skipped


def main():
    _, db = open_session()
    try:
        updated, skipped = set_front_as_primary(db)
    finally:
        db.close()
    logger.info("Products updated: %d, skipped: %d", updated, skipped)


if __name__ == "__main__":
    main()

"""Seed size inventory rows for every product from its garment type.

Existing (product, size) rows are left alone; new labels start at quantity 1.

Usage:
    python -m storefront.scripts.add_product_sizes
"""
import logging
import re
from typing import List, Tuple

from sqlalchemy.orm import Session

from storefront.models.product import Product, ProductSizeInventory
from storefront.scripts._common import open_session

logger = logging.getLogger(__name__)

SIZES_BY_TYPE = {
    "tee": ["XS", "S", "M", "L", "XL", "2XL", "3XL"],
    "hoodie": ["XS", "S", "M", "L", "XL", "XXL"],
    "jacket": ["S", "M", "L", "XL"],
    "jeans": ['28"', '29"', '30"', '31"', '32"', '33"', '34"', '36"', '38"'],
    "beanie": ["One Size"],
    "mask": ["One Size"],
}
DEFAULT_QUANTITY = 1
_TEE_WORD = re.compile(r"\btees?\b")


def sizes_for_product(name: str) -> List[str]:
    n = name.lower()
    if "jacket" in n:
        return list(SIZES_BY_TYPE["jacket"])
    if "hoodie" in n:
        return list(SIZES_BY_TYPE["hoodie"])
    if _TEE_WORD.search(n) or "shirt" in n:
        return list(SIZES_BY_TYPE["tee"])
    if "jeans" in n or "denim" in n:
        return list(SIZES_BY_TYPE["jeans"])
    if "beanie" in n:
        return list(SIZES_BY_TYPE["beanie"])
    if "mask" in n or "therma" in n:
        return list(SIZES_BY_TYPE["mask"])
    return list(SIZES_BY_TYPE["tee"])


def add_product_sizes(db: Session) -> Tuple[int, int]:
    """Returns (added, skipped)."""
    added = skipped = 0
    for product in db.query(Product).all():
        existing = {
            r.size
            for r in db.query(ProductSizeInventory.size).filter(ProductSizeInventory.product_id == product.id).all()
        }
        for size in sizes_for_product(product.name):
            if size in existing:
                skipped += 1
                continue
            db.add(ProductSizeInventory(product_id=product.id, size=size, quantity=DEFAULT_QUANTITY))
            added += 1
    db.commit()
    return added, skipped


def main():
    _, db = open_session()
    try:
        added, skipped = add_product_sizes(db)
    finally:
        db.close()
    logger.info("Size rows added: %d, already present: %d", added, skipped)


if __name__ == "__main__":
    main()

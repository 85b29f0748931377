"""Set category sort order for catalog display.

Order: jackets/outerwear, hoodies, logo tees, other tees, denim, beanies,
masks. Categories are matched by keyword against name or slug; anything
unmatched goes to the end.

Usage:
    python -m storefront.scripts.update_category_order
"""
import logging
from datetime import datetime
from typing import Tuple

from sqlalchemy.orm import Session

from storefront.models.category import Category
from storefront.scripts._common import open_session

logger = logging.getLogger(__name__)

UNMATCHED_SORT_ORDER = 99

# First match wins, so more specific identifiers come before broader ones
CATEGORY_ORDER = (
    ("outerwear", 1),
    ("jacket", 1),
    ("hoodie", 2),
    ("logo tee", 3),
    ("logo-tee", 3),
    ("logotee", 3),
    ("tees", 3),
    ("tee", 4),
    ("other tee", 4),
    ("other-tee", 4),
    ("othertee", 4),
    ("bottoms", 5),
    ("denim", 5),
    ("jeans", 5),
    ("beanie", 6),
    ("accessories", 6),
    ("mask", 7),
    ("therma", 7),
)


def sort_order_for(name: str, slug: str) -> int:
    name, slug = name.lower(), slug.lower()
    for identifier, order in CATEGORY_ORDER:
        if identifier in name or identifier in slug:
            return order
    return UNMATCHED_SORT_ORDER


def update_category_order(db: Session) -> Tuple[int, int]:
    """Apply the sort order table; returns (updated, unchanged)."""
    updated = unchanged = 0
    for category in db.query(Category).all():
        order = sort_order_for(category.name, category.slug)
        if category.sort_order == order:
            unchanged += 1
            continue
        logger.info('Updated "%s" (%s) -> sortOrder %d', category.name, category.slug, order)
        category.sort_order = order
        category.updated_at = datetime.utcnow()
        updated += 1
    db.commit()
    return updated, unchanged


def main():
    _, db = open_session()
    try:
        updated, unchanged = update_category_order(db)
    finally:
        db.close()
    logger.info("Categories updated: %d, unchanged: %d", updated, unchanged)


if __name__ == "__main__":
    main()

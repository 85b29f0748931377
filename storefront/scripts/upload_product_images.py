"""Bulk upload product images from a local directory to the CDN.

WebP files are preferred: a PNG is skipped when a WebP with the same stem
exists. With ``--create-products`` each file also becomes (or is attached to)
a product whose slug and name derive from the filename.

Usage:
    python -m storefront.scripts.upload_product_images [--dir public/products/images] [--create-products]
"""
import argparse
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.models.product import Product, ProductImage
from storefront.scripts._common import open_session
from storefront.utils.storage import IMAGE_EXTENSIONS, BunnyError, BunnyStorage

logger = logging.getLogger(__name__)

DEFAULT_DIR = Path("public") / "products" / "images"


@dataclass
class UploadResult:
    filename: str
    success: bool
    cdn_url: Optional[str] = None
    product_id: Optional[str] = None
    error: Optional[str] = None


def filename_to_slug(filename: str) -> str:
    """"Cool T-Shirt.jpg" -> "cool-t-shirt"."""
    return re.sub(r"[^a-z0-9]+", "-", Path(filename).stem.lower()).strip("-")


def filename_to_name(filename: str) -> str:
    """"cool_t-shirt.jpg" -> "Cool T Shirt"."""
    spaced = re.sub(r"[-_]", " ", Path(filename).stem)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), spaced)


def select_image_files(directory: Path) -> List[Path]:
    files = sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS)
    non_png = [p for p in files if p.suffix.lower() != ".png"]
    stems = {p.stem.lower() for p in non_png}
    return non_png + [p for p in files if p.suffix.lower() == ".png" and p.stem.lower() not in stems]


def attach_image(db: Session, filename: str, cdn_url: str) -> str:
    """Find or create the product for ``filename`` and add ``cdn_url`` as its primary image."""
    slug = filename_to_slug(filename)
    name = filename_to_name(filename)
    product = db.query(Product).filter(Product.slug == slug).first()
    if product is None:
        product = Product(name=name, slug=slug, stock_status="IN_STOCK")
        db.add(product)
        db.flush()
    db.add(ProductImage(product_id=product.id, image_url=cdn_url, alt_text=name, is_primary=True, sort_order=0))
    return product.id


def upload_directory(
    storage: BunnyStorage,
    directory: Path,
    db: Optional[Session] = None,
    prefix: str = "products/images",
) -> List[UploadResult]:
    """Upload every selected image; when ``db`` is given, also attach it to a product."""
    results = []
    for path in select_image_files(directory):
        try:
            cdn_url = storage.upload(path, f"{prefix}/{path.name}")
        except (BunnyError, OSError) as e:
            logger.error("Failed to upload %s: %s", path.name, e)
            results.append(UploadResult(filename=path.name, success=False, error=str(e)))
            continue
        product_id = None
        if db is not None:
            product_id = attach_image(db, path.name, cdn_url)
            db.commit()
        results.append(UploadResult(filename=path.name, success=True, cdn_url=cdn_url, product_id=product_id))
    return results


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--dir", type=Path, default=DEFAULT_DIR, help="directory of images to upload")
    parser.add_argument("--create-products", action="store_true", help="create/attach products by filename")
    args = parser.parse_args(argv)

    settings, db = open_session()
    try:
        storage = BunnyStorage.from_settings(settings)
        results = upload_directory(storage, args.dir, db if args.create_products else None)
    finally:
        db.close()

    failed = [r for r in results if not r.success]
    logger.info("Uploaded %d image(s), %d failed", len(results) - len(failed), len(failed))
    for r in failed:
        logger.info("  %s: %s", r.filename, r.error)
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())

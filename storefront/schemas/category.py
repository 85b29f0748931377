from pydantic import BaseModel
from typing import Optional

from storefront.schemas.product import ImageOut


class CategoryOut(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[ImageOut] = None
    sortOrder: int = 0

from pydantic import BaseModel
from typing import List, Literal, Optional

StockStatus = Literal["IN_STOCK", "OUT_OF_STOCK", "ON_BACKORDER"]


class ImageOut(BaseModel):
    sourceUrl: str
    altText: Optional[str] = None


class CategoryRef(BaseModel):
    id: str
    name: str
    slug: str


class AttributeOut(BaseModel):
    id: str
    name: str
    options: List[str] = []


class SizeOut(BaseModel):
    size: str
    # None when the label comes from the "Size" attribute rather than inventory
    quantity: Optional[int] = None


class SizeListOut(BaseModel):
    sizes: List[SizeOut]


class ProductOut(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    shortDescription: Optional[str] = None
    price: Optional[str] = None
    regularPrice: Optional[str] = None
    salePrice: Optional[str] = None
    onSale: bool = False
    stockStatus: StockStatus = "IN_STOCK"
    stockQuantity: Optional[int] = None
    measurements: Optional[str] = None
    materials: Optional[str] = None
    features: Optional[str] = None
    details: Optional[str] = None
    stripeCheckoutUrl: Optional[str] = None
    image: Optional[ImageOut] = None
    galleryImages: List[ImageOut] = []
    categories: List[CategoryRef] = []
    attributes: List[AttributeOut] = []
    sizes: List[SizeOut] = []

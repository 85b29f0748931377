import math
from decimal import Decimal, InvalidOperation
from pydantic import BaseModel, ConfigDict, field_validator
from typing import List, Optional

from storefront.schemas.product import StockStatus


def normalize_price(value) -> Optional[str]:
    """Decimal string for a price given as text or number; blank/null clears it."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("price must be a number or numeric string")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    elif not isinstance(value, (int, float, Decimal)):
        raise ValueError("price must be a number or numeric string")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"invalid price: {value!r}")
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"invalid price: {value!r}")
    return str(amount)


class SizeInventoryIn(BaseModel):
    size: str
    quantity: int = 0

    @field_validator("size")
    @classmethod
    def _strip_size(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("size label cannot be empty")
        return v

    @field_validator("quantity", mode="before")
    @classmethod
    def _floor_quantity(cls, v):
        if v is None:
            return 0
        if isinstance(v, bool):
            raise ValueError("quantity must be a number")
        try:
            number = float(v)
        except (TypeError, ValueError):
            raise ValueError("quantity must be a number")
        if not math.isfinite(number):
            raise ValueError("quantity must be finite")
        return max(0, math.floor(number))


class AdminProductUpdate(BaseModel):
    """Partial product update; keys that are absent are left untouched."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    slug: Optional[str] = None
    price: Optional[str] = None
    regularPrice: Optional[str] = None
    salePrice: Optional[str] = None
    onSale: Optional[bool] = None
    stockStatus: Optional[StockStatus] = None
    stockQuantity: Optional[int] = None
    description: Optional[str] = None
    shortDescription: Optional[str] = None
    measurements: Optional[str] = None
    materials: Optional[str] = None
    features: Optional[str] = None
    details: Optional[str] = None
    stripeCheckoutUrl: Optional[str] = None
    sizeInventory: Optional[List[SizeInventoryIn]] = None

    @field_validator("name", "slug")
    @classmethod
    def _non_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("price", "regularPrice", "salePrice", mode="before")
    @classmethod
    def _price(cls, v):
        return normalize_price(v)

    @field_validator("stripeCheckoutUrl")
    @classmethod
    def _blank_url_is_null(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None


class AdminOk(BaseModel):
    ok: bool = True


class StripeLinkOut(BaseModel):
    ok: bool = True
    checkoutUrl: str

# schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ShopType = Literal["retail", "service", "both"]
SortOption = Literal["newest", "price_asc", "price_desc", "name_asc"]
ShopSortOption = Literal["newest", "name_asc"]


class Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ShopSummary(Record):
    id: str
    name: str
    name_ml: Optional[str] = None
    phone_number: Optional[str] = None
    whatsapp_number: Optional[str] = None
    logo_url: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ShopRecord(ShopSummary):
    description: Optional[str] = None
    shop_type: ShopType
    is_verified: bool
    category_id: Optional[str] = None
    cover_image_url: Optional[str] = None
    address_line1: Optional[str] = None
    state: Optional[str] = None
    district: Optional[str] = None
    town: Optional[str] = None
    is_temporarily_closed: bool = False
    hide_shop_during_closure: bool = False
    closure_reason: Optional[str] = None
    closure_end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CatalogItem(Record):
    id: str
    name: str
    name_ml: Optional[str] = None
    description: Optional[str] = None
    description_ml: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    image_urls: List[str] = Field(default_factory=list)
    category_id: Optional[str] = None
    shop_id: str
    created_at: Optional[datetime] = None
    shop: Optional[ShopSummary] = None

    @field_validator("image_urls", mode="before")
    @classmethod
    def _none_is_empty(cls, v):
        return v or []


class ProductRecord(CatalogItem):
    mrp: Decimal = Field(..., ge=0)
    stock: Optional[int] = None
    brand_name: Optional[str] = None
    unit: Optional[str] = None


class ServiceRecord(CatalogItem):
    duration_minutes: Optional[int] = None


class CategoryRecord(Record):
    id: str
    name: str
    name_ml: Optional[str] = None
    image_url: Optional[str] = None


class ListingQuery(BaseModel):
    shop_id: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    search: Optional[str] = None
    category_id: Optional[str] = None
    sort_by: SortOption = "newest"
    state: Optional[str] = None
    district: Optional[str] = None
    town: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ShopQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    search: Optional[str] = None
    category_id: Optional[str] = None
    sort_by: ShopSortOption = "newest"
    state: Optional[str] = None
    district: Optional[str] = None
    town: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ProductPage(BaseModel):
    items: List[ProductRecord] = Field(default_factory=list)
    page: int = 1
    has_more: bool = False


class ServicePage(BaseModel):
    items: List[ServiceRecord] = Field(default_factory=list)
    page: int = 1
    has_more: bool = False


class ShopPage(BaseModel):
    items: List[ShopRecord] = Field(default_factory=list)
    page: int = 1
    has_more: bool = False


# Orders are snapshots; their product/shop refs are read as-is
class OrderShop(Record):
    name: str
    name_ml: Optional[str] = None
    logo_url: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None


class OrderProduct(Record):
    id: str
    name: str
    name_ml: Optional[str] = None
    price: Decimal
    image_urls: List[str] = Field(default_factory=list)

    @field_validator("image_urls", mode="before")
    @classmethod
    def _none_is_empty(cls, v):
        return v or []


class OrderItemRecord(Record):
    quantity: int = Field(..., ge=0)
    total: Decimal
    product: Optional[OrderProduct] = None


class OrderRecord(Record):
    id: str
    total_amount: Decimal
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    created_at: datetime
    status: str
    shop: Optional[OrderShop] = None
    order_items: List[OrderItemRecord] = Field(default_factory=list, validation_alias="items")
    bill_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class BillLink(Record):
    """Just enough of a bill to correlate it with an order."""
    id: str
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="meta")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class BillShop(Record):
    name: str
    phone_number: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None


class BillItemRecord(Record):
    name: str
    quantity: int
    price: Decimal
    total: Decimal


class BillRecord(Record):
    id: str
    bill_number: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    subtotal: Decimal
    discount: Decimal = Decimal("0")
    delivery_charge: Optional[Decimal] = None
    total: Decimal
    paid_amount: Optional[Decimal] = None
    payment_status: Optional[str] = None
    issued_at: Optional[datetime] = None
    shop: Optional[BillShop] = None
    items: List[BillItemRecord] = Field(default_factory=list)

    @property
    def balance_due(self) -> Decimal:
        return self.total - (self.paid_amount or Decimal("0"))


class AddressIn(BaseModel):
    name: str
    recipient_name: str
    phone_number: str
    house_no: str
    road_name: str
    landmark: Optional[str] = None
    city: str
    state: str
    country: str
    pincode: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_default: bool = False


class AddressOut(AddressIn):
    id: str
    user_id: str
    address_text: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileOut(Record):
    id: str
    display_name: Optional[str] = None
    phone_number: Optional[str] = None
    avatar_url: Optional[str] = None


class UploadTicket(BaseModel):
    upload_url: str = Field(..., alias="uploadUrl", min_length=1)
    public_url: str = Field(..., alias="publicUrl", min_length=1)
    object_key: Optional[str] = Field(None, alias="objectKey")


class UploadResult(BaseModel):
    public_url: str
    object_key: Optional[str] = None

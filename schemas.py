"""
Domain Schemas

Pydantic models for the shapes the storefront works with. Each adapter maps
flat record-store rows (suffixed `_c` fields) into these models.

Models serialize with camelCase aliases (productId, orderNumber, ...) because
that is what the frontend consumes; attribute names stay snake_case and both
spellings are accepted on input.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DomainModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Cart ----------

class CartItem(DomainModel):
    """
    A line in the shopper's cart
    Table: "cart_item_c"
    """
    id: int
    product_id: int = 0
    product_name: Optional[str] = None
    price: float = 0.0
    quantity: int = 1
    selected_size: str = ""
    selected_color: str = ""


class CartItemIn(DomainModel):
    product_id: int
    product_name: str = ""
    price: float = Field(0.0, ge=0)
    quantity: int = 1
    selected_size: str = ""
    selected_color: str = ""


class QuantityIn(DomainModel):
    quantity: int


# ---------- Orders ----------

class TrackingEvent(DomainModel):
    model_config = ConfigDict(extra="allow")

    date: Optional[str] = None
    status: Optional[str] = None
    location: Optional[str] = None


class Tracking(DomainModel):
    """Stored as JSON text; keys beyond the declared ones are kept as-is."""
    model_config = ConfigDict(extra="allow")

    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    events: List[TrackingEvent] = Field(default_factory=list)


class Order(DomainModel):
    """
    A placed order
    Table: "order_c"
    """
    id: int
    order_number: Optional[str] = None
    order_date: Optional[str] = None
    status: Optional[str] = None
    total: float = 0.0
    total_amount: Optional[float] = None
    items: List[Any] = Field(default_factory=list)
    shipping_address: Dict[str, Any] = Field(default_factory=dict)
    tracking: Tracking = Field(default_factory=Tracking)


class OrderIn(DomainModel):
    order_number: Optional[str] = None
    total_amount: float = 0.0
    items: List[Any] = Field(default_factory=list)
    shipping_address: Dict[str, Any] = Field(default_factory=dict)


class OrderFilters(DomainModel):
    status: Optional[str] = None
    search: Optional[str] = None


class StatusIn(DomainModel):
    status: str = Field(..., min_length=1)


class PaymentIn(DomainModel):
    amount: float = 0.0
    method: Optional[str] = None
    order_number: Optional[str] = None


class Payment(DomainModel):
    transaction_id: str
    status: str = "completed"


# ---------- Products ----------

SortBy = Literal["price-low", "price-high", "name"]


class Product(DomainModel):
    """
    A catalog product
    Table: "product_c"
    """
    id: int
    name: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    description: Optional[str] = None
    price: float = 0.0
    stock: int = 0
    featured: bool = False
    images: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)


class ProductFilters(DomainModel):
    category: Optional[str] = None
    search: Optional[str] = None
    sort_by: Optional[SortBy] = None
    sizes: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    min_price: Optional[float] = None
    max_price: Optional[float] = None


# ---------- Wishlist ----------

class WishlistIn(DomainModel):
    product_id: int

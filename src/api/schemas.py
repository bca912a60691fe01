"""
Request and response models for the SkyCart API.

Every payload crossing the HTTP boundary is validated against one of these
before the rest of the program sees it. Money is carried as ``Decimal`` and
written back to the wire as a JSON number.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

Money = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]

Role = Literal["user", "admin"]

PRODUCT_CATEGORIES: Tuple[str, ...] = (
    "Electronics",
    "Mobile Phones",
    "Laptops",
    "Accessories",
    "Headphones",
    "Food",
    "Books",
    "Clothes/Shoes",
    "Beauty/Health",
    "Sports",
    "Outdoor",
    "Home",
)


class OrderStatus(str, Enum):
    PROCESSING = "Processing"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class Schema(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ---------------------------
# Users & Auth
# ---------------------------


class User(Schema):
    id: str
    name: str
    email: str
    avatar: Optional[str] = None
    role: Role = "user"
    created_at: Optional[datetime] = None


class AuthResponse(Schema):
    success: bool = True
    token: str
    user: User


class MessageResponse(Schema):
    success: bool = True
    message: str = ""


class UserListResponse(Schema):
    success: bool = True
    count: int = 0
    total: int = 0
    page: int = 1
    pages: int = 1
    users: List[User] = Field(default_factory=list)


class LoginRequest(Schema):
    email: str
    password: str


class RegisterRequest(Schema):
    name: str
    email: str
    password: str


# ---------------------------
# Products & Reviews
# ---------------------------


class ProductImage(Schema):
    image: str


class ProductReview(Schema):
    user: str
    name: Optional[str] = None
    rating: float = Field(ge=0, le=5)
    comment: str = ""


class Product(Schema):
    id: str
    name: str
    price: Money = Field(ge=0)
    description: str = ""
    ratings: float = 0
    images: List[ProductImage] = Field(default_factory=list)
    category: str = ""
    seller: str = ""
    stock: int = Field(default=0, ge=0)
    num_of_reviews: int = 0
    reviews: List[ProductReview] = Field(default_factory=list)
    user: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def image(self) -> str:
        """First image reference, or an empty string."""
        return self.images[0].image if self.images else ""


class ProductListResponse(Schema):
    success: bool = True
    count: int = 0
    total: int = 0
    page: int = 1
    pages: int = 1
    results_per_page: int = 10
    products: List[Product] = Field(default_factory=list)


class ProductFilters(Schema):
    """Query filters of the product listing, mapped to the API's names."""

    model_config = ConfigDict(frozen=True)

    keyword: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    min_rating: Optional[float] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.keyword:
            params["keyword"] = self.keyword
        if self.category:
            params["category"] = self.category
        if self.min_price is not None:
            params["price[gte]"] = str(self.min_price)
        if self.max_price is not None:
            params["price[lte]"] = str(self.max_price)
        if self.min_rating is not None:
            params["ratings[gte]"] = str(self.min_rating)
        params["page"] = str(self.page)
        params["resPerPage"] = str(self.limit)
        return params


class ProductInput(Schema):
    """Admin create/update payload."""

    name: str = Field(min_length=3)
    price: Money = Field(ge=0)
    description: str = Field(min_length=10)
    category: str = Field(min_length=1)
    seller: str = Field(min_length=1)
    stock: int = Field(ge=0)
    images: List[ProductImage] = Field(min_length=1)


class ReviewInput(Schema):
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=5)


# ---------------------------
# Orders & Payments
# ---------------------------


class ShippingInfo(Schema):
    model_config = ConfigDict(frozen=True)

    address: str
    city: str
    country: str
    postal_code: str
    phone_no: str


class OrderItem(Schema):
    product: str
    name: str
    price: Money
    quantity: int = Field(ge=1)
    image: str = ""


class PaymentInfo(Schema):
    id: str
    status: str


class Order(Schema):
    id: str
    user: Optional[str] = None
    shipping_info: ShippingInfo
    order_items: List[OrderItem] = Field(default_factory=list)
    items_price: Money = Decimal("0")
    tax_price: Money = Decimal("0")
    shipping_price: Money = Decimal("0")
    total_price: Money = Decimal("0")
    payment_info: Optional[PaymentInfo] = None
    paid_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    order_status: OrderStatus = OrderStatus.PROCESSING
    created_at: Optional[datetime] = None

    @property
    def cancellable(self) -> bool:
        return self.order_status in (OrderStatus.PROCESSING, OrderStatus.CONFIRMED)


class OrderCreate(Schema):
    shipping_info: ShippingInfo
    order_items: List[OrderItem]
    items_price: Money
    tax_price: Money
    shipping_price: Money
    payment_info: PaymentInfo


class OrderListResponse(Schema):
    success: bool = True
    count: int = 0
    total: int = 0
    page: int = 1
    pages: int = 1
    orders: List[Order] = Field(default_factory=list)


class SalesStats(Schema):
    total_orders: int = 0
    total_sales: Money = Decimal("0")
    average_order_value: Money = Decimal("0")
    delivered_orders: int = 0
    processing_orders: int = 0
    cancelled_orders: int = 0


class PaymentIntentResponse(Schema):
    success: bool = True
    client_secret: str
    payment_intent_id: str


class StripeKeyResponse(Schema):
    stripe_api_key: str

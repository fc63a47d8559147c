from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# Accounts
class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    phone: Optional[str] = None
    address: Optional[str] = None
    role: str = Field("customer", pattern="^(customer|seller)$", description="customer or seller")


class UserOut(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: str
    account_status: str

    model_config = ConfigDict(from_attributes=True)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserOut


# Catalog
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None


class CategoryOut(CategoryCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    category_id: Optional[int] = None


class ProductCreate(ProductBase):
    seller_id: Optional[int] = Field(None, description="Only honoured for admins")


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    category_id: Optional[int] = None


class ProductOut(ProductBase):
    id: int
    seller_id: int

    model_config = ConfigDict(from_attributes=True)


# Orders
class OrderItemCreate(BaseModel):
    """Schema for creating order items - only product_id and quantity needed"""

    product_id: int = Field(..., gt=0, description="Product ID")
    quantity: int = Field(..., gt=0, description="Product quantity")


class OrderCreate(BaseModel):
    # An empty list is rejected by the placement handler, not by validation
    items: List[OrderItemCreate] = Field(default_factory=list)
    delivery_address: str = Field(..., min_length=1)
    payment_method: str = Field("cod", min_length=1, max_length=30)


class OrderUpdate(BaseModel):
    delivery_address: Optional[str] = Field(None, min_length=1)
    items: List[OrderItemCreate] = Field(default_factory=list)


class StatusUpdate(BaseModel):
    status: str = Field(..., description="Pending, Processing, Shipped, Delivered or Cancelled")
    note: Optional[str] = None


class HistoryNote(BaseModel):
    note: str = Field(..., min_length=1)
    status: Optional[str] = None


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    seller_id: int
    product_name: str
    quantity: int
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class HistoryEntryOut(BaseModel):
    status: str
    actor: str
    note: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    customer_id: int
    total_amount: Decimal
    status: str
    delivery_address: str
    payment_method: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = []
    history: List[HistoryEntryOut] = []

    model_config = ConfigDict(from_attributes=True)


class SellerOrderOut(BaseModel):
    """An order as one seller sees it: only their lines, never the full total."""

    id: int
    customer_id: int
    status: str
    delivery_address: str
    payment_method: str
    created_at: Optional[datetime] = None
    items: List[OrderItemOut] = []
    seller_subtotal: Decimal


class OrderListResponse(BaseModel):
    orders: List[OrderOut]
    count: int


class SellerOrderListResponse(BaseModel):
    orders: List[SellerOrderOut]
    count: int


# Stats
class CustomerStats(BaseModel):
    total: int
    open: int
    delivered: int


class SellerStats(BaseModel):
    products: int
    in_stock: int
    out_of_stock: int
    orders: int


class StatusBucket(BaseModel):
    status: str
    count: int
    total_amount: Decimal


class AdminOrderStats(BaseModel):
    by_status: List[StatusBucket]
    total_orders: int

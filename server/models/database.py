"""SQLModel tables for business data.

Every row carries the owning user's id and every query filters on it.
"""

import datetime as dt
from typing import Optional, Dict, Any
from sqlmodel import SQLModel, Field, Column, DateTime, JSON
from sqlalchemy import func

from models.auth import new_id, utcnow

PRODUCT_STATUSES = ("active", "inactive", "discontinued")
CUSTOMER_STATUSES = ("active", "inactive")
TRANSACTION_TYPES = ("income", "expense")
LOW_STOCK_THRESHOLD = 5


def _iso(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class BusinessProfile(SQLModel, table=True):
    """One profile per user; feeds the marketing templates."""

    __tablename__ = "business_profiles"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True, max_length=36)
    business_name: str = Field(max_length=255)
    business_type: Optional[str] = Field(default=None, max_length=100)
    industry: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=255)
    target_audience: Optional[str] = Field(default=None, max_length=1000)
    monthly_revenue: Optional[float] = Field(default=None)
    employee_count: int = Field(default=1)
    established_date: Optional[dt.date] = Field(default=None)
    created_at: dt.datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), server_default=func.now())
    )
    updated_at: dt.datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), onupdate=func.now())
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "businessName": self.business_name,
            "businessType": self.business_type,
            "industry": self.industry,
            "location": self.location,
            "targetAudience": self.target_audience,
            "monthlyRevenue": self.monthly_revenue,
            "employeeCount": self.employee_count,
            "establishedDate": self.established_date.isoformat() if self.established_date else None,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Customer(SQLModel, table=True):
    """Customer record."""

    __tablename__ = "customers"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    name: str = Field(index=True, max_length=255)
    email: Optional[str] = Field(default=None, index=True, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = Field(default=None, max_length=2000)
    status: str = Field(default="active", max_length=20)
    created_at: dt.datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), server_default=func.now())
    )
    updated_at: dt.datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), onupdate=func.now())
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "notes": self.notes,
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Product(SQLModel, table=True):
    """Product catalogue entry."""

    __tablename__ = "products"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    name: str = Field(index=True, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    sku: Optional[str] = Field(default=None, index=True, max_length=100)
    price: float = Field(ge=0)
    cost: Optional[float] = Field(default=None)
    category: Optional[str] = Field(default=None, index=True, max_length=100)
    stock_quantity: int = Field(default=0)
    unit: str = Field(default="piece", max_length=50)
    status: str = Field(default="active", max_length=20)
    created_at: dt.datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), server_default=func.now())
    )
    updated_at: dt.datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), onupdate=func.now())
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "sku": self.sku,
            "price": self.price,
            "cost": self.cost,
            "category": self.category,
            "stockQuantity": self.stock_quantity,
            "unit": self.unit,
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Transaction(SQLModel, table=True):
    """Income or expense entry; the source of every dashboard figure."""

    __tablename__ = "transactions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    amount: float
    type: str = Field(index=True, max_length=20)
    category: Optional[str] = Field(default=None, index=True, max_length=100)
    description: str = Field(max_length=2000)
    date: dt.date = Field(index=True)
    payment_method: Optional[str] = Field(default=None, max_length=100)
    customer_id: Optional[str] = Field(default=None, foreign_key="customers.id", max_length=36)
    product_id: Optional[str] = Field(default=None, foreign_key="products.id", max_length=36)
    meta: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column("metadata", JSON))
    created_at: dt.datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), server_default=func.now())
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "amount": self.amount,
            "type": self.type,
            "category": self.category,
            "description": self.description,
            "date": self.date.isoformat(),
            "paymentMethod": self.payment_method,
            "customerId": self.customer_id,
            "productId": self.product_id,
            "metadata": self.meta,
            "createdAt": _iso(self.created_at),
        }

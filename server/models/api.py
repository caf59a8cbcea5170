"""Request bodies for the REST API.

Clients send camelCase keys, the services take snake_case field names.
"""

import datetime as dt
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def changes(self) -> Dict[str, Any]:
        """Fields the client sent with a value."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class ProfileCreate(ApiModel):
    business_name: str = Field(min_length=1, max_length=255)
    business_type: Optional[str] = None
    industry: Optional[str] = None
    location: Optional[str] = None
    target_audience: Optional[str] = None
    monthly_revenue: Optional[float] = Field(default=None, ge=0)
    employee_count: Optional[int] = Field(default=None, ge=1)
    established_date: Optional[dt.date] = None


class ProfileUpdate(ApiModel):
    business_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    business_type: Optional[str] = None
    industry: Optional[str] = None
    location: Optional[str] = None
    target_audience: Optional[str] = None
    monthly_revenue: Optional[float] = Field(default=None, ge=0)
    employee_count: Optional[int] = Field(default=None, ge=1)
    established_date: Optional[dt.date] = None


class ProductCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    sku: Optional[str] = None
    price: float = Field(ge=0)
    cost: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    status: Optional[str] = None


class ProductUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    sku: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    cost: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    status: Optional[str] = None


class CustomerCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None


class CustomerUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None


class TransactionCreate(ApiModel):
    amount: float = Field(gt=0)
    type: Literal["income", "expense"]
    category: Optional[str] = None
    description: str = Field(min_length=1, max_length=2000)
    date: dt.date
    payment_method: Optional[str] = None
    customer_id: Optional[str] = None
    product_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_fields(self) -> Dict[str, Any]:
        data = self.model_dump(exclude={"metadata"})
        data["meta"] = self.metadata
        return data


class TransactionBatch(ApiModel):
    # items are validated one by one so errors can be reported per index
    transactions: List[Any] = Field(min_length=1)


class FeedbackItem(ApiModel):
    text: str = Field(min_length=1)
    language: Optional[str] = None
    source: Optional[str] = None


class SentimentRequest(ApiModel):
    feedback: List[FeedbackItem] = Field(min_length=1)

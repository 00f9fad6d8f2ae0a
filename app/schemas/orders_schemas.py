from decimal import Decimal
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from app.constants.order_status import (
    DEFAULT_CUSTOMER_NAME,
    DELIVERY_TYPES,
    ORDER_STATUSES,
    PAYMENT_METHODS,
)
from app.schemas.pricing_schemas import LineItem, PriceBreakdown


class OrderCreate(BaseModel):
    items: List[LineItem] = Field(min_length=1)
    idempotency_key: Optional[str] = None

    customer_name: str = DEFAULT_CUSTOMER_NAME
    payment_method: str = "cash"
    delivery_type: str = "dine-in"
    cart_discount_percent: Decimal = Decimal("0")
    notes: Optional[str] = None
    source: str = "pos"

    # totals the terminal showed; the server re-prices and keeps its own
    computed_totals: Optional[PriceBreakdown] = None

    @field_validator("payment_method")
    @classmethod
    def check_payment_method(cls, value):
        if value not in PAYMENT_METHODS:
            raise ValueError(f"payment_method must be one of {PAYMENT_METHODS}")
        return value

    @field_validator("delivery_type")
    @classmethod
    def check_delivery_type(cls, value):
        if value not in DELIVERY_TYPES:
            raise ValueError(f"delivery_type must be one of {DELIVERY_TYPES}")
        return value

    @field_validator("idempotency_key")
    @classmethod
    def strip_key(cls, value):
        if value is None:
            return None
        return value.strip() or None


class OrderStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, value):
        if value not in ORDER_STATUSES:
            raise ValueError(f"status must be one of {ORDER_STATUSES}")
        return value

from sqlmodel import SQLModel, Field, UniqueConstraint
from sqlalchemy import Column, JSON
from typing import Optional
from datetime import datetime

from app.constants.order_status import DEFAULT_CUSTOMER_NAME
from app.utils.clock import utcnow


class Order(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("organization_id", "order_number"),
        UniqueConstraint("organization_id", "idempotency_key"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(index=True)
    order_number: str

    # client-generated; a repeat of the same key within one organization is the same order
    idempotency_key: Optional[str] = Field(default=None, index=True)

    customer_name: str = Field(default=DEFAULT_CUSTOMER_NAME)
    payment_method: str = Field(default="cash")
    delivery_type: str = Field(default="dine-in")
    source: str = Field(default="pos")
    notes: Optional[str] = None

    items: list = Field(default_factory=list, sa_column=Column(JSON))
    tax: list = Field(default_factory=list, sa_column=Column(JSON))

    subtotal: float
    discount: float = 0
    tax_total: float = 0
    total: float

    status: str = Field(default="pending", index=True)
    is_paid: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

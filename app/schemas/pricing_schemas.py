# app/schemas/pricing_schemas.py
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class TaxType(str, Enum):
    percentage = "percentage"
    fixed = "fixed"


class LineItem(BaseModel):
    id: str
    name: str = ""
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)
    discount_percent: Decimal = Decimal("0")   # always within [0, 100]

    @field_validator("discount_percent", mode="before")
    @classmethod
    def clamp_discount_percent(cls, value):
        if value is None:
            return Decimal("0")
        try:
            number = Decimal(str(value))
        except InvalidOperation:
            raise ValueError("discount_percent must be a number")
        if not number.is_finite():
            raise ValueError("discount_percent must be a number")
        return max(Decimal("0"), min(Decimal("100"), number))


class TaxRule(BaseModel):
    id: str
    name: str
    rate: Decimal = Field(ge=0)
    type: TaxType = TaxType.percentage
    enabled: bool = True


class TaxLine(BaseModel):
    rule_id: str
    name: str
    rate: Decimal
    type: TaxType
    amount: Decimal


class PriceBreakdown(BaseModel):
    subtotal: Decimal = Decimal("0.00")
    item_discount_total: Decimal = Decimal("0.00")
    cart_discount_amount: Decimal = Decimal("0.00")
    discounted_subtotal: Decimal = Decimal("0.00")
    tax_amount: Decimal = Decimal("0.00")
    tax_breakdown: List[TaxLine] = []
    total: Decimal = Decimal("0.00")
    cart_discount_percent: Optional[Decimal] = None

# app/services/pricing_service.py
"""
Order pricing engine.

Pure functions, no I/O. Amounts are carried as Decimal and quantized to
cents only when the breakdown is assembled, using the rounding mode the
caller asks for (ROUND_HALF_UP unless told otherwise).
"""

import logging
from collections.abc import Mapping
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterable, List, Optional

from app.schemas.pricing_schemas import (
    PriceBreakdown,
    TaxLine,
    TaxRule,
    TaxType,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


class FixedTaxMode(str, Enum):
    # "fixed" rules are priced exactly like percentage rules (historic behaviour)
    AS_PERCENTAGE = "as_percentage"
    # "fixed" rules add their rate as a flat amount
    FLAT_AMOUNT = "flat_amount"


def _read(item, name):
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _to_decimal(value) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        number = Decimal(str(value))
        return number if number.is_finite() else None
    return None


def to_money(amount: Decimal, rounding: str = ROUND_HALF_UP) -> Decimal:
    return amount.quantize(CENTS, rounding=rounding)


def clamp_discount(value) -> Decimal:
    """Clamp a discount percentage into [0, 100]; junk becomes 0."""
    number = _to_decimal(value)
    if number is None:
        return ZERO
    return max(ZERO, min(HUNDRED, number))


def item_original_amount(item) -> Decimal:
    unit_price = _to_decimal(_read(item, "unit_price"))
    quantity = _to_decimal(_read(item, "quantity"))

    if unit_price is None or quantity is None:
        logger.warning(f"Malformed line item ignored in pricing: {item!r}")
        return ZERO

    return unit_price * quantity


def item_final_amount(item) -> Decimal:
    original = item_original_amount(item)
    discount = clamp_discount(_read(item, "discount_percent"))
    return original * (1 - discount / HUNDRED)


def item_discount_amount(item) -> Decimal:
    return item_original_amount(item) - item_final_amount(item)


def cart_quantity(items: Iterable) -> int:
    total = 0
    for item in items or []:
        quantity = _read(item, "quantity")
        if isinstance(quantity, int) and not isinstance(quantity, bool):
            total += quantity
    return total


def percentage_tax_amount(base: Decimal, rule: TaxRule) -> Decimal:
    """Observed behaviour: every rule is `base * rate / 100`, whatever its type."""
    return base * rule.rate / HUNDRED


def flat_aware_tax_amount(base: Decimal, rule: TaxRule) -> Decimal:
    """
    A "fixed" rule adds `rate` as a constant; percentage rules are unchanged.
    Nothing is charged on a zero base, so an empty cart stays at 0.
    """
    if rule.type == TaxType.fixed:
        return rule.rate if base > 0 else ZERO
    return percentage_tax_amount(base, rule)


TAX_CALCULATORS = {
    FixedTaxMode.AS_PERCENTAGE: percentage_tax_amount,
    FixedTaxMode.FLAT_AMOUNT: flat_aware_tax_amount,
}


def _as_rules(tax_rules) -> List[TaxRule]:
    if not tax_rules:
        return []
    return [
        rule if isinstance(rule, TaxRule) else TaxRule.model_validate(rule)
        for rule in tax_rules
    ]


def tax_breakdown(
    discounted_subtotal,
    tax_rules,
    *,
    rounding: str = ROUND_HALF_UP,
    fixed_tax_mode: FixedTaxMode = FixedTaxMode.AS_PERCENTAGE,
) -> List[TaxLine]:
    """
    Per-rule tax lines for receipts and the cart footer.

    Only enabled rules with a positive rate appear. Pass the same
    discounted subtotal `cart_totals` used, or the lines will not add up to
    its tax amount.
    """
    base = _to_decimal(discounted_subtotal)
    if base is None:
        base = ZERO

    calculate = TAX_CALCULATORS[FixedTaxMode(fixed_tax_mode)]

    return [
        TaxLine(
            rule_id=rule.id,
            name=rule.name,
            rate=rule.rate,
            type=rule.type,
            amount=to_money(calculate(base, rule), rounding),
        )
        for rule in _as_rules(tax_rules)
        if rule.enabled and rule.rate > 0
    ]


def cart_totals(
    items: Iterable,
    tax_rules=None,
    cart_discount_percent=0,
    *,
    rounding: str = ROUND_HALF_UP,
    fixed_tax_mode: FixedTaxMode = FixedTaxMode.AS_PERCENTAGE,
) -> PriceBreakdown:
    """
    Full price breakdown for a cart.

    Item discounts are applied first, then the cart discount, then tax on
    what is left. The tax amount is the sum of the rounded per-rule lines.
    """
    items = list(items or [])

    raw_subtotal = sum((item_final_amount(item) for item in items), ZERO)
    raw_item_discounts = sum((item_discount_amount(item) for item in items), ZERO)

    cart_discount = clamp_discount(cart_discount_percent)

    subtotal = to_money(raw_subtotal, rounding)
    cart_discount_amount = to_money(subtotal * cart_discount / HUNDRED, rounding)
    discounted_subtotal = subtotal - cart_discount_amount

    lines = tax_breakdown(
        discounted_subtotal,
        tax_rules,
        rounding=rounding,
        fixed_tax_mode=fixed_tax_mode,
    )
    tax_amount = sum((line.amount for line in lines), ZERO).quantize(CENTS)

    return PriceBreakdown(
        subtotal=subtotal,
        item_discount_total=to_money(raw_item_discounts, rounding),
        cart_discount_amount=cart_discount_amount,
        discounted_subtotal=discounted_subtotal,
        tax_amount=tax_amount,
        tax_breakdown=lines,
        total=discounted_subtotal + tax_amount,
        cart_discount_percent=cart_discount,
    )

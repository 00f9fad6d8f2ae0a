"""Tests for the order pricing engine."""

import logging
from decimal import Decimal, ROUND_HALF_EVEN

import pytest

from app.schemas.pricing_schemas import LineItem, TaxRule
from app.services.pricing_service import (
    FixedTaxMode,
    cart_quantity,
    cart_totals,
    clamp_discount,
    flat_aware_tax_amount,
    item_final_amount,
    item_original_amount,
    percentage_tax_amount,
    tax_breakdown,
)

VAT = TaxRule(id="vat", name="VAT", rate=10, type="percentage")


def _item(unit_price="10", quantity=2, discount_percent=0):
    return LineItem(id="i1", name="Pasta", unit_price=unit_price, quantity=quantity,
                    discount_percent=discount_percent)


def test_single_item_with_ten_percent_tax():
    totals = cart_totals([_item()], [VAT], 0)

    assert totals.subtotal == Decimal("20.00")
    assert totals.cart_discount_amount == Decimal("0.00")
    assert totals.tax_amount == Decimal("2.00")
    assert totals.total == Decimal("22.00")


def test_item_discount_applied_before_tax():
    item = _item(discount_percent=50)

    assert item_final_amount(item) == 10

    totals = cart_totals([item], [VAT], 0)
    assert totals.subtotal == Decimal("10.00")
    assert totals.item_discount_total == Decimal("10.00")
    assert totals.tax_amount == Decimal("1.00")
    assert totals.total == Decimal("11.00")


def test_cart_discount_reduces_taxable_base():
    totals = cart_totals([_item(unit_price="50", quantity=2)], [VAT], 10)

    assert totals.subtotal == Decimal("100.00")
    assert totals.cart_discount_amount == Decimal("10.00")
    assert totals.discounted_subtotal == Decimal("90.00")
    assert totals.tax_amount == Decimal("9.00")
    assert totals.total == Decimal("99.00")


def test_empty_cart_is_all_zero():
    totals = cart_totals([], [VAT], 25)

    assert totals.subtotal == 0
    assert totals.cart_discount_amount == 0
    assert totals.tax_amount == 0
    assert totals.total == 0
    # enabled rules still get a line, at zero
    assert [line.rule_id for line in totals.tax_breakdown] == ["vat"]
    assert all(line.amount == 0 for line in totals.tax_breakdown)


def test_cart_totals_is_pure():
    items = [_item(unit_price="3.33", quantity=3, discount_percent=7), _item(unit_price="1.05")]
    rules = [VAT, TaxRule(id="svc", name="Service", rate="2.5")]

    first = cart_totals(items, rules, 12.5)
    second = cart_totals(items, rules, 12.5)

    assert first == second
    assert first.model_dump() == second.model_dump()


def test_breakdown_lines_sum_to_tax_amount():
    items = [_item(unit_price="7.99", quantity=3, discount_percent=15)]
    rules = [VAT, TaxRule(id="city", name="City", rate="1.75"), TaxRule(id="off", name="Off", rate=5, enabled=False)]

    totals = cart_totals(items, rules, 5)
    lines = tax_breakdown(totals.discounted_subtotal, rules)

    assert [line.rule_id for line in lines] == ["vat", "city"]
    assert sum(line.amount for line in lines) == totals.tax_amount
    assert lines == totals.tax_breakdown


def test_disabled_and_zero_rate_rules_are_ignored():
    rules = [
        TaxRule(id="zero", name="Zero", rate=0),
        TaxRule(id="off", name="Off", rate=20, enabled=False),
    ]
    totals = cart_totals([_item()], rules)

    assert totals.tax_amount == 0
    assert totals.tax_breakdown == []


def test_tax_rules_can_be_plain_dicts():
    rules = [{"id": "vat", "name": "VAT", "rate": 10, "type": "percentage", "enabled": True}]

    assert cart_totals([_item()], rules).tax_amount == Decimal("2.00")


@pytest.mark.parametrize("unit_price,quantity,discount", [
    ("0", 1, 0), ("9.99", 1, 0), ("9.99", 4, 10), ("120", 2, 100), ("0.01", 7, 33.3),
])
def test_final_amount_never_exceeds_original(unit_price, quantity, discount):
    item = _item(unit_price=unit_price, quantity=quantity, discount_percent=discount)

    assert item_final_amount(item) <= item_original_amount(item)
    if discount == 0:
        assert item_final_amount(item) == item_original_amount(item)


def test_malformed_item_counts_as_zero(caplog):
    caplog.set_level(logging.WARNING)

    assert item_original_amount({"unit_price": "abc", "quantity": 2}) == 0
    assert item_original_amount({"unit_price": 5}) == 0
    assert item_original_amount(None) == 0
    assert "Malformed line item" in caplog.text

    totals = cart_totals([{"unit_price": None, "quantity": 1}, _item()], [VAT])
    assert totals.subtotal == Decimal("20.00")


def test_raw_dict_items_are_priced():
    assert item_final_amount({"unit_price": 4, "quantity": 3, "discount_percent": 25}) == 9


def test_discount_is_clamped():
    assert _item(discount_percent=150).discount_percent == 100
    assert _item(discount_percent=-5).discount_percent == 0
    assert clamp_discount("junk") == 0
    assert clamp_discount(42) == 42

    # raw dicts bypass validation; the engine clamps on read
    assert item_final_amount({"unit_price": 10, "quantity": 1, "discount_percent": 200}) == 0


def test_cart_discount_is_clamped():
    totals = cart_totals([_item()], [], 250)

    assert totals.cart_discount_amount == Decimal("20.00")
    assert totals.total == 0


def test_fixed_rule_priced_as_percentage_by_default():
    fixed = TaxRule(id="bag", name="Bag fee", rate=2, type="fixed")

    totals = cart_totals([_item()], [fixed])

    # 2% of 20, not a flat 2.00
    assert totals.tax_amount == Decimal("0.40")


def test_fixed_rule_as_flat_amount():
    fixed = TaxRule(id="bag", name="Bag fee", rate=2, type="fixed")

    totals = cart_totals([_item()], [fixed, VAT], fixed_tax_mode=FixedTaxMode.FLAT_AMOUNT)

    assert totals.tax_amount == Decimal("4.00")
    assert totals.total == Decimal("24.00")


def test_named_tax_calculators():
    fixed = TaxRule(id="bag", name="Bag fee", rate=2, type="fixed")
    base = Decimal("50")

    assert percentage_tax_amount(base, fixed) == 1
    assert flat_aware_tax_amount(base, fixed) == 2
    assert flat_aware_tax_amount(base, VAT) == 5


def test_rounding_mode_is_configurable():
    rule = TaxRule(id="t", name="T", rate="2.5")
    item = _item(unit_price="1.00", quantity=1)

    # 1.00 * 2.5% = 0.025
    assert cart_totals([item], [rule]).tax_amount == Decimal("0.03")
    assert cart_totals([item], [rule], rounding=ROUND_HALF_EVEN).tax_amount == Decimal("0.02")


def test_cart_quantity():
    assert cart_quantity([_item(quantity=2), _item(quantity=3)]) == 5
    assert cart_quantity([]) == 0


def test_flat_fee_not_charged_on_empty_cart():
    fixed = TaxRule(id="bag", name="Bag fee", rate=2, type="fixed")

    totals = cart_totals([], [fixed, VAT], fixed_tax_mode=FixedTaxMode.FLAT_AMOUNT)

    assert totals.tax_amount == 0
    assert totals.total == 0
    assert flat_aware_tax_amount(Decimal("0"), fixed) == 0


def test_flat_fee_not_charged_when_fully_discounted():
    fixed = TaxRule(id="bag", name="Bag fee", rate=2, type="fixed")

    totals = cart_totals([_item()], [fixed], 100, fixed_tax_mode=FixedTaxMode.FLAT_AMOUNT)

    assert totals.total == 0

from decimal import Decimal

from erp_ledger.utils.money import ZERO, has_cent_precision, quantize_money, to_decimal


def test_quantize_money_rounds_half_up():
    assert quantize_money(Decimal("137.423")) == Decimal("137.42")
    assert quantize_money(Decimal("137.425")) == Decimal("137.43")
    assert quantize_money(Decimal("-0.005")) == Decimal("-0.01")


def test_quantize_money_accepts_common_types_and_none():
    assert quantize_money(12) == Decimal("12.00")
    assert quantize_money(12.3) == Decimal("12.30")
    assert quantize_money("12.345") == Decimal("12.35")
    assert quantize_money(None) is None


def test_to_decimal_treats_missing_as_zero():
    assert to_decimal(None) == ZERO
    assert to_decimal(0.1) == Decimal("0.1")


def test_has_cent_precision():
    assert has_cent_precision(Decimal("10.25"))
    assert has_cent_precision(Decimal("10"))
    assert not has_cent_precision(Decimal("10.255"))

from decimal import Decimal

import pytest

from marketplace.core.currency import (
    Currency,
    base_currency_for_market,
    bucket_currency,
    buyer_currency_for_country,
    convert_and_round,
    quantize_money,
    round_amount,
)


@pytest.mark.parametrize("value, expected", [
    ("MKD", Currency.MKD),
    ("EUR", Currency.EUR),
    ("eur", Currency.EUR),
    (None, Currency.MKD),
    ("", Currency.MKD),
    ("USD", Currency.MKD),
])
def test_bucket_currency_defaults_to_mkd(value, expected):
    assert bucket_currency(value) == expected


def test_eur_to_mkd_uses_platform_rate():
    assert convert_and_round(Decimal("100"), Currency.EUR, Currency.MKD) == Decimal("6150")


def test_mkd_to_eur_rounds_to_cents():
    assert convert_and_round(Decimal("1000"), Currency.MKD, Currency.EUR) == Decimal("16.26")


def test_same_currency_is_untouched():
    assert convert_and_round(Decimal("999"), Currency.MKD, Currency.MKD) == Decimal("999")


def test_mkd_rounds_to_whole_denars():
    assert round_amount(Decimal("10.5"), Currency.MKD) == Decimal("11")
    assert round_amount(Decimal("10.555"), Currency.EUR) == Decimal("10.56")


def test_quantize_money_half_up():
    assert quantize_money("0.125") == Decimal("0.13")
    assert quantize_money(None) == Decimal("0.00")


@pytest.mark.parametrize("country, expected", [
    ("North Macedonia", Currency.MKD),
    ("MK", Currency.MKD),
    (" kosovo ", Currency.EUR),
    ("KS", Currency.EUR),
    ("Albania", Currency.MKD),
    (None, Currency.MKD),
])
def test_buyer_currency_for_country(country, expected):
    assert buyer_currency_for_country(country) == expected


def test_seller_base_currency_follows_market():
    assert base_currency_for_market("KS") == Currency.EUR
    assert base_currency_for_market("MK") == Currency.MKD
    assert base_currency_for_market(None) == Currency.MKD

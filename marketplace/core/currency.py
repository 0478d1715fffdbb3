from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional, Union

from marketplace.core.config import get_settings

CENTS = Decimal("0.01")


class Currency(str, Enum):
    MKD = "MKD"
    EUR = "EUR"


class Market(str, Enum):
    MK = "MK"  # North Macedonia
    KS = "KS"  # Kosovo


_MKD_COUNTRIES = {"north macedonia", "macedonia", "mk"}
_EUR_COUNTRIES = {"kosovo", "ks"}


def to_decimal(value: Union[Decimal, float, int, str, None]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Union[Decimal, float, int, str, None]) -> Decimal:
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def bucket_currency(value: Optional[str]) -> Currency:
    """Map a stored currency code onto a settlement bucket.

    Anything missing or unrecognised is settled in MKD.
    """
    if value:
        try:
            return Currency(str(value).upper())
        except ValueError:
            pass
    return Currency.MKD


def get_exchange_rate() -> Decimal:
    """Fixed platform rate: 1 EUR = EXCHANGE_RATE MKD."""
    return to_decimal(get_settings().EXCHANGE_RATE)


def base_currency_for_market(market: Optional[str]) -> Currency:
    # sellers without a market are treated as MK sellers
    if market and str(market).upper() == Market.KS.value:
        return Currency.EUR
    return Currency.MKD


def buyer_currency_for_country(country: Optional[str]) -> Currency:
    normalized = (country or "").strip().lower()
    if normalized in _EUR_COUNTRIES:
        return Currency.EUR
    return Currency.MKD


def convert(amount, from_currency: Currency, to_currency: Currency, rate: Decimal = None) -> Decimal:
    amount = to_decimal(amount)
    if from_currency == to_currency:
        return amount
    rate = rate if rate is not None else get_exchange_rate()
    if from_currency == Currency.EUR and to_currency == Currency.MKD:
        return amount * rate
    if from_currency == Currency.MKD and to_currency == Currency.EUR:
        return amount / rate
    raise ValueError(f"Unsupported currency conversion: {from_currency} to {to_currency}")


def round_amount(amount, currency: Currency) -> Decimal:
    """MKD has no minor unit in practice; EUR keeps cents."""
    amount = to_decimal(amount)
    if currency == Currency.MKD:
        return amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def convert_and_round(amount, from_currency: Currency, to_currency: Currency, rate: Decimal = None) -> Decimal:
    return round_amount(convert(amount, from_currency, to_currency, rate), to_currency)

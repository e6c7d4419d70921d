"""
Price Scaling
=============

Helpers for representing floating point prices as scaled integers.

The scaling factor for a price is ``ceil(9 - log10(price))``, clamped to
``[MIN_DECIMALS, MAX_DECIMALS]``, so that every price keeps roughly nine
significant digits once multiplied by ``10 ** decimals``.
"""

import math

MIN_DECIMALS = 1
MAX_DECIMALS = 36

MAX_UINT64 = 2**64 - 1

# mantissa bits kept when scaling reference prices
REFERENCE_PRICE_PRECISION = 30


def decimal_places_from_price(price: float) -> int:
    """
    Return the number of decimal places a price is scaled by.

    Args:
        price: Reference price of the base asset in terms of the quote

    Returns:
        Decimal places in [MIN_DECIMALS, MAX_DECIMALS]. A zero (or
        non-positive) price maps to MIN_DECIMALS.
    """
    if price <= 0 or not math.isfinite(price):
        return MIN_DECIMALS

    scaling_factor = math.ceil(9 - math.log10(price))
    return min(max(scaling_factor, MIN_DECIMALS), MAX_DECIMALS)


def round_to_precision(value: float, bits: int) -> float:
    """Round value to a mantissa of the given bit width (ties to even)."""
    if value == 0 or not math.isfinite(value):
        return value

    mantissa, exponent = math.frexp(value)
    scale = 2**bits
    return math.ldexp(round(mantissa * scale) / scale, exponent)


def scale_price_to_uint(price: float) -> int:
    """
    Scale a price to an unsigned integer using its own decimal places.

    The scaled value is rounded to a 30 bit mantissa before truncation,
    which damps jitter between runs when reference prices are averages.
    """
    if price <= 0 or not math.isfinite(price):
        return 0

    decimals = decimal_places_from_price(price)
    scaled = round_to_precision(price * 10**decimals, REFERENCE_PRICE_PRECISION)
    return min(int(scaled), MAX_UINT64)

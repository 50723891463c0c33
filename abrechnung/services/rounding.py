from __future__ import annotations

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP

CENT = Decimal("0.01")
RATIO6 = Decimal("0.000001")
WHOLE = Decimal("1")
HALF_UNIT = Decimal("0.50")
ZERO = Decimal("0.00")


def quantize_cent(value: Decimal | str | int | None) -> Decimal:
    return Decimal(value or ZERO).quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_ratio6(value: Decimal | str | int | None) -> Decimal:
    return Decimal(value or ZERO).quantize(RATIO6, rounding=ROUND_HALF_UP)


def round_to_whole_currency_unit(value: Decimal | str | int | None) -> Decimal:
    """Rundet auf volle Euro, symmetrisch um 0.

    Zuerst kaufmännisch auf Cent, dann ab 50 Cent (Betrag) aufrunden:
    0.49 -> 0.00, 0.50 -> 1.00, -0.49 -> 0.00, -0.50 -> -1.00.
    """
    scaled = quantize_cent(value)
    absolute = scaled.copy_abs()
    integer_part = absolute.quantize(WHOLE, rounding=ROUND_DOWN)
    cents = absolute - integer_part

    rounded = integer_part + WHOLE if cents >= HALF_UNIT else integer_part
    result = rounded.quantize(CENT)
    if result == ZERO:
        return ZERO
    return -result if scaled < ZERO else result

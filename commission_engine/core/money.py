from decimal import Decimal, ROUND_HALF_UP


CENT = Decimal("0.01")
PERCENT_PLACES = Decimal("0.001")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value) -> Decimal:
    """Round to cents, half up. Every amount is rounded on its own."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_percent(value) -> Decimal:
    return to_decimal(value).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def percent_of(amount, percent) -> Decimal:
    return round_money(to_decimal(amount) * to_decimal(percent) / HUNDRED)

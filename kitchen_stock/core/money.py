from decimal import Decimal, ROUND_HALF_UP

MONEY_QUANT = Decimal("0.01")
ZERO_MONEY = Decimal("0.00")

QUANTITY_QUANT = Decimal("0.001")
ZERO_QUANTITY = Decimal("0.000")


def to_money(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def to_quantity(value: Decimal | int | float | str | None) -> Decimal:
    # JSON columns hand back floats; go through str() so 0.1 stays 0.1
    if value is None:
        return ZERO_QUANTITY
    return Decimal(str(value)).quantize(QUANTITY_QUANT, rounding=ROUND_HALF_UP)


def as_float(value: Decimal | None) -> float | None:
    if value is None:
        return None
    return float(value)

# cart_service/domain/money.py
from decimal import Decimal, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")


def money(value) -> Decimal:
    """Quantize any numeric value to 2dp, the one rounding rule for money."""
    if value is None or value == "":
        return Decimal("0.00")
    return Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)

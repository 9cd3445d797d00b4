"""Amount formatting for payment emails."""
from decimal import Decimal, ROUND_HALF_UP


def format_amount(amount: int | float | Decimal | str, currency: str = "ZMW") -> str:
    """Return «ZMW 150.00» style string."""
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{currency.upper()} {value:,.2f}"

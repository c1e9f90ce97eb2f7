# app/utils/money.py - Cents helpers shared with the presentation layer
from decimal import Decimal, ROUND_HALF_UP

# fr-FR groups thousands with a narrow no-break space
GROUP_SEPARATOR = "\u202f"


def to_cents(amount) -> int:
    """Decimal amount -> integer cents, half away from zero."""
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(amount_in_cents: int) -> float:
    return amount_in_cents / 100


def format_amount(amount_in_cents: int, currency: str) -> str:
    """
    Format cents the way the admin front-end does (fr-FR, 2 decimals):
    ``format_amount(123456, "EUR") == "1 234,56 EUR"``.
    """
    sign = "-" if amount_in_cents < 0 else ""
    units, cents = divmod(abs(int(amount_in_cents)), 100)
    grouped = f"{units:,}".replace(",", GROUP_SEPARATOR)
    return f"{sign}{grouped},{cents:02d} {currency}"

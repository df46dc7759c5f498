"""Money helpers. Display amounts are Decimals with two places; provider amounts are integer cents."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from protean.exceptions import ValidationError

CENT = Decimal("0.01")


def to_decimal(value, field: str = "amount") -> Decimal:
    if isinstance(value, bool):
        raise ValidationError({field: ["Must be a number"]})
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValidationError({field: ["Must be a number"]}) from exc
    if not amount.is_finite():
        raise ValidationError({field: ["Must be a number"]})
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor(amount_minor: int) -> Decimal:
    return (Decimal(amount_minor) / 100).quantize(CENT)


def display(amount) -> str:
    return f"{Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)}"

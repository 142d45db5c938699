from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_one_of(value: Optional[str], field_name: str, allowed: tuple[str, ...]) -> str:
    v = (value or "").strip().lower()
    if v not in allowed:
        raise ValidationError(f"Invalid {field_name}. Must be one of: {', '.join(allowed)}")
    return v


def require_positive_amount(value: Any, field_name: str = "amount") -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Please provide a valid {field_name} greater than 0.")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"Please provide a valid {field_name} greater than 0.")
    return amount


def optional_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def to_amount(value: Any) -> Decimal:
    """Lenient money parsing for expense line items: blanks and junk count as 0."""
    if value is None or value == "":
        return Decimal("0")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return amount if amount.is_finite() else Decimal("0")

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from ..common.validators import to_amount

EXPENSE_FIELDS = ("jeep", "bus", "fx_van", "gas", "toll", "meals", "lodging", "others")


@dataclass(frozen=True)
class LiquidationItem:
    from_destination: str = ""
    to_destination: str = ""
    jeep: Decimal = Decimal("0")
    bus: Decimal = Decimal("0")
    fx_van: Decimal = Decimal("0")
    gas: Decimal = Decimal("0")
    toll: Decimal = Decimal("0")
    meals: Decimal = Decimal("0")
    lodging: Decimal = Decimal("0")
    others: Decimal = Decimal("0")
    remarks: str = ""

    @property
    def total(self) -> Decimal:
        return sum((getattr(self, f) for f in EXPENSE_FIELDS), Decimal("0"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LiquidationItem":
        return cls(
            from_destination=str(data.get("from_destination") or ""),
            to_destination=str(data.get("to_destination") or ""),
            remarks=str(data.get("remarks") or ""),
            **{f: to_amount(data.get(f)) for f in EXPENSE_FIELDS},
        )


@dataclass(frozen=True)
class LiquidationTotals:
    total_amount: Decimal
    return_to_company: Decimal
    reimbursement: Decimal


def settle(advance_amount: Decimal, items: Iterable[LiquidationItem]) -> LiquidationTotals:
    """Balance expenses against the advance.

    Whatever was not spent goes back to the company; overspending is
    reimbursed to the employee. At most one of the two is non-zero.
    """
    total = sum((i.total for i in items), Decimal("0"))
    advance = Decimal(advance_amount)
    return LiquidationTotals(
        total_amount=total,
        return_to_company=max(advance - total, Decimal("0")),
        reimbursement=max(total - advance, Decimal("0")),
    )


def parse_items(raw_items: Sequence[Mapping[str, Any]]) -> list[LiquidationItem]:
    return [LiquidationItem.from_dict(i) for i in raw_items if isinstance(i, Mapping)]

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class Store:
    id: int
    store_code: str
    store_name: str
    status: str = "active"


@dataclass(frozen=True)
class InventoryItem:
    """One device installed at a store station."""

    store_id: int
    station_id: int
    category_id: int
    brand_id: int
    model_id: int
    serial_number: str
    status: str
    under_warranty: bool = False
    warranty_date: Optional[date] = None
    created_by: Optional[int] = None

from __future__ import annotations

import logging
from typing import Optional

from ..imports.excel import ColumnSchema, RowValidationError, cell_date, cell_text
from .model import InventoryItem
from .repository import InventoryRepository

logger = logging.getLogger(__name__)

INVENTORY_SCHEMA = ColumnSchema(
    required=("Store Name", "Store Code", "Station Name", "Device", "Brand", "Model", "Serial Number", "Status"),
    optional=("Under Warranty", "Warranty Date"),
)

INVENTORY_STATUSES = ("permanent", "temporary")


class InventoryRowImporter:
    """Turns inventory sheet rows into store inventory items.

    Lookup ids are cached per import so a sheet with many rows for the same
    store only resolves it once.
    """

    def __init__(self, inventory: InventoryRepository, *, created_by: Optional[int] = None):
        self._inventory = inventory
        self._created_by = created_by
        self._stores: dict[str, int] = {}
        self._lookups: dict[tuple[str, str], int] = {}

    def __call__(self, row_no: int, row: dict) -> None:
        status = cell_text(row["Status"]).lower()
        if status not in INVENTORY_STATUSES:
            raise RowValidationError(
                f'Invalid Status "{row["Status"]}" - Please use either "Permanent" or "Temporary"',
                "Status",
            )

        under_warranty = (cell_text(row.get("Under Warranty")) or "").lower() == "yes"
        warranty_date = cell_date(row.get("Warranty Date"), "Warranty Date")

        store_id = self._store_id(row_no, cell_text(row["Store Code"]), cell_text(row["Store Name"]))
        self._inventory.add_item(
            InventoryItem(
                store_id=store_id,
                station_id=self._lookup("stations", cell_text(row["Station Name"])),
                category_id=self._lookup("categories", cell_text(row["Device"])),
                brand_id=self._lookup("brands", cell_text(row["Brand"])),
                model_id=self._lookup("models", cell_text(row["Model"])),
                serial_number=cell_text(row["Serial Number"]),
                status=status,
                under_warranty=under_warranty,
                warranty_date=warranty_date,
                created_by=self._created_by,
            )
        )

    def _store_id(self, row_no: int, code: str, name: str) -> int:
        key = code.upper()
        if key in self._stores:
            return self._stores[key]

        store = self._inventory.find_store_by_code(code)
        if store:
            if store.store_name.lower() != name.lower():
                logger.warning(
                    "Row %d: store code %s already exists as %r; keeping existing store",
                    row_no,
                    code,
                    store.store_name,
                )
            store_id = store.id
        else:
            store_id = self._inventory.create_store(store_code=code, store_name=name)
        self._stores[key] = store_id
        return store_id

    def _lookup(self, table: str, name: str) -> int:
        key = (table, name.upper())
        if key not in self._lookups:
            self._lookups[key] = self._inventory.get_or_create_lookup(table, name)
        return self._lookups[key]

from __future__ import annotations

from typing import Optional, Protocol

from .model import InventoryItem, Store

LOOKUP_TABLES = ("stations", "categories", "brands", "models")


class InventoryRepository(Protocol):
    def find_store_by_code(self, store_code: str) -> Optional[Store]:
        """Case-insensitive lookup; store codes are unique."""

        raise NotImplementedError

    def create_store(self, *, store_code: str, store_name: str) -> int:
        raise NotImplementedError

    def get_or_create_lookup(self, table: str, name: str) -> int:
        """Id of the row named ``name`` in one of ``LOOKUP_TABLES``, inserting it if missing."""

        raise NotImplementedError

    def add_item(self, item: InventoryItem) -> int:
        raise NotImplementedError

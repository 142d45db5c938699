from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import InventoryItem, Store
from .repository import LOOKUP_TABLES, InventoryRepository


class MySQLInventoryRepository(InventoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_store_by_code(self, store_code: str) -> Optional[Store]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, store_code, store_name, status FROM stores WHERE UPPER(store_code)=UPPER(%s)",
                (store_code.strip(),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Store(id=int(r["id"]), store_code=r["store_code"], store_name=r["store_name"], status=r["status"])

    def create_store(self, *, store_code: str, store_name: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO stores(store_code, store_name) VALUES(%s,%s)",
                (store_code.strip(), store_name.strip()),
            )
            return int(cur.lastrowid)

    def get_or_create_lookup(self, table: str, name: str) -> int:
        if table not in LOOKUP_TABLES:
            raise ValueError(f"Unknown lookup table: {table}")
        name = name.strip()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT id FROM {table} WHERE UPPER(name)=UPPER(%s)", (name,))
            r = fetchone(cur)
            if r:
                return int(r["id"])
            cur.execute(f"INSERT INTO {table}(name) VALUES(%s)", (name,))
            return int(cur.lastrowid)

    def add_item(self, item: InventoryItem) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO store_inventory(
                    store_id, station_id, category_id, brand_id, model_id,
                    serial_number, status, under_warranty, warranty_date, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    item.store_id,
                    item.station_id,
                    item.category_id,
                    item.brand_id,
                    item.model_id,
                    item.serial_number,
                    item.status,
                    1 if item.under_warranty else 0,
                    item.warranty_date,
                    item.created_by,
                ),
            )
            return int(cur.lastrowid)

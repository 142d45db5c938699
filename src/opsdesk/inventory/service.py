from __future__ import annotations

from ..auth.context import RequestContext
from ..auth.policy import Action, PolicyEngine
from ..imports.excel import ImportResult, Upload
from ..imports.service import ImportRunner
from .importer import INVENTORY_SCHEMA, InventoryRowImporter
from .repository import InventoryRepository


class InventoryService:
    def __init__(self, inventory: InventoryRepository, *, runner: ImportRunner, policy: PolicyEngine):
        self._inventory = inventory
        self._runner = runner
        self._policy = policy

    def import_inventory(self, ctx: RequestContext, upload: Upload) -> ImportResult:
        self._policy.require(ctx, Action.INVENTORY_IMPORT)
        return self._runner.run(
            ctx,
            import_type="store_inventory",
            upload=upload,
            schema=INVENTORY_SCHEMA,
            handle_row=InventoryRowImporter(self._inventory, created_by=ctx.user_id),
        )

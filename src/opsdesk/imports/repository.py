from __future__ import annotations

from typing import Protocol

from .model import ImportLog


class ImportLogRepository(Protocol):
    def add(self, log: ImportLog) -> int:
        raise NotImplementedError

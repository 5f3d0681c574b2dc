"""
In-memory storage backend.
"""

import copy
from typing import Any, Dict, List, Optional

from sitescan.core.base import StorageError
from sitescan.core.logging import get_logger
from .base import StorageBackend, FilterValue, matches, order_records


class InMemoryStorage(StorageBackend):
    """Dictionary-backed storage; contents live for the lifetime of the object"""

    def __init__(self):
        self.logger = get_logger(__name__)
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._tables.setdefault(table, {})

    async def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        stored = self.prepare_record(record)
        rows = self._table(table)
        if stored['id'] in rows:
            raise StorageError(f"Duplicate id {stored['id']} in {table}")
        rows[stored['id']] = stored
        return copy.deepcopy(stored)

    async def update(self, table: str, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._table(table)
        if record_id not in rows:
            raise StorageError(f"Record {record_id} not found in {table}")
        rows[record_id].update(copy.deepcopy(changes))
        rows[record_id]['id'] = record_id
        return copy.deepcopy(rows[record_id])

    async def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        record = self._table(table).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def select(self, table: str, filters: Optional[Dict[str, FilterValue]] = None,
                     order_by: Optional[str] = None, descending: bool = False,
                     limit: Optional[int] = None, offset: int = 0) -> List[Dict[str, Any]]:
        records = [r for r in self._table(table).values() if matches(r, filters)]
        records = order_records(records, order_by, descending)
        end = offset + limit if limit is not None else None
        return [copy.deepcopy(r) for r in records[offset:end]]

    async def delete(self, table: str, record_id: str) -> bool:
        return self._table(table).pop(record_id, None) is not None

    def get_storage_stats(self) -> Dict[str, Any]:
        return {
            'tables': {name: len(rows) for name, rows in self._tables.items()},
            'total_records': sum(len(rows) for rows in self._tables.values())
        }

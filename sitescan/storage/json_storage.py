"""
JSON file storage backend

Keeps one JSON document per table under a base directory, loaded lazily
and rewritten after every mutation.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles

from sitescan.core.base import StorageError
from .base import FilterValue
from .memory import InMemoryStorage


class JsonFileStorage(InMemoryStorage):
    """
    File-backed storage for local development and the CLI.
    """

    def __init__(self, base_path: str = './data'):
        super().__init__()
        self.base_path = Path(base_path)
        self._loaded: set = set()
        self._locks: Dict[str, asyncio.Lock] = {}

    async def initialize(self) -> None:
        """Initialize the component"""
        self.logger.info(f"Initializing JSON storage at {self.base_path}")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, table: str) -> Path:
        return self.base_path / f"{table}.json"

    def _lock(self, table: str) -> asyncio.Lock:
        return self._locks.setdefault(table, asyncio.Lock())

    async def _ensure_loaded(self, table: str) -> None:
        if table in self._loaded:
            return
        path = self._path(table)
        rows: Dict[str, Dict[str, Any]] = {}
        if path.exists():
            try:
                async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                    data = json.loads(await f.read() or '[]')
            except (OSError, ValueError) as e:
                raise StorageError(f"Failed to read {path}: {e}")
            rows = {record['id']: record for record in data}
        self._tables[table] = rows
        self._loaded.add(table)

    async def _flush(self, table: str) -> None:
        path = self._path(table)
        tmp_path = path.with_suffix('.json.tmp')
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(list(self._table(table).values()), indent=2, default=str))
            tmp_path.replace(path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")

    async def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock(table):
            await self._ensure_loaded(table)
            stored = await super().insert(table, record)
            await self._flush(table)
            return stored

    async def update(self, table: str, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock(table):
            await self._ensure_loaded(table)
            stored = await super().update(table, record_id, changes)
            await self._flush(table)
            return stored

    async def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        await self._ensure_loaded(table)
        return await super().get(table, record_id)

    async def select(self, table: str, filters: Optional[Dict[str, FilterValue]] = None,
                     order_by: Optional[str] = None, descending: bool = False,
                     limit: Optional[int] = None, offset: int = 0) -> List[Dict[str, Any]]:
        await self._ensure_loaded(table)
        return await super().select(table, filters, order_by, descending, limit, offset)

    async def delete(self, table: str, record_id: str) -> bool:
        async with self._lock(table):
            await self._ensure_loaded(table)
            deleted = await super().delete(table, record_id)
            if deleted:
                await self._flush(table)
            return deleted

    def get_storage_stats(self) -> Dict[str, Any]:
        stats = super().get_storage_stats()
        stats['base_path'] = str(self.base_path)
        return stats

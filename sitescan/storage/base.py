"""
Storage backend interface and shared record helpers.
"""

import copy
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from sitescan.core.base import new_id


# Tables
SCAN_JOBS = 'website_scan_jobs'
EXTRACTED_CONTENT = 'extracted_content'
SCAN_JOB_LOGS = 'scan_job_logs'
KNOWLEDGE_ITEMS = 'knowledge_items'
KNOWLEDGE_CATEGORIES = 'knowledge_categories'
KNOWLEDGE_VERSIONS = 'knowledge_versions'
KNOWLEDGE_SEARCH_HISTORY = 'knowledge_search_history'
KNOWLEDGE_ANALYTICS = 'knowledge_analytics'
KNOWLEDGE_FEEDBACK = 'knowledge_feedback'
KNOWLEDGE_RELATIONSHIPS = 'knowledge_relationships'
KNOWLEDGE_AUTO_SUGGESTIONS = 'knowledge_auto_suggestions'

TABLES = [
    SCAN_JOBS,
    EXTRACTED_CONTENT,
    SCAN_JOB_LOGS,
    KNOWLEDGE_ITEMS,
    KNOWLEDGE_CATEGORIES,
    KNOWLEDGE_VERSIONS,
    KNOWLEDGE_SEARCH_HISTORY,
    KNOWLEDGE_ANALYTICS,
    KNOWLEDGE_FEEDBACK,
    KNOWLEDGE_RELATIONSHIPS,
    KNOWLEDGE_AUTO_SUGGESTIONS,
]

# A filter value is matched by equality, by membership for lists/tuples/sets,
# or by calling it when it is a predicate.
FilterValue = Union[Any, List[Any], Callable[[Any], bool]]


def matches(record: Dict[str, Any], filters: Optional[Dict[str, FilterValue]]) -> bool:
    """Check a record against a filter mapping"""
    if not filters:
        return True
    for key, expected in filters.items():
        value = record.get(key)
        if callable(expected):
            if not expected(value):
                return False
        elif isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


def order_records(records: Iterable[Dict[str, Any]], order_by: Optional[str],
                  descending: bool) -> List[Dict[str, Any]]:
    records = list(records)
    if order_by:
        # None sorts first ascending, last descending
        records.sort(key=lambda r: (r.get(order_by) is not None, r.get(order_by)), reverse=descending)
    return records


class StorageBackend(ABC):
    """
    Asynchronous table-of-records store.

    Records are plain JSON-compatible dictionaries with a string 'id'.
    Implementations hand out copies, so callers may mutate what they get.
    """

    async def initialize(self) -> None:
        """Prepare the backend"""
        pass

    async def cleanup(self) -> None:
        """Release resources"""
        pass

    @abstractmethod
    async def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record, assigning an id when missing; returns the stored record"""
        pass

    @abstractmethod
    async def update(self, table: str, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Merge changes into a record; raises StorageError when it does not exist"""
        pass

    @abstractmethod
    async def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def select(self, table: str, filters: Optional[Dict[str, FilterValue]] = None,
                     order_by: Optional[str] = None, descending: bool = False,
                     limit: Optional[int] = None, offset: int = 0) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> bool:
        """Delete a record; returns False when it did not exist"""
        pass

    async def count(self, table: str, filters: Optional[Dict[str, FilterValue]] = None) -> int:
        return len(await self.select(table, filters))

    @staticmethod
    def prepare_record(record: Dict[str, Any]) -> Dict[str, Any]:
        stored = copy.deepcopy(record)
        if not stored.get('id'):
            stored['id'] = new_id()
        return stored

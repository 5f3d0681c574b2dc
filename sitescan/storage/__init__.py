"""
Storage components for the Website Scanner

This package contains the record storage interface and its backends:
- In-memory storage for tests and one-off scans
- JSON file storage for local persistence
"""

from .base import StorageBackend
from .memory import InMemoryStorage
from .json_storage import JsonFileStorage

__all__ = ['StorageBackend', 'InMemoryStorage', 'JsonFileStorage']

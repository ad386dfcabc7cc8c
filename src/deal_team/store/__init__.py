"""
State persistence for the Deal Team orchestrator.
"""

from .kv import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from .state import LEGACY_DEAL_KEY, StateSlice, StateStore, ViewMode

__all__ = [
    'FileKeyValueStore',
    'KeyValueStore',
    'MemoryKeyValueStore',
    'LEGACY_DEAL_KEY',
    'StateSlice',
    'StateStore',
    'ViewMode',
]

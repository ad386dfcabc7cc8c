"""
Durable key-value blob stores backing the StateStore.

Values are opaque strings (serialized slices). No transactionality: each
set() replaces one key.
"""

from pathlib import Path
from typing import Protocol

from ..errors import StoreError


class KeyValueStore(Protocol):
    """Minimal string key-value interface."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryKeyValueStore:
    """In-process store, used in tests and for throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def clear(self) -> None:
        self.data.clear()


class FileKeyValueStore:
    """
    One file per key under a directory.

    Keys map to ``<directory>/<key>.json``; clear() removes only those files.
    """

    SUFFIX = '.json'

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not key or '/' in key or '\\' in key or key.startswith('.'):
            raise StoreError(f'Invalid store key: {key!r}')
        return self.directory / f'{key}{self.SUFFIX}'

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding='utf-8')
        except OSError as exc:
            raise StoreError(f'Failed to read {key}: {exc}', context={'path': str(path)}) from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix('.tmp')
            tmp.write_text(value, encoding='utf-8')
            tmp.replace(path)
        except OSError as exc:
            raise StoreError(f'Failed to write {key}: {exc}', context={'path': str(path)}) from exc

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def clear(self) -> None:
        if not self.directory.exists():
            return
        for path in self.directory.glob(f'*{self.SUFFIX}'):
            path.unlink(missing_ok=True)

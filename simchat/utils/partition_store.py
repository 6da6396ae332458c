"""
Partition store: whole JSON values stored under string keys.

Each call is independently atomic. Operations that span several keys are not,
and concurrent writers to the same key follow last-write-wins on the whole value.
"""

import json
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .config import StoreConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class PartitionStoreError(Exception):
    """Custom exception for partition store I/O errors."""
    pass


class PartitionStore(ABC):
    """Base partition store holding JSON text per key.

    Subclasses provide the raw text get/set/delete; decoding lives here so every
    backend treats a corrupt stored value as absent.
    """

    def read(self, key: str) -> Optional[Any]:
        """Read and decode the value under key.

        Returns:
            Decoded value, or None if the key is absent, its value is corrupt
            or the backend cannot be read
        """
        try:
            raw = self._get_raw(key)
        except PartitionStoreError as e:
            logger.warning(f'Could not read partition {key!r}, treating as absent: {e}')
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f'Corrupt value under partition {key!r}, treating as absent: {e}')
            return None

    def write(self, key: str, value: Any) -> None:
        """Encode value as JSON and replace whatever is stored under key."""
        try:
            raw = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PartitionStoreError(f'Value for partition {key!r} is not JSON-serializable: {e}')
        self._set_raw(key, raw)
        logger.debug(f'Wrote partition {key!r} ({len(raw)} bytes)')

    def erase(self, key: str) -> None:
        self._delete_raw(key)
        logger.debug(f'Erased partition {key!r}')

    @abstractmethod
    def keys(self, prefix: str = '') -> List[str]:
        pass

    def health_check(self) -> bool:
        """Round-trip a probe value through the store."""
        probe_key = '__health__'
        try:
            self.write(probe_key, {'ok': True})
            healthy = self.read(probe_key) == {'ok': True}
            self.erase(probe_key)
            return healthy
        except Exception as e:
            logger.error(f'Partition store health check failed: {e}')
            return False

    @abstractmethod
    def _get_raw(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def _set_raw(self, key: str, raw: str) -> None:
        pass

    @abstractmethod
    def _delete_raw(self, key: str) -> None:
        pass


class MemoryPartitionStore(PartitionStore):
    """In-process store; values are kept encoded so callers never share objects."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def keys(self, prefix: str = '') -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    def put_raw(self, key: str, raw: str) -> None:
        """Store raw text verbatim, bypassing encoding."""
        self._data[key] = raw

    def _get_raw(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _set_raw(self, key: str, raw: str) -> None:
        self._data[key] = raw

    def _delete_raw(self, key: str) -> None:
        self._data.pop(key, None)


class SqlitePartitionStore(PartitionStore):
    """Single-table key/value store in a SQLite file, one connection per call."""

    def __init__(self, path: str):
        self.path = str(path)
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._connection() as con:
                con.execute('CREATE TABLE IF NOT EXISTS partitions (key TEXT PRIMARY KEY, value TEXT NOT NULL)')
        except PartitionStoreError as e:
            logger.error(f'SQLite partition store at {self.path} is unusable: {e}')
            return
        logger.info(f'Opened SQLite partition store at {self.path}')

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            con = sqlite3.connect(self.path)
        except sqlite3.Error as e:
            raise PartitionStoreError(f'Failed to open {self.path}: {e}')
        try:
            with con:
                yield con
        except sqlite3.Error as e:
            raise PartitionStoreError(f'SQLite operation failed: {e}')
        finally:
            con.close()

    def keys(self, prefix: str = '') -> List[str]:
        with self._connection() as con:
            rows = con.execute('SELECT key FROM partitions WHERE substr(key, 1, ?) = ? ORDER BY key',
                               (len(prefix), prefix)).fetchall()
        return [row[0] for row in rows]

    def _get_raw(self, key: str) -> Optional[str]:
        with self._connection() as con:
            row = con.execute('SELECT value FROM partitions WHERE key = ?', (key, )).fetchone()
        return row[0] if row else None

    def _set_raw(self, key: str, raw: str) -> None:
        with self._connection() as con:
            con.execute('INSERT INTO partitions (key, value) VALUES (?, ?) '
                        'ON CONFLICT(key) DO UPDATE SET value = excluded.value', (key, raw))

    def _delete_raw(self, key: str) -> None:
        with self._connection() as con:
            con.execute('DELETE FROM partitions WHERE key = ?', (key, ))


def create_store(store_config: StoreConfig) -> PartitionStore:
    """Build the partition store selected by configuration."""
    backend = store_config.backend.lower()
    if backend == 'memory':
        logger.info('Using in-memory partition store')
        return MemoryPartitionStore()
    if backend == 'sqlite':
        return SqlitePartitionStore(store_config.path)
    raise PartitionStoreError(f'Unknown partition store backend: {store_config.backend}')

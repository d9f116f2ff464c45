"""
Storage Backend Module

Provides abstract storage interface and implementations for in-memory (testing)
and SQLite (persistence), plus the StagedView overlay that lets a ledger
operation mutate several records and publish them all-or-nothing.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Tuple, Union
import sqlite3
import json
import threading
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from contextlib import contextmanager


@dataclass
class StorageRecord:
    """Base class for all stored records"""

    @property
    def storage_key(self) -> str:
        """Primary key of this record inside its table"""
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StorageRecord':
        """Create instance from dictionary, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def _matches(record: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    for key, value in filters.items():
        if key not in record or record[key] != value:
            return False
    return True


def _copy(data: Dict[str, Any]) -> Dict[str, Any]:
    # Round-trip through JSON to prevent external mutation
    return json.loads(json.dumps(data, default=str))


def _prefix_upper_bound(prefix: str) -> str:
    """Smallest string greater than every string starting with prefix"""
    return prefix[:-1] + chr(ord(prefix[-1]) + 1)


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to storage"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from storage"""
        pass

    @abstractmethod
    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        pass

    @abstractmethod
    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        pass

    @abstractmethod
    def find_keys_with_prefix(self, table: str, prefix: str) -> List[str]:
        """Find the keys starting with prefix, in key order, without loading records"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def begin_transaction(self) -> None:
        """Start a database transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager for atomic operations"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise

    @contextmanager
    def staged(self):
        """
        Context manager yielding a StagedView over this backend.

        The view is committed when the block exits normally; any exception
        discards every staged mutation and propagates.
        """
        view = StagedView(self)
        yield view
        view.commit()


class StagedView:
    """
    Mutable overlay over a storage backend.

    Reads see the staged writes first and fall back to the backend. Nothing
    reaches the backend until commit(), which applies every staged write
    inside a single atomic block.
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        # (table, key) -> data, or None for a staged delete
        self._writes: Dict[Tuple[str, str], Optional[Dict[str, Any]]] = {}
        self._committed = False

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record as seen through the staged writes"""
        if (table, record_id) in self._writes:
            data = self._writes[(table, record_id)]
            return _copy(data) if data is not None else None
        return self.storage.load(table, record_id)

    def exists(self, table: str, record_id: str) -> bool:
        """Check whether a record exists as seen through the staged writes"""
        if (table, record_id) in self._writes:
            return self._writes[(table, record_id)] is not None
        return self.storage.exists(table, record_id)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Stage a record write"""
        self._writes[(table, record_id)] = _copy(data)

    def delete(self, table: str, record_id: str) -> None:
        """Stage a record delete"""
        self._writes[(table, record_id)] = None

    def delete_prefix(self, table: str, prefix: str) -> int:
        """
        Stage the delete of every record whose key starts with prefix.

        Only matching keys are fetched from the backend; records of other
        prefixes are never loaded or decoded.

        Returns:
            Number of records staged for deletion
        """
        keys = set(self.storage.find_keys_with_prefix(table, prefix))
        for (staged_table, key), data in self._writes.items():
            if staged_table != table or not key.startswith(prefix):
                continue
            if data is None:
                keys.discard(key)
            else:
                keys.add(key)
        for key in keys:
            self._writes[(table, key)] = None
        return len(keys)

    @property
    def pending(self) -> int:
        """Number of staged writes"""
        return len(self._writes)

    def commit(self) -> None:
        """Apply every staged write to the backend atomically"""
        if self._committed:
            raise RuntimeError("StagedView already committed")
        with self.storage.atomic():
            for (table, record_id), data in self._writes.items():
                if data is None:
                    self.storage.delete(table, record_id)
                else:
                    self.storage.save(table, record_id, data)
        self._committed = True


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()
        # Undo log of (table, record_id, previous value) while in a transaction
        self._undo: Optional[List[Tuple[str, str, Optional[Dict[str, Any]]]]] = None

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists"""
        if table not in self._data:
            self._data[table] = {}

    def _remember(self, table: str, record_id: str) -> None:
        if self._undo is not None:
            self._undo.append((table, record_id, self._data[table].get(record_id)))

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to memory"""
        with self._lock:
            self._ensure_table(table)
            self._remember(table, record_id)
            self._data[table][record_id] = _copy(data)

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from memory"""
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(record_id)
            if record:
                return _copy(record)
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            return [_copy(record) for record in self._data[table].values()]

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from memory"""
        with self._lock:
            self._ensure_table(table)
            if record_id in self._data[table]:
                self._remember(table, record_id)
                del self._data[table][record_id]
                return True
            return False

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._lock:
            self._ensure_table(table)
            return record_id in self._data[table]

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        with self._lock:
            self._ensure_table(table)
            return [_copy(record) for record in self._data[table].values()
                    if _matches(record, filters)]

    def find_keys_with_prefix(self, table: str, prefix: str) -> List[str]:
        """Find the keys starting with prefix"""
        with self._lock:
            self._ensure_table(table)
            return sorted(record_id for record_id in self._data[table]
                          if record_id.startswith(prefix))

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._ensure_table(table)
            for record_id in list(self._data[table]):
                self._remember(table, record_id)
            self._data[table] = {}

    def begin_transaction(self) -> None:
        """Start recording an undo log"""
        with self._lock:
            if self._undo is None:
                self._undo = []

    def commit(self) -> None:
        """Drop the undo log"""
        with self._lock:
            self._undo = None

    def rollback(self) -> None:
        """Replay the undo log in reverse"""
        with self._lock:
            if self._undo is None:
                return
            for table, record_id, previous in reversed(self._undo):
                if previous is None:
                    self._data[table].pop(record_id, None)
                else:
                    self._data[table][record_id] = previous
            self._undo = None

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    def get_all_data(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Get all data for debugging/inspection"""
        with self._lock:
            return json.loads(json.dumps(self._data, default=str))


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        # Set isolation_level to 'DEFERRED' to enable manual transaction control
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._in_transaction = False
        self._known_tables: set = set()

        # Enable WAL mode for better concurrent access
        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        with self._lock:
            if table in self._known_tables:
                return
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL
                )
            """)
            if not self._in_transaction:
                self._connection.commit()
            self._known_tables.add(table)

    def _maybe_commit(self) -> None:
        # Only commit if not in transaction
        if not self._in_transaction:
            self._connection.commit()

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to SQLite"""
        with self._lock:
            self._ensure_table(table)
            data_json = json.dumps(data, default=str)
            self._connection.execute(f"""
                INSERT OR REPLACE INTO {table} (id, data) VALUES (?, ?)
            """, (record_id, data_json))
            self._maybe_commit()

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from SQLite"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} WHERE id = ?
            """, (record_id,))
            row = cursor.fetchone()
            if row:
                return json.loads(row['data'])
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY rowid
            """)
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from SQLite"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                DELETE FROM {table} WHERE id = ?
            """, (record_id,))
            self._maybe_commit()
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT 1 FROM {table} WHERE id = ? LIMIT 1
            """, (record_id,))
            return cursor.fetchone() is not None

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters (simple JSON key matching)"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY rowid
            """)
            results = []
            for row in cursor.fetchall():
                record = json.loads(row['data'])
                if _matches(record, filters):
                    results.append(record)
            return results

    def find_keys_with_prefix(self, table: str, prefix: str) -> List[str]:
        """Find the keys starting with prefix using a primary key range"""
        with self._lock:
            self._ensure_table(table)
            if not prefix:
                cursor = self._connection.execute(f"""
                    SELECT id FROM {table} ORDER BY id
                """)
            else:
                cursor = self._connection.execute(f"""
                    SELECT id FROM {table} WHERE id >= ? AND id < ? ORDER BY id
                """, (prefix, _prefix_upper_bound(prefix)))
            return [row['id'] for row in cursor.fetchall()]

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT COUNT(*) as count FROM {table}
            """)
            return cursor.fetchone()['count']

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._ensure_table(table)
            self._connection.execute(f"DELETE FROM {table}")
            self._maybe_commit()

    def begin_transaction(self) -> None:
        """Start a database transaction"""
        with self._lock:
            if not self._in_transaction:
                # SQLite with isolation_level='DEFERRED' automatically starts transactions
                # We just need to track the state
                self._in_transaction = True

    def commit(self) -> None:
        """Commit current transaction"""
        with self._lock:
            if self._in_transaction:
                self._connection.commit()
                self._in_transaction = False

    def rollback(self) -> None:
        """Rollback current transaction"""
        with self._lock:
            if self._in_transaction:
                self._connection.rollback()
                self._in_transaction = False

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(database_url: str) -> StorageInterface:
    """
    Build a storage backend from a database URL.

    Supported forms: ``memory://`` and ``sqlite:///path/to.db``
    (``sqlite://`` alone opens an in-memory SQLite database).
    """
    if database_url.startswith("memory://"):
        return InMemoryStorage()
    if database_url.startswith("sqlite://"):
        path = database_url[len("sqlite://"):]
        if path.startswith("/"):
            path = path[1:]
        return SQLiteStorage(path or ":memory:")
    raise ValueError(f"Unsupported database URL: {database_url}")

"""
Async Storage Backend Module

Provides the async storage interface used by the account store, with
implementations wrapping the synchronous backends (in-memory, SQLite) and a
native async PostgreSQL backend using asyncpg with JSONB documents.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any
from decimal import Decimal
from datetime import date, datetime
import json
import asyncio

from .storage import DuplicateRecordError, InMemoryStorage, SQLiteStorage, StorageInterface


class AsyncStorageInterface(ABC):
    """Abstract interface for async storage backends"""

    @abstractmethod
    async def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save (insert or replace) a record"""
        pass

    @abstractmethod
    async def insert(self, table: str, record_id: str, data: Dict[str, Any],
                     unique_key: Optional[str] = None) -> None:
        """Insert a new record, failing with DuplicateRecordError on collision"""
        pass

    @abstractmethod
    async def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> bool:
        """Delete a record, releasing its unique key; False if it was absent"""
        pass

    @abstractmethod
    async def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        pass

    async def close(self) -> None:
        """Close storage connection (default no-op)"""
        pass


class AsyncInMemoryStorage(AsyncStorageInterface):
    """Async wrapper around a synchronous storage backend

    Every call runs in a worker thread so the event loop is never blocked.
    The wrapped backend does its own locking. Defaults to InMemoryStorage.
    """

    def __init__(self, sync_storage: Optional[StorageInterface] = None):
        self._sync_storage = sync_storage or InMemoryStorage()

    async def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._sync_storage.save, table, record_id, data)

    async def insert(self, table: str, record_id: str, data: Dict[str, Any],
                     unique_key: Optional[str] = None) -> None:
        await asyncio.to_thread(self._sync_storage.insert, table, record_id, data, unique_key)

    async def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._sync_storage.load, table, record_id)

    async def delete(self, table: str, record_id: str) -> bool:
        return await asyncio.to_thread(self._sync_storage.delete, table, record_id)

    async def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._sync_storage.find, table, filters)

    async def close(self) -> None:
        await asyncio.to_thread(self._sync_storage.close)


class AsyncPostgreSQLStorage(AsyncStorageInterface):
    """True async PostgreSQL using asyncpg

    Documents live in a JSONB column. Every operation is a single statement;
    the unique key is enforced by a UNIQUE constraint on its own column.
    """

    def __init__(self, connection_string: str, pool_size: int = 10):
        self.connection_string = connection_string
        self.pool_size = pool_size
        self.pool = None
        self._tables = set()

    async def initialize(self):
        """Create connection pool, call on app startup"""
        import asyncpg
        self.pool = await asyncpg.create_pool(
            self.connection_string,
            min_size=2,
            max_size=self.pool_size,
            command_timeout=60
        )

    async def close(self):
        """Close pool, call on app shutdown"""
        if self.pool:
            await self.pool.close()

    def _serialize_value(self, value: Any) -> Any:
        """Serialize value for JSONB storage"""
        if isinstance(value, Decimal):
            return str(value)
        elif isinstance(value, (datetime, date)):
            return value.isoformat()
        return value

    def _decode_row(self, row) -> Dict[str, Any]:
        data = row['data']
        if isinstance(data, str):
            data = json.loads(data)
        return data

    async def _ensure_table(self, table: str) -> None:
        """Ensure table exists"""
        if not self.pool:
            raise RuntimeError("Pool not initialized. Call initialize() first.")
        if table in self._tables:
            return

        async with self.pool.acquire() as conn:
            await conn.execute(f'''
                CREATE TABLE IF NOT EXISTS "{table}" (
                    id TEXT PRIMARY KEY,
                    data JSONB NOT NULL,
                    unique_key TEXT UNIQUE,
                    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
                )
            ''')
        self._tables.add(table)

    async def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Upsert a record, keeping its unique key"""
        await self._ensure_table(table)

        serialized_data = {key: self._serialize_value(value) for key, value in data.items()}

        async with self.pool.acquire() as conn:
            await conn.execute(f'''
                INSERT INTO "{table}" (id, data, updated_at)
                VALUES ($1, $2, NOW())
                ON CONFLICT (id)
                DO UPDATE SET data = $2, updated_at = NOW()
            ''', record_id, json.dumps(serialized_data))

    async def insert(self, table: str, record_id: str, data: Dict[str, Any],
                     unique_key: Optional[str] = None) -> None:
        """Insert a record; id and unique key collisions raise DuplicateRecordError"""
        import asyncpg

        await self._ensure_table(table)

        serialized_data = {key: self._serialize_value(value) for key, value in data.items()}

        async with self.pool.acquire() as conn:
            try:
                await conn.execute(f'''
                    INSERT INTO "{table}" (id, data, unique_key)
                    VALUES ($1, $2, $3)
                ''', record_id, json.dumps(serialized_data), unique_key)
            except asyncpg.UniqueViolationError as e:
                raise DuplicateRecordError(table, unique_key or record_id) from e

    async def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from PostgreSQL"""
        await self._ensure_table(table)

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(f'SELECT data FROM "{table}" WHERE id = $1', record_id)
            return self._decode_row(row) if row else None

    async def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from storage"""
        await self._ensure_table(table)

        async with self.pool.acquire() as conn:
            result = await conn.execute(f'DELETE FROM "{table}" WHERE id = $1', record_id)
            return result != 'DELETE 0'

    async def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        await self._ensure_table(table)

        # JSONB text comparisons
        conditions = []
        params = []
        for key, value in filters.items():
            params.append(str(value))
            conditions.append(f"data->>'{key}' = ${len(params)}")

        where_clause = " AND ".join(conditions) if conditions else "1=1"

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f'SELECT data FROM "{table}" WHERE {where_clause} ORDER BY created_at', *params
            )
            return [self._decode_row(row) for row in rows]


def create_async_storage(
    storage_type: str = "memory",
    connection_string: Optional[str] = None,
    pool_size: int = 10
) -> AsyncStorageInterface:
    """Factory function to create async storage instances

    Args:
        storage_type: memory, sqlite or postgresql
        connection_string: SQLite path or PostgreSQL DSN
        pool_size: PostgreSQL pool size

    Returns:
        Storage instance. PostgreSQL storage still needs ``initialize()``.
    """
    storage_type = storage_type.lower()

    if storage_type == "postgresql":
        if not connection_string:
            raise ValueError("PostgreSQL storage requires a connection string")
        return AsyncPostgreSQLStorage(connection_string, pool_size)

    if storage_type == "sqlite":
        return AsyncInMemoryStorage(SQLiteStorage(connection_string or ":memory:"))

    if storage_type == "memory":
        return AsyncInMemoryStorage()

    raise ValueError(f"Unknown storage type: {storage_type}")

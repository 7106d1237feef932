"""
Tests for Async Storage Interface

Tests the async wrappers over the synchronous backends, the PostgreSQL
backend when a server is available, and the storage factory.
"""

import pytest
import pytest_asyncio
import asyncio
import uuid

from bank_accounts.async_storage import (
    AsyncInMemoryStorage,
    AsyncPostgreSQLStorage,
    create_async_storage
)
from bank_accounts.storage import DuplicateRecordError, SQLiteStorage


class TestAsyncInMemoryStorage:
    """Test AsyncInMemoryStorage functionality"""

    @pytest_asyncio.fixture
    async def storage(self):
        """Create async in-memory storage instance"""
        return AsyncInMemoryStorage()

    @pytest.mark.asyncio
    async def test_basic_crud_operations(self, storage):
        """Test basic CRUD operations"""
        table = "bank_accounts"
        data = {"id": "acc-1", "customer_id": "c1", "type": "CURRENT", "balance": "0.00"}

        await storage.insert(table, "acc-1", data)

        assert await storage.load(table, "acc-1") == data

        updated = dict(data, balance="42.00")
        await storage.save(table, "acc-1", updated)
        assert (await storage.load(table, "acc-1"))["balance"] == "42.00"

        assert await storage.delete(table, "acc-1") is True
        assert await storage.load(table, "acc-1") is None
        assert await storage.delete(table, "acc-1") is False

    @pytest.mark.asyncio
    async def test_find_operations(self, storage):
        """Test find operations with filters"""
        table = "bank_accounts"
        for record in [
            {"id": "a", "customer_id": "c1", "type": "SAVINGS"},
            {"id": "b", "customer_id": "c1", "type": "CURRENT"},
            {"id": "c", "customer_id": "c2", "type": "SAVINGS"},
        ]:
            await storage.save(table, record["id"], record)

        assert len(await storage.find(table, {"customer_id": "c1"})) == 2
        savings = await storage.find(table, {"customer_id": "c1", "type": "SAVINGS"})
        assert [r["id"] for r in savings] == ["a"]

    @pytest.mark.asyncio
    async def test_unique_key_under_concurrency(self, storage):
        """Only one of many concurrent inserts can claim a unique key"""
        table = "bank_accounts"

        results = await asyncio.gather(
            *[
                storage.insert(table, f"acc-{i}", {"id": f"acc-{i}", "customer_id": "c1"},
                               unique_key="c1:SAVINGS")
                for i in range(10)
            ],
            return_exceptions=True
        )

        failures = [r for r in results if isinstance(r, DuplicateRecordError)]
        assert len(failures) == 9
        assert len(await storage.find(table, {"customer_id": "c1"})) == 1


class TestAsyncSQLiteStorage:
    """Async wrapper over SQLite"""

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "accounts.db"

        first = AsyncInMemoryStorage(SQLiteStorage(path))
        await first.insert("bank_accounts", "acc-1", {"id": "acc-1", "customer_id": "c1"}, unique_key="c1:SAVINGS")
        await first.close()

        second = AsyncInMemoryStorage(SQLiteStorage(path))
        assert (await second.load("bank_accounts", "acc-1"))["customer_id"] == "c1"
        with pytest.raises(DuplicateRecordError):
            await second.insert("bank_accounts", "acc-2", {"id": "acc-2"}, unique_key="c1:SAVINGS")
        await second.close()

    @pytest.mark.asyncio
    async def test_concurrent_inserts(self, tmp_path):
        storage = AsyncInMemoryStorage(SQLiteStorage(tmp_path / "concurrent.db"))

        results = await asyncio.gather(
            *[
                storage.insert("bank_accounts", f"acc-{i}", {"id": f"acc-{i}", "customer_id": "c1"},
                               unique_key="c1:SAVINGS")
                for i in range(5)
            ],
            return_exceptions=True
        )

        assert sum(isinstance(r, DuplicateRecordError) for r in results) == 4
        assert len(await storage.find("bank_accounts", {"customer_id": "c1"})) == 1
        await storage.close()


class TestAsyncPostgreSQLStorage:
    """Test AsyncPostgreSQLStorage functionality (if available)"""

    @pytest_asyncio.fixture
    async def postgresql_storage(self):
        """Create async PostgreSQL storage instance (skip if not available)"""
        storage = AsyncPostgreSQLStorage("postgresql://localhost/test_bank_accounts")
        try:
            await storage.initialize()
        except Exception:
            pytest.skip("PostgreSQL not available for testing")
        yield storage
        await storage.close()

    @pytest.mark.asyncio
    async def test_postgresql_crud_and_unique_key(self, postgresql_storage):
        table = f"pg_bank_accounts_{uuid.uuid4().hex[:8]}"

        try:
            await postgresql_storage.insert(table, "acc-1", {"id": "acc-1", "customer_id": "c1", "type": "SAVINGS"},
                                            unique_key="c1:SAVINGS")
            with pytest.raises(DuplicateRecordError):
                await postgresql_storage.insert(table, "acc-2", {"id": "acc-2", "customer_id": "c1", "type": "SAVINGS"},
                                                unique_key="c1:SAVINGS")

            found = await postgresql_storage.find(table, {"customer_id": "c1", "type": "SAVINGS"})
            assert [r["id"] for r in found] == ["acc-1"]

            assert await postgresql_storage.delete(table, "acc-1") is True
            assert await postgresql_storage.load(table, "acc-1") is None
        finally:
            async with postgresql_storage.pool.acquire() as conn:
                await conn.execute(f'DROP TABLE IF EXISTS "{table}"')

    @pytest.mark.asyncio
    async def test_uninitialized_pool(self):
        storage = AsyncPostgreSQLStorage("postgresql://localhost/unused")

        with pytest.raises(RuntimeError, match="Pool not initialized"):
            await storage.load("bank_accounts", "acc-1")


class TestStorageFactory:
    """Test the create_async_storage factory function"""

    def test_create_memory_storage(self):
        assert isinstance(create_async_storage("memory"), AsyncInMemoryStorage)

    def test_create_sqlite_storage(self, tmp_path):
        storage = create_async_storage("sqlite", str(tmp_path / "a.db"))
        assert isinstance(storage, AsyncInMemoryStorage)

    def test_create_postgresql_storage(self):
        storage = create_async_storage("PostgreSQL", "postgresql://localhost/db", pool_size=3)

        assert isinstance(storage, AsyncPostgreSQLStorage)
        assert storage.pool_size == 3

    def test_postgresql_requires_connection_string(self):
        with pytest.raises(ValueError):
            create_async_storage("postgresql")

    def test_unknown_storage_type(self):
        with pytest.raises(ValueError):
            create_async_storage("mongodb")

"""
Account Store

Keyed persistence for accounts over an async document storage backend.
Infrastructure failures surface as StoreUnavailableError; collisions on the
one-account-per-type key surface as MaximumAccountsReachedError.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Union

from .accounts import Account, AccountType, normalize_account_type
from .async_storage import AsyncStorageInterface
from .exceptions import (
    AccountNotFoundError, AccountServiceError,
    MaximumAccountsReachedError, StoreUnavailableError
)
from .storage import DuplicateRecordError

logger = logging.getLogger("bank_accounts.repository")


@asynccontextmanager
async def _storage_call(operation: str):
    """Translate backend failures into StoreUnavailableError"""
    try:
        yield
    except (AccountServiceError, DuplicateRecordError):
        raise
    except Exception as e:
        logger.error(f"Account store {operation} failed: {e}")
        raise StoreUnavailableError(f"Account store {operation} failed: {e}") from e


class AccountRepository:
    """Account persistence"""

    def __init__(self, storage: AsyncStorageInterface, table: str = "bank_accounts"):
        self.storage = storage
        self.table = table

    async def find_by_id(self, account_id: str) -> Account:
        """Get account by ID, raising AccountNotFoundError if absent"""
        async with _storage_call("lookup"):
            data = await self.storage.load(self.table, account_id)
        if not data:
            raise AccountNotFoundError(f"Account not found with ID: {account_id}")
        return Account.from_dict(data)

    async def find_by_customer_id(self, customer_id: str) -> List[Account]:
        """Get all accounts for a customer"""
        async with _storage_call("query"):
            records = await self.storage.find(self.table, {"customer_id": customer_id})
        return [Account.from_dict(data) for data in records]

    async def find_by_customer_id_and_type(
        self,
        customer_id: str,
        account_type: Union[str, AccountType]
    ) -> List[Account]:
        """Get a customer's accounts of one type"""
        async with _storage_call("query"):
            records = await self.storage.find(
                self.table,
                {"customer_id": customer_id, "type": normalize_account_type(account_type)}
            )
        return [Account.from_dict(data) for data in records]

    async def insert(self, account: Account, exclusive: bool = False) -> Account:
        """
        Persist a new account, assigning its id and timestamps

        Args:
            account: Account to insert; any id already set is replaced
            exclusive: Reserve the customer's single slot for this account type

        Returns:
            The stored account

        Raises:
            MaximumAccountsReachedError: Slot already taken (exclusive inserts)
            StoreUnavailableError: Backend failure
        """
        now = datetime.now(timezone.utc)
        account.id = str(uuid.uuid4())
        account.created_at = now
        account.updated_at = now

        unique_key = account.exclusive_key if exclusive else None

        try:
            async with _storage_call("insert"):
                await self.storage.insert(self.table, account.id, account.to_dict(), unique_key)
        except DuplicateRecordError:
            account.id = None
            raise MaximumAccountsReachedError(account.type.value)

        return account

    async def save(self, account: Account) -> Account:
        """Update an existing account by id"""
        if not account.id:
            raise AccountNotFoundError("Cannot update an account without an id")
        account.updated_at = datetime.now(timezone.utc)
        async with _storage_call("update"):
            await self.storage.save(self.table, account.id, account.to_dict())
        return account

    async def delete(self, account: Account) -> None:
        """Delete an account, raising AccountNotFoundError if it is already gone"""
        async with _storage_call("delete"):
            deleted = await self.storage.delete(self.table, account.id)
        if not deleted:
            raise AccountNotFoundError(f"Account not found with ID: {account.id}")
